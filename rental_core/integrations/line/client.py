"""
LINE Messaging API client and message builders.

Sending is best-effort: reply/push return False on any failure instead of
raising, so a chat outage never breaks the caller.
"""

import hmac
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field

from ...config import LineConfig
from ...utils.hash_utils import hmac_sha256_base64
from ...utils.logger import get_logger

NO_VACANT_ROOMS = "🎉 ไม่มีห้องว่าง ทุกห้องมีผู้เช่าแล้ว!"

COLOR_GREEN = "#1DB446"
COLOR_RED = "#FF6B6B"
COLOR_INDIGO = "#5B5FC7"
COLOR_TEXT = "#1a1a1a"

LineMessage = Dict[str, Any]


class LineSource(BaseModel):
    type: str = "user"
    user_id: Optional[str] = Field(default=None, alias="userId")
    group_id: Optional[str] = Field(default=None, alias="groupId")
    room_id: Optional[str] = Field(default=None, alias="roomId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LineEventMessage(BaseModel):
    type: str
    id: Optional[str] = None
    text: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class LineEvent(BaseModel):
    type: str
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    source: LineSource = Field(default_factory=LineSource)
    message: Optional[LineEventMessage] = None
    timestamp: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LineWebhookBody(BaseModel):
    destination: Optional[str] = None
    events: List[LineEvent] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class BuildingAmount(BaseModel):
    name: str
    amount: float


class VacantRoomLine(BaseModel):
    room_number: str
    building_name: str
    rent: float


def _baht(value: float) -> str:
    return f"฿{value:,.0f}"


def text_message(text: str) -> LineMessage:
    return {"type": "text", "text": text}


def income_flex_message(
    month: str,
    total: float,
    buildings: List[BuildingAmount],
    collected: float,
    pending: float,
) -> LineMessage:
    """Bubble with the month's total, a per-building breakdown and collected/pending lines."""
    return {
        "type": "flex",
        "altText": f"รายได้เดือน{month}: {_baht(total)}",
        "contents": {
            "type": "bubble",
            "header": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {
                        "type": "text",
                        "text": f"📊 รายได้{month}",
                        "weight": "bold",
                        "size": "lg",
                        "color": COLOR_GREEN,
                    }
                ],
            },
            "body": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {
                        "type": "text",
                        "text": _baht(total),
                        "weight": "bold",
                        "size": "xxl",
                        "color": COLOR_TEXT,
                    },
                    {"type": "separator", "margin": "md"},
                    {
                        "type": "box",
                        "layout": "vertical",
                        "margin": "md",
                        "contents": [
                            {
                                "type": "box",
                                "layout": "horizontal",
                                "contents": [
                                    {"type": "text", "text": b.name, "flex": 1, "size": "sm"},
                                    {
                                        "type": "text",
                                        "text": _baht(b.amount),
                                        "size": "sm",
                                        "align": "end",
                                    },
                                ],
                            }
                            for b in buildings
                        ],
                    },
                    {"type": "separator", "margin": "md"},
                    _summary_row("✅ เก็บแล้ว", collected, COLOR_GREEN, margin="md"),
                    _summary_row("⏳ ค้างชำระ", pending, COLOR_RED),
                ],
            },
        },
    }


def _summary_row(label: str, amount: float, color: str, margin: Optional[str] = None) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "type": "box",
        "layout": "horizontal",
        "contents": [
            {"type": "text", "text": label, "size": "sm", "color": color},
            {"type": "text", "text": _baht(amount), "size": "sm", "align": "end"},
        ],
    }
    if margin:
        row["margin"] = margin
    return row


def vacant_rooms_flex_message(rooms: List[VacantRoomLine]) -> LineMessage:
    if not rooms:
        return text_message(NO_VACANT_ROOMS)

    return {
        "type": "flex",
        "altText": f"ห้องว่าง {len(rooms)} ห้อง",
        "contents": {
            "type": "bubble",
            "header": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {
                        "type": "text",
                        "text": f"🏠 ห้องว่าง ({len(rooms)} ห้อง)",
                        "weight": "bold",
                        "size": "lg",
                        "color": COLOR_INDIGO,
                    }
                ],
            },
            "body": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {
                        "type": "box",
                        "layout": "horizontal",
                        "margin": "md",
                        "contents": [
                            {
                                "type": "text",
                                "text": f"{room.building_name} {room.room_number}",
                                "flex": 2,
                                "size": "sm",
                            },
                            {
                                "type": "text",
                                "text": f"{_baht(room.rent)}/ด.",
                                "flex": 1,
                                "size": "sm",
                                "align": "end",
                                "color": COLOR_GREEN,
                            },
                        ],
                    }
                    for room in rooms
                ],
            },
        },
    }


class LineClient:
    """Thin wrapper over the reply and push endpoints."""

    def __init__(self, config: LineConfig):
        self.config = config
        self.logger = get_logger()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.channel_access_token}",
            "Content-Type": "application/json",
        }

    def verify_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """Check X-Line-Signature: base64 HMAC-SHA256 of the raw body with the channel secret."""
        if not self.config.channel_secret:
            self.logger.warning("LINE channel secret not configured")
            return False
        if not signature:
            return False
        if isinstance(body, str):
            body = body.encode("utf-8")
        expected = hmac_sha256_base64(self.config.channel_secret, body)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    def is_owner(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.config.owner_line_ids

    def reply_message(self, reply_token: str, messages: List[LineMessage]) -> bool:
        return self._post("message/reply", {"replyToken": reply_token, "messages": messages})

    def push_message(self, to: str, messages: List[LineMessage]) -> bool:
        return self._post("message/push", {"to": to, "messages": messages})

    def _post(self, path: str, payload: Dict[str, Any]) -> bool:
        if not self.config.channel_access_token:
            self.logger.warning("LINE access token not configured", extra={"path": path})
            return False
        try:
            response = requests.post(
                f"{self.config.api_base}/{path}",
                headers=self._get_headers(),
                json=payload,
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error("LINE request failed", extra={"path": path, "error_details": str(e)})
            return False
        return True
