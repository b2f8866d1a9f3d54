"""
LINE chat commands for the owner.

Text is matched against Thai and English aliases by substring, in a fixed
order, so "รายได้เดือนนี้" resolves to the income command before anything else.
"""

from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ...ai.ai_service import AIService
from ...context.service_context import ServiceContext
from ...services.analytics_service import AnalyticsService
from ...services.room_service import RoomService
from ...utils.date_utils import thai_month
from ...utils.logger import get_logger
from .client import (
    BuildingAmount,
    LineClient,
    LineEvent,
    LineMessage,
    VacantRoomLine,
    income_flex_message,
    text_message,
    vacant_rooms_flex_message,
)

UNAUTHORIZED_TEXT = "❌ คุณไม่มีสิทธิ์ใช้งานระบบนี้"
UNKNOWN_COMMAND_TEXT = "🤔 ไม่เข้าใจคำสั่ง\n\nลองพิมพ์:\n• รายได้เดือนนี้\n• ห้องว่าง\n• สรุป\n• ช่วย"
HELP_TEXT = (
    "📋 คำสั่งที่ใช้ได้:\n\n"
    "💰 รายได้เดือนนี้\n→ ดูสรุปรายได้แบบละเอียด\n\n"
    "🏠 ห้องว่าง\n→ ดูห้องที่ว่างอยู่\n\n"
    "📊 สรุป\n→ ให้ AI สรุปภาพรวมเดือนนี้\n\n"
    "🤖 แนะนำ\n→ ให้ AI วิเคราะห์ความผิดปกติและแจ้งเตือน\n\n"
    "❓ ช่วย\n→ แสดงคำสั่งทั้งหมด"
)
WELCOME_TEXT = (
    "👋 สวัสดีค่ะ! ยินดีต้อนรับสู่ระบบจัดการการเช่า\n\n"
    'พิมพ์ "ช่วย" เพื่อดูคำสั่งที่ใช้ได้'
)

# Checked in this order; the first alias found in the text wins
COMMANDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("income", ("รายได้", "รายได้เดือนนี้", "income", "เงิน")),
    ("vacant", ("ห้องว่าง", "vacant", "ว่าง")),
    ("help", ("help", "ช่วย", "คำสั่ง", "?")),
    ("summary", ("สรุป", "summary", "สรุปเดือนนี้")),
    ("advice", ("แนะนำ", "ปรับค่าเช่า", "advice")),
)


class CommandResult(BaseModel):
    messages: List[LineMessage] = Field(default_factory=list)
    authorized: bool = True


def match_command(text: str) -> Optional[str]:
    """Name of the first command whose alias occurs in text, or None."""
    normalized = (text or "").strip().lower()
    if not normalized:
        return None
    for name, aliases in COMMANDS:
        if any(alias.lower() in normalized for alias in aliases):
            return name
    return None


class LineCommandHandler:
    """Turns owner chat messages into replies built from the services."""

    def __init__(
        self,
        context: ServiceContext,
        client: Optional[LineClient] = None,
        ai_service: Optional[AIService] = None,
    ):
        self.context = context
        self.client = client or LineClient(context.config.line)
        self.ai_service = ai_service or AIService(context)
        self.logger = get_logger()
        self._handlers: Dict[str, Callable[[], List[LineMessage]]] = {
            "income": self._income,
            "vacant": self._vacant,
            "help": self._help,
            "summary": self._summary,
            "advice": self._advice,
        }

    def handle(self, event: LineEvent) -> CommandResult:
        user_id = event.source.user_id
        if not self.client.is_owner(user_id):
            self.logger.warning("Rejected LINE command from non-owner", extra={"line_user_id": user_id})
            return CommandResult(messages=[text_message(UNAUTHORIZED_TEXT)], authorized=False)

        text = event.message.text if event.message else ""
        command = match_command(text or "")
        if command is None:
            return CommandResult(messages=[text_message(UNKNOWN_COMMAND_TEXT)])

        self.logger.info("Handling LINE command", extra={"command": command})
        return CommandResult(messages=self._handlers[command]())

    def handle_webhook_event(self, event: LineEvent) -> bool:
        """Dispatch one webhook event; returns whether a reply was sent."""
        if not event.reply_token:
            return False
        if event.type == "follow":
            return self.client.reply_message(event.reply_token, [text_message(WELCOME_TEXT)])
        if event.type == "message" and event.message and event.message.type == "text":
            result = self.handle(event)
            return self.client.reply_message(event.reply_token, result.messages)
        return False

    def _income(self) -> List[LineMessage]:
        now = self.context.now()
        summary = AnalyticsService(self.context).get_billing_summary(now.year, now.month)
        return [
            income_flex_message(
                month=thai_month(now.month),
                total=summary.total,
                buildings=[BuildingAmount(name=b.name, amount=b.amount) for b in summary.by_building],
                collected=summary.collected,
                pending=summary.pending,
            )
        ]

    def _vacant(self) -> List[LineMessage]:
        rooms = RoomService(self.context).find_vacant()
        return [
            vacant_rooms_flex_message(
                [
                    VacantRoomLine(
                        room_number=r.room_number,
                        building_name=r.building_name or "",
                        rent=r.base_rent,
                    )
                    for r in rooms
                ]
            )
        ]

    def _help(self) -> List[LineMessage]:
        return [text_message(HELP_TEXT)]

    def _summary(self) -> List[LineMessage]:
        return [text_message(self.ai_service.generate_monthly_summary().content)]

    def _advice(self) -> List[LineMessage]:
        anomaly = self.ai_service.detect_anomalies()
        expiry = self.ai_service.generate_expiry_reminder()
        return [text_message(f"🤖 AI วิเคราะห์ระบบ:\n\n{anomaly.content}\n\n{expiry.content}")]
