"""Tests for owner chat commands over LINE."""

from unittest.mock import Mock

import pytest

from rental_core.ai.ai_service import AIResponse, AIService
from rental_core.enums import PaymentStatus, RoomStatus
from rental_core.integrations.line.client import NO_VACANT_ROOMS, LineEvent
from rental_core.integrations.line.commands import (
    HELP_TEXT,
    UNAUTHORIZED_TEXT,
    UNKNOWN_COMMAND_TEXT,
    WELCOME_TEXT,
    LineCommandHandler,
    match_command,
)
from tests.conftest import OWNER_LINE_ID
from tests.fixtures.factories import BuildingFactory, ContractFactory, PaymentFactory, RoomFactory


def _text_event(text, user_id=OWNER_LINE_ID, reply_token="reply-1"):
    return LineEvent.model_validate(
        {
            "type": "message",
            "replyToken": reply_token,
            "source": {"type": "user", "userId": user_id},
            "message": {"type": "text", "id": "m1", "text": text},
        }
    )


@pytest.fixture
def ai_service():
    service = Mock(spec=AIService)
    service.generate_monthly_summary.return_value = AIResponse(
        success=True, content="สรุปเดือนนี้", fallback=True
    )
    service.detect_anomalies.return_value = AIResponse(success=True, content="✅ รายได้ปกติ", fallback=True)
    service.generate_expiry_reminder.return_value = AIResponse(
        success=True, content="✅ ไม่มีสัญญาที่จะหมดในเดือนหน้า", fallback=False
    )
    return service


@pytest.fixture
def handler(context, line_client, ai_service):
    line_client.is_owner.side_effect = lambda user_id: user_id == OWNER_LINE_ID
    return LineCommandHandler(context, client=line_client, ai_service=ai_service)


class TestMatchCommand:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("รายได้เดือนนี้", "income"),
            ("INCOME please", "income"),
            ("ห้องว่าง", "vacant"),
            ("มีห้องว่างไหม", "vacant"),
            ("ช่วย", "help"),
            ("?", "help"),
            ("สรุป", "summary"),
            ("Summary", "summary"),
            ("แนะนำ", "advice"),
            ("ปรับค่าเช่า", "advice"),
            ("สวัสดี", None),
            ("   ", None),
        ],
    )
    def test_aliases(self, text, expected):
        assert match_command(text) == expected

    def test_first_command_in_order_wins(self):
        # "เงิน" (income) beats "สรุป" (summary)
        assert match_command("สรุปเงิน") == "income"


class TestHandle:
    def test_non_owner_is_rejected(self, handler):
        result = handler.handle(_text_event("รายได้", user_id="U-stranger"))

        assert result.authorized is False
        assert result.messages == [{"type": "text", "text": UNAUTHORIZED_TEXT}]

    def test_unknown_text(self, handler):
        result = handler.handle(_text_event("สวัสดีครับ"))

        assert result.messages[0]["text"] == UNKNOWN_COMMAND_TEXT

    def test_help(self, handler):
        assert handler.handle(_text_event("help")).messages[0]["text"] == HELP_TEXT

    def test_income_uses_billing_summary(self, handler, db_session):
        alpha = BuildingFactory(name="Alpha")
        paid = ContractFactory(room__building=alpha, rent_amount=5000)
        open_row = ContractFactory(room__building=alpha, rent_amount=4000)
        PaymentFactory(contract=paid, paid_amount=5000, status=PaymentStatus.PAID)
        PaymentFactory(contract=open_row)

        message = handler.handle(_text_event("รายได้เดือนนี้")).messages[0]

        assert message["type"] == "flex"
        assert message["altText"] == "รายได้เดือนม.ค.: ฿9,000"
        body = message["contents"]["body"]["contents"]
        assert body[4]["contents"][1]["text"] == "฿5,000"
        assert body[5]["contents"][1]["text"] == "฿4,000"

    def test_vacant_rooms(self, handler, db_session):
        RoomFactory(room_number="103", base_rent=4800)
        RoomFactory(status=RoomStatus.OCCUPIED)

        message = handler.handle(_text_event("ห้องว่าง")).messages[0]

        assert message["altText"] == "ห้องว่าง 1 ห้อง"

    def test_no_vacant_rooms(self, handler, db_session):
        message = handler.handle(_text_event("vacant")).messages[0]

        assert message["text"] == NO_VACANT_ROOMS

    def test_summary_delegates_to_ai(self, handler, ai_service):
        result = handler.handle(_text_event("สรุป"))

        assert result.messages[0]["text"] == "สรุปเดือนนี้"
        ai_service.generate_monthly_summary.assert_called_once_with()

    def test_advice_combines_anomaly_and_expiry(self, handler):
        text = handler.handle(_text_event("แนะนำ")).messages[0]["text"]

        assert text.startswith("🤖 AI วิเคราะห์ระบบ:")
        assert "✅ รายได้ปกติ" in text
        assert "ไม่มีสัญญาที่จะหมดในเดือนหน้า" in text


class TestWebhookEvents:
    def test_text_message_is_answered(self, handler, line_client):
        assert handler.handle_webhook_event(_text_event("ช่วย")) is True

        line_client.reply_message.assert_called_once_with("reply-1", [{"type": "text", "text": HELP_TEXT}])

    def test_follow_gets_welcome(self, handler, line_client):
        event = LineEvent.model_validate(
            {"type": "follow", "replyToken": "reply-2", "source": {"type": "user", "userId": "U-new"}}
        )

        assert handler.handle_webhook_event(event) is True
        line_client.reply_message.assert_called_once_with("reply-2", [{"type": "text", "text": WELCOME_TEXT}])

    def test_events_without_reply_token_are_ignored(self, handler, line_client):
        event = LineEvent.model_validate({"type": "unfollow", "source": {"type": "user", "userId": "U-x"}})

        assert handler.handle_webhook_event(event) is False
        line_client.reply_message.assert_not_called()

    def test_non_text_message_is_ignored(self, handler, line_client):
        event = LineEvent.model_validate(
            {
                "type": "message",
                "replyToken": "reply-3",
                "source": {"type": "user", "userId": OWNER_LINE_ID},
                "message": {"type": "sticker", "id": "s1"},
            }
        )

        assert handler.handle_webhook_event(event) is False
