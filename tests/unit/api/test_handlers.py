"""Tests for the HTTP and cron handlers, called without the Functions host."""

import base64
import hashlib
import hmac
from urllib.parse import parse_qs, urlparse
from unittest.mock import Mock

import pytest

from rental_core.api import handlers
from rental_core.enums import ContractStatus, PaymentStatus
from rental_core.exceptions import ErrorCode
from rental_core.integrations.line.client import LineClient
from tests.fixtures.factories import (
    SIGNATURE_DATA,
    ContractFactory,
    DraftContractFactory,
    PaymentFactory,
    RoomFactory,
    TenantFactory,
)


def _sign(body: bytes, secret: str = "line-channel-secret") -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def _token(url: str) -> str:
    return parse_qs(urlparse(url).query)["token"][0]


class TestContractEndpoints:
    def test_create_answers_201(self, context, db_session):
        room = RoomFactory()
        tenant = TenantFactory()

        status, body = handlers.create_contract(
            context,
            {
                "room_id": room.id,
                "tenant_id": tenant.id,
                "start_date": "2025-02-01",
                "end_date": "2026-01-31",
                "rent_amount": 5500,
            },
        )

        assert status == 201
        assert body["status"] == "DRAFT"
        assert body["start_date"] == "2025-02-01"
        assert body["rent_amount"] == 5500

    def test_room_already_held_is_409(self, context, db_session):
        held = ContractFactory()

        status, body = handlers.create_contract(
            context,
            {
                "room_id": held.room_id,
                "tenant_id": TenantFactory().id,
                "start_date": "2025-02-01",
                "end_date": "2026-01-31",
                "rent_amount": 5000,
            },
        )

        assert status == 409
        assert body["error"]["code"] == ErrorCode.CONFLICT.value

    def test_schema_error_is_400(self, context, db_session):
        status, body = handlers.create_contract(context, {"room_id": "r"})

        assert status == 400
        assert body["error"]["code"] == ErrorCode.INVALID_FORMAT.value
        fields = {tuple(e["loc"]) for e in body["error"]["context"]["errors"]}
        assert ("tenant_id",) in fields

    def test_unknown_contract_is_404(self, context, db_session):
        status, body = handlers.get_contract(context, "missing")

        assert status == 404
        assert body["error"]["code"] == ErrorCode.NOT_FOUND.value

    def test_invalid_transition_is_400(self, context, db_session):
        contract = DraftContractFactory()

        status, body = handlers.transition_contract(context, contract.id, {"status": "RENEWED"})

        assert status == 400
        assert body["error"]["code"] == ErrorCode.INVALID_STATE_TRANSITION.value

    @pytest.mark.parametrize(
        "body,code",
        [({}, ErrorCode.MISSING_REQUIRED), ({"status": "ARCHIVED"}, ErrorCode.INVALID_FORMAT)],
    )
    def test_transition_body_errors(self, context, db_session, body, code):
        contract = DraftContractFactory()

        status, response = handlers.transition_contract(context, contract.id, body)

        assert status == 400
        assert response["error"]["code"] == code.value

    def test_valid_transition(self, context, db_session):
        contract = DraftContractFactory()

        status, body = handlers.transition_contract(
            context, contract.id, {"status": "PENDING_SIGNATURE"}
        )

        assert status == 200
        assert body["status"] == "PENDING_SIGNATURE"

    def test_list_filters_by_status(self, context, db_session):
        ContractFactory()
        draft = DraftContractFactory()

        status, body = handlers.list_contracts(context, {"status": "DRAFT"})

        assert status == 200
        assert [c["id"] for c in body] == [draft.id]

    def test_bad_integer_param(self, context, db_session):
        status, body = handlers.expiring_contracts(context, {"days": "soon"})

        assert status == 400
        assert body["error"]["context"]["field"] == "days"


class TestSigningEndpoints:
    def test_sign_with_issued_links(self, context, db_session):
        contract = ContractFactory(status=ContractStatus.PENDING_SIGNATURE)
        _, links = handlers.issue_signing_links(context, contract.id)

        status, first = handlers.sign_contract(
            context,
            contract.id,
            {
                "token": _token(links["owner_url"]),
                "signer_name": "Owner",
                "signature_data": SIGNATURE_DATA,
                "signer_role": "TENANT",
            },
            forwarded_for="203.0.113.5, 10.0.0.1",
        )

        assert status == 200
        assert first["all_signed"] is False
        assert first["signature"]["signer_role"] == "OWNER"
        assert first["signature"]["ip_address"] == "203.0.113.5"
        assert first["message"] == "Signature recorded, awaiting other party"

        _, second = handlers.sign_contract(
            context,
            contract.id,
            {
                "token": _token(links["tenant_url"]),
                "signer_name": "Tenant",
                "signature_data": SIGNATURE_DATA,
            },
        )

        assert second["all_signed"] is True
        assert second["message"] == "Contract fully signed!"
        _, detail = handlers.get_contract(context, contract.id)
        assert detail["status"] == "SIGNED"

    @pytest.mark.parametrize("token", [None, "not-a-jwt"])
    def test_bad_token_is_401(self, context, db_session, token):
        contract = ContractFactory(status=ContractStatus.PENDING_SIGNATURE)

        status, body = handlers.sign_contract(
            context,
            contract.id,
            {"token": token, "signer_name": "X", "signature_data": SIGNATURE_DATA},
        )

        assert status == 401
        assert body["error"]["code"] == ErrorCode.PERMISSION_DENIED.value

    def test_token_for_other_contract_is_401(self, context, db_session):
        contract = ContractFactory(status=ContractStatus.PENDING_SIGNATURE)
        other = ContractFactory(status=ContractStatus.PENDING_SIGNATURE)
        _, links = handlers.issue_signing_links(context, other.id)

        status, _ = handlers.sign_contract(
            context,
            contract.id,
            {
                "token": _token(links["owner_url"]),
                "signer_name": "X",
                "signature_data": SIGNATURE_DATA,
            },
        )

        assert status == 401

    def test_listing_hides_hash_and_ip(self, context, db_session):
        contract = ContractFactory(status=ContractStatus.PENDING_SIGNATURE)
        _, links = handlers.issue_signing_links(context, contract.id)
        handlers.sign_contract(
            context,
            contract.id,
            {
                "token": _token(links["owner_url"]),
                "signer_name": "Owner",
                "signature_data": SIGNATURE_DATA,
            },
            forwarded_for="203.0.113.5",
        )

        status, body = handlers.list_signatures(context, contract.id)

        assert status == 200
        assert len(body) == 1
        assert set(body[0]) == {"id", "signer_role", "signer_name", "signed_at"}
        assert body[0]["signer_role"] == "OWNER"


class TestPaymentAndAnalyticsEndpoints:
    def test_record_payment(self, context, db_session):
        payment = PaymentFactory()

        status, body = handlers.record_payment(context, payment.id, {"amount": 2000})

        assert status == 200
        assert body["status"] == "PARTIAL"
        assert body["paid_amount"] == 2000

    def test_list_payments_by_status(self, context, db_session):
        overdue = PaymentFactory(status=PaymentStatus.OVERDUE)
        PaymentFactory()

        status, body = handlers.list_payments(context, {"status": "OVERDUE"})

        assert status == 200
        assert [p["id"] for p in body] == [overdue.id]

    def test_unknown_payment_status_is_400(self, context, db_session):
        status, body = handlers.list_payments(context, {"status": "BOGUS"})

        assert status == 400
        assert body["error"]["code"] == ErrorCode.INVALID_FORMAT.value
        assert body["error"]["context"]["field"] == "status"

    @pytest.mark.parametrize(
        "payload",
        [
            {"year": "twenty", "month": 1, "rate_pct": 1.2},
            {"year": 2025, "month": 1, "rate_pct": "high"},
        ],
    )
    def test_non_numeric_inflation_is_400(self, context, db_session, payload):
        status, body = handlers.upsert_inflation(context, payload)

        assert status == 400
        assert body["error"]["code"] == ErrorCode.INVALID_FORMAT.value

    def test_upsert_inflation_requires_fields(self, context, db_session):
        status, body = handlers.upsert_inflation(context, {"year": 2025})

        assert status == 400
        assert body["error"]["code"] == ErrorCode.MISSING_REQUIRED.value

    def test_upsert_then_read_inflation(self, context, db_session):
        handlers.upsert_inflation(context, {"year": 2025, "month": 1, "rate_pct": 1.2})

        status, body = handlers.get_inflation(context, {"year": "2025", "month": "1"})

        assert status == 200
        assert body["rate_pct"] == 1.2
        assert body["source"] == "manual"

    def test_occupancy(self, context, db_session):
        RoomFactory()

        status, body = handlers.occupancy(context)

        assert status == 200
        assert body["total_rooms"] == 1


class TestLineWebhook:
    @pytest.fixture
    def command_handler(self, context):
        handler = Mock()
        handler.client = LineClient(context.config.line)
        handler.handle_webhook_event.return_value = True
        return handler

    def test_valid_signature(self, context, command_handler):
        raw = (
            b'{"events":[{"type":"message","replyToken":"r1",'
            b'"source":{"type":"user","userId":"U-owner-0001"},'
            b'"message":{"type":"text","id":"1","text":"help"}}]}'
        )

        status, body = handlers.line_webhook(context, raw, _sign(raw), handler=command_handler)

        assert status == 200
        assert body == {"success": True}
        command_handler.handle_webhook_event.assert_called_once()

    def test_invalid_signature_is_401(self, context, command_handler):
        status, _ = handlers.line_webhook(
            context, b'{"events":[]}', _sign(b"other"), handler=command_handler
        )

        assert status == 401
        command_handler.handle_webhook_event.assert_not_called()

    def test_bad_json_is_400(self, context, command_handler):
        raw = b"not json"

        status, body = handlers.line_webhook(context, raw, _sign(raw), handler=command_handler)

        assert status == 400
        assert body["error"]["code"] == ErrorCode.INVALID_FORMAT.value


class TestCronEndpoints:
    @pytest.mark.parametrize("authorization", [None, "Bearer wrong", "cron-secret"])
    def test_wrong_secret_is_401(self, context, db_session, authorization):
        status, _ = handlers.cron_generate_payments(context, authorization)

        assert status == 401

    def test_generate_payments(self, context, db_session):
        ContractFactory()

        status, body = handlers.cron_generate_payments(context, "Bearer cron-secret")

        assert status == 200
        assert body["success"] is True
        assert body["generated"] == 1
        assert body["skipped"] == 0
        assert body["period"] == "2025-01"
        assert body["auto_marked_overdue"] == 1
        assert body["timestamp"].startswith("2025-01-15")

    def test_reminders(self, context, db_session):
        notifications = Mock()
        notifications.notify_expiring_contracts.return_value = 2
        notifications.notify_overdue_payments.return_value = 1

        status, body = handlers.cron_reminders(
            context, "Bearer cron-secret", notifications=notifications
        )

        assert status == 200
        assert body["notifications"] == {"expiring_contracts": 2, "overdue_payments": 1}

    def test_missing_secret_outside_development(self, context, db_session):
        context.config.security.cron_secret = ""

        status, body = handlers.cron_reminders(context, None, notifications=Mock())

        assert status == 401
        assert body["error"]["context"]["reason"] == "cron secret not configured"

    def test_unpaid_row_is_not_regenerated(self, context, db_session):
        PaymentFactory(status=PaymentStatus.OVERDUE)

        _, body = handlers.cron_generate_payments(context, "Bearer cron-secret")

        assert body["generated"] == 0
        assert body["skipped"] == 1
