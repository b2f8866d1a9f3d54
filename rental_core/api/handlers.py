"""
HTTP and cron handlers.

Each handler takes the ServiceContext plus already-extracted request parts
(path ids, query params, JSON body, headers) and returns `(status, body)`
with a JSON-ready body. `function_app.py` adapts Azure Functions requests
onto these, so the handlers can be exercised without the Functions host.
"""

from functools import wraps
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type, TypeVar, cast

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ..constants import EXPIRY_WINDOW_DAYS, INCOME_TREND_MONTHS, TriggeredBy
from ..context.service_context import ServiceContext
from ..enums import ContractStatus, PaymentStatus
from ..exceptions import BaseError, ErrorCode, ValidationError, permission_denied
from ..integrations.line.client import LineClient, LineWebhookBody
from ..integrations.line.commands import LineCommandHandler
from ..schemas.contract_schema import (
    ContractCreate,
    ContractUpdate,
    RenewalTerms,
    SignatureCreate,
    SignatureSummary,
)
from ..schemas.inflation_schema import InflationUpsert
from ..schemas.payment_schema import PaymentRecord
from ..services.analytics_service import AnalyticsService
from ..services.contract_service import ContractService
from ..services.inflation_service import InflationService
from ..services.notification_service import NotificationService
from ..services.payment_service import PaymentService
from ..services.signature_service import SignatureService
from ..utils.json_utils import loads
from ..utils.logger import get_logger
from ..utils.signing_token import require_signing_token

Response = Tuple[int, Any]
Body = Optional[Mapping[str, Any]]
Params = Optional[Mapping[str, str]]

F = TypeVar("F", bound=Callable[..., Response])
E = TypeVar("E", bound=Enum)


def _json_ready(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_json_ready(item) for item in result]
    if isinstance(result, dict):
        return {key: _json_ready(value) for key, value in result.items()}
    return result


def api_handler(func: F) -> F:
    """
    Turn domain errors into `(status, error body)` and models into JSON-ready bodies.

    BaseError subclasses answer with their own status code; schema errors
    from pydantic answer 400; anything else is logged and answered with 500.
    """

    @wraps(func)
    def wrapper(*args, **kwargs) -> Response:
        try:
            status, body = func(*args, **kwargs)
        except BaseError as e:
            return e.status_code, e.to_dict()
        except SchemaValidationError as e:
            error = ValidationError(
                "Request body failed validation",
                error_code=ErrorCode.INVALID_FORMAT,
                errors=e.errors(include_url=False, include_context=False),
            )
            return error.status_code, error.to_dict()
        except Exception as e:
            get_logger().exception(
                f"Unhandled error in {func.__name__}",
                extra={"error_type": type(e).__name__, "error_details": str(e)},
            )
            return 500, {
                "error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error"}
            }
        return status, _json_ready(body)

    return cast(F, wrapper)


def _int_param(params: Params, name: str, default: Optional[int] = None) -> Optional[int]:
    raw = (params or {}).get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"{name} must be an integer",
            field=name,
            error_code=ErrorCode.INVALID_FORMAT,
            cause=e,
            value=str(raw),
        ) from e


def _body(body: Body) -> Dict[str, Any]:
    return dict(body or {})


def _status(enum_cls: Type[E], value: Any) -> E:
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(
            f"Unknown status: {value}",
            field="status",
            error_code=ErrorCode.INVALID_FORMAT,
            cause=e,
        ) from e


def _current_period(context: ServiceContext, params: Params) -> Tuple[int, int]:
    now = context.now()
    return _int_param(params, "year", now.year), _int_param(params, "month", now.month)


# Contracts


@api_handler
def create_contract(context: ServiceContext, body: Body) -> Response:
    return 201, ContractService(context).create_contract(ContractCreate.model_validate(_body(body)))


@api_handler
def update_contract(context: ServiceContext, contract_id: str, body: Body) -> Response:
    data = ContractUpdate.model_validate(_body(body))
    return 200, ContractService(context).update_contract(contract_id, data)


@api_handler
def get_contract(context: ServiceContext, contract_id: str) -> Response:
    return 200, ContractService(context).get_contract(contract_id)


@api_handler
def list_contracts(context: ServiceContext, params: Params = None) -> Response:
    params = params or {}
    status = params.get("status")
    return 200, ContractService(context).list_contracts(
        status=_status(ContractStatus, status) if status else None,
        room_id=params.get("room_id"),
        tenant_id=params.get("tenant_id"),
    )


@api_handler
def delete_contract(context: ServiceContext, contract_id: str) -> Response:
    ContractService(context).delete_contract(contract_id)
    return 200, {"success": True}


@api_handler
def transition_contract(context: ServiceContext, contract_id: str, body: Body) -> Response:
    data = _body(body)
    if not data.get("status"):
        raise ValidationError(
            "status is required", field="status", error_code=ErrorCode.MISSING_REQUIRED
        )
    return 200, ContractService(context).transition_status(
        contract_id,
        _status(ContractStatus, data["status"]),
        reason=data.get("reason"),
        triggered_by=data.get("triggered_by") or TriggeredBy.API.value,
    )


@api_handler
def renew_contract(context: ServiceContext, contract_id: str, body: Body) -> Response:
    terms = RenewalTerms.model_validate(_body(body))
    return 201, ContractService(context).renew_contract(
        contract_id, terms, triggered_by=TriggeredBy.API.value
    )


@api_handler
def expiring_contracts(context: ServiceContext, params: Params = None) -> Response:
    days = _int_param(params, "days", EXPIRY_WINDOW_DAYS)
    return 200, ContractService(context).find_expiring(days)


@api_handler
def issue_signing_links(context: ServiceContext, contract_id: str) -> Response:
    return 200, SignatureService(context).issue_signing_links(contract_id)


@api_handler
def sign_contract(
    context: ServiceContext,
    contract_id: str,
    body: Body,
    forwarded_for: Optional[str] = None,
) -> Response:
    """
    Record a signature from a signing link.

    The role comes from the verified token; a role in the body is ignored.
    """
    data = _body(body)
    token = require_signing_token(
        context.config.security.signing_secret, data.get("token"), contract_id, context.now()
    )
    ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else None
    result = SignatureService(context).create_signature(
        SignatureCreate(
            contract_id=contract_id,
            signer_role=token.role,
            signer_name=data.get("signer_name") or "",
            signature_data=data.get("signature_data") or "",
            ip_address=ip_address,
        )
    )
    return 200, {
        "success": True,
        "signature": result.signature,
        "all_signed": result.all_signed,
        "message": (
            "Contract fully signed!"
            if result.all_signed
            else "Signature recorded, awaiting other party"
        ),
    }


@api_handler
def list_signatures(context: ServiceContext, contract_id: str) -> Response:
    signatures = SignatureService(context).list_signatures(contract_id)
    return 200, [SignatureSummary.model_validate(s.model_dump()) for s in signatures]


# Payments


@api_handler
def generate_payments(context: ServiceContext, body: Body) -> Response:
    year, month = _current_period(context, {k: str(v) for k, v in _body(body).items()})
    return 200, PaymentService(context).generate_monthly_payments(year, month)


@api_handler
def record_payment(context: ServiceContext, payment_id: str, body: Body) -> Response:
    data = PaymentRecord.model_validate(_body(body))
    return 200, PaymentService(context).record_payment(payment_id, data)


@api_handler
def list_payments(context: ServiceContext, params: Params = None) -> Response:
    params = params or {}
    return 200, PaymentService(context).list_payments(
        contract_id=params.get("contract_id"),
        period_year=_int_param(params, "year"),
        period_month=_int_param(params, "month"),
        status=_status(PaymentStatus, params["status"]) if params.get("status") else None,
    )


# Analytics and inflation


@api_handler
def analytics_snapshot(context: ServiceContext, params: Params = None) -> Response:
    year, month = _current_period(context, params)
    return 200, AnalyticsService(context).get_snapshot(year, month)


@api_handler
def income_trend(context: ServiceContext, params: Params = None) -> Response:
    months = _int_param(params, "months", INCOME_TREND_MONTHS)
    return 200, AnalyticsService(context).get_income_trend(months)


@api_handler
def occupancy(context: ServiceContext) -> Response:
    return 200, AnalyticsService(context).get_occupancy()


@api_handler
def collection(context: ServiceContext, params: Params = None) -> Response:
    year, month = _current_period(context, params)
    return 200, AnalyticsService(context).get_collection_rate(year, month)


@api_handler
def get_inflation(context: ServiceContext, params: Params = None) -> Response:
    service = InflationService(context)
    if params and params.get("year") and params.get("month"):
        found = service.get_inflation(_int_param(params, "year"), _int_param(params, "month"))
        return 200, found
    return 200, service.list_inflation()


@api_handler
def upsert_inflation(context: ServiceContext, body: Body) -> Response:
    data = _body(body)
    missing = [name for name in ("year", "month", "rate_pct") if data.get(name) is None]
    if missing:
        raise ValidationError(
            f"Missing fields: {', '.join(missing)}",
            field=missing[0],
            error_code=ErrorCode.MISSING_REQUIRED,
        )
    entry = InflationUpsert.model_validate(data)
    return 200, InflationService(context).upsert_inflation(
        entry.year, entry.month, entry.rate_pct, source=entry.source or "manual"
    )


@api_handler
def rent_adjustments(context: ServiceContext, params: Params = None) -> Response:
    service = InflationService(context)
    contract_id = (params or {}).get("contract_id")
    if contract_id:
        return 200, service.calculate_rent_adjustment(contract_id)
    return 200, service.get_all_rent_adjustments()


# LINE webhook


@api_handler
def line_webhook(
    context: ServiceContext,
    raw_body: bytes,
    signature: Optional[str],
    handler: Optional[LineCommandHandler] = None,
) -> Response:
    """
    Verify X-Line-Signature and dispatch every event.

    Without a channel secret, verification is skipped only in development.
    """
    logger = get_logger()
    client = handler.client if handler else LineClient(context.config.line)
    if context.config.line.channel_secret or not context.config.is_development:
        if not client.verify_signature(raw_body, signature):
            raise permission_denied("webhook", "line", reason="invalid signature")
    else:
        logger.warning("LINE signature verification skipped (no secret configured)")

    try:
        payload = LineWebhookBody.model_validate(loads(raw_body or b"{}"))
    except ValueError as e:
        raise ValidationError(
            "Webhook body is not valid JSON", error_code=ErrorCode.INVALID_FORMAT, cause=e
        ) from e

    handler = handler or LineCommandHandler(context, client=client)
    replied = sum(1 for event in payload.events if handler.handle_webhook_event(event))
    logger.info(
        "Processed LINE webhook", extra={"event_count": len(payload.events), "replied": replied}
    )
    return 200, {"success": True}


# Cron jobs


def _require_cron_auth(context: ServiceContext, authorization: Optional[str]) -> None:
    secret = context.config.security.cron_secret
    if secret:
        if authorization != f"Bearer {secret}":
            raise permission_denied("run_cron", "cron")
    elif not context.config.is_development:
        raise permission_denied("run_cron", "cron", reason="cron secret not configured")


@api_handler
def cron_generate_payments(
    context: ServiceContext, authorization: Optional[str], params: Params = None
) -> Response:
    _require_cron_auth(context, authorization)
    result = PaymentService(context).run_monthly_billing(
        _int_param(params, "year"), _int_param(params, "month")
    )
    return 200, {"success": True, **result.model_dump(), "timestamp": context.now().isoformat()}


@api_handler
def cron_reminders(
    context: ServiceContext,
    authorization: Optional[str],
    notifications: Optional[NotificationService] = None,
) -> Response:
    _require_cron_auth(context, authorization)
    notifications = notifications or NotificationService(context)
    return 200, {
        "success": True,
        "notifications": {
            "expiring_contracts": notifications.notify_expiring_contracts(EXPIRY_WINDOW_DAYS),
            "overdue_payments": notifications.notify_overdue_payments(),
        },
        "timestamp": context.now().isoformat(),
    }
