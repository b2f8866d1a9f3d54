"""
Error types for the rental core.

Every error carries a stable code, the HTTP status the API layer answers
with, and a context dict that ends up both in the log line and in the
response body. The current correlation id is attached automatically.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

_thread_local = threading.local()

# Context keys that stay in the logs but never reach a response body
_PRIVATE_CONTEXT_KEYS = ("cause", "error_id", "correlation_id")


class ErrorCode(str, Enum):
    """Codes returned in `error.code`; the leading digit groups them."""

    # System (1xxx)
    INTERNAL_ERROR = "1000"
    CONFIGURATION_ERROR = "1003"

    # Input (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resources (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    CONFLICT = "3002"

    # Lifecycle and access (4xxx)
    INVALID_STATE_TRANSITION = "4001"
    PERMISSION_DENIED = "4003"
    PRECONDITION_FAILED = "4004"


class BaseError(Exception):
    """
    Root of every error the services raise on purpose.

    Args:
        message: Human-readable message, returned to API callers
        error_code: Stable machine-readable code
        status_code: HTTP status for the API layer
        cause: Underlying exception, summarised into the context
        **context: Identifiers and values describing what went wrong
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.error_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.context = context
        self.context["error_id"] = self.error_id

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        if cause is not None:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        super().__init__(message)
        self._log()

    def _log(self) -> None:
        # Deferred: the logger module imports this one
        from .utils.logger import get_logger

        logger = get_logger()
        extra = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "context": {k: v for k, v in self.context.items() if k != "cause"},
        }
        summary = f"{self.error_code.value}: {self.message}"
        if self.status_code >= 500:
            logger.error(f"Server error {summary}", extra=extra, exc_info=self.cause)
        else:
            logger.warning(f"Client error {summary}", extra=extra)

    def public_context(self) -> Dict[str, Any]:
        return {k: v for k, v in self.context.items() if k not in _PRIVATE_CONTEXT_KEYS}

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Response body for this error.

        The cause is summarised (type and message) only when asked for.
        """
        error: Dict[str, Any] = {
            "id": self.error_id,
            "code": self.error_code.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": self.public_context(),
        }
        if "correlation_id" in self.context:
            error["correlation_id"] = self.context["correlation_id"]
        if include_cause and "cause" in self.context:
            error["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
        return {"error": error}

    def add_context(self, **kwargs: Any) -> "BaseError":
        self.context.update(kwargs)
        return self


class ServiceError(BaseError):
    """Unexpected failure inside a service operation (500)."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class NotFoundError(BaseError):
    """A referenced building, room, tenant, contract or payment does not exist."""

    def __init__(self, message: str, cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.NOT_FOUND, 404, cause, **context)


class ValidationError(BaseError):
    """Rejected input; `field` names the offending value when there is one."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ConflictError(BaseError):
    """Duplicate unique key or a resource already held by another record."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFLICT,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, 409, cause, **context)


class InvalidStateError(BaseError):
    """Operation not permitted in the entity's current lifecycle state."""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if current_state:
            context["current_state"] = current_state
        super().__init__(message, ErrorCode.PRECONDITION_FAILED, 400, cause, **context)


class InvalidTransitionError(BaseError):
    """Requested status change is not an edge of the transition table."""

    def __init__(
        self,
        message: str,
        from_state: str,
        to_state: str,
        cause: Optional[Exception] = None,
        **context,
    ):
        context["from_state"] = from_state
        context["to_state"] = to_state
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(message, ErrorCode.INVALID_STATE_TRANSITION, 400, cause, **context)


def _identifier_suffix(identifiers: Dict[str, Any]) -> str:
    if not identifiers:
        return ""
    return ": " + ", ".join(f"{k}={v}" for k, v in identifiers.items())


def not_found(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> NotFoundError:
    """NotFoundError naming the resource and the ids that were looked up."""
    return NotFoundError(
        f"{resource_type} not found{_identifier_suffix(identifiers)}",
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def duplicate(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> ConflictError:
    """409 with the DUPLICATE code, e.g. a second signature for the same role."""
    return ConflictError(
        f"Duplicate {resource_type}{_identifier_suffix(identifiers)}",
        error_code=ErrorCode.DUPLICATE,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    ValidationError for one field.

    Args:
        field: Field that failed validation
        value: The rejected value, stored as a string
        reason: Why it was rejected
        cause: Original exception if any
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def invalid_transition(entity: str, from_state: Any, to_state: Any, **context) -> InvalidTransitionError:
    """Rejected lifecycle move, naming both states by value."""
    from_value = getattr(from_state, "value", from_state)
    to_value = getattr(to_state, "value", to_state)
    return InvalidTransitionError(
        f"Invalid {entity} transition: {from_value} -> {to_value}",
        from_state=from_value,
        to_state=to_value,
        entity=entity,
        **context,
    )


def permission_denied(
    action: str, resource: str, cause: Optional[Exception] = None, **context
) -> BaseError:
    """401 for a bad signing link, webhook signature or cron secret."""
    return BaseError(
        f"Permission denied: {action} on {resource}",
        error_code=ErrorCode.PERMISSION_DENIED,
        status_code=401,
        cause=cause,
        action=action,
        resource=resource,
        **context,
    )


# Correlation id for the current thread; set by the operation wrapper
def set_correlation_id(correlation_id: str) -> None:
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
