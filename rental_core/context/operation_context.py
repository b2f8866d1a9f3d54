"""
Entry/exit logging and correlation ids for service operations.

`@operation()` wraps a public service method: it reuses (or starts) the
thread's correlation id, logs ENTER and EXIT with the duration, and adds
the operation name to any BaseError that escapes.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger

# Signature payloads are base64 images; longer strings are logged by length only
MAX_LOGGED_STRING = 200
MAX_LOGGED_ITEMS = 10


class OperationContext:
    """State of one running operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())
        self.correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)
        self.context = {**context, "operation_id": self.operation_id, "correlation_id": self.correlation_id}
        self.metrics: Dict[str, Union[int, float]] = {}
        self._started = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 2)

    def add_metric(self, name: str, value: Union[int, float]) -> None:
        self.metrics[name] = value


class OperationHandler:
    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context) -> Iterator[OperationContext]:
        op = OperationContext(name, **context)
        self.logger.info(f"ENTER: {name}", extra=op.context)
        try:
            yield op
        except BaseError as e:
            e.add_context(
                operation_name=name,
                operation_id=op.operation_id,
                operation_duration_ms=op.duration_ms,
            )
            # The error has already logged its own details
            self.logger.warning(
                f"FAILED: {name} -> {e.error_code.value}",
                extra={**op.context, "duration_ms": op.duration_ms, "error_id": e.error_id},
            )
            raise
        except Exception as e:
            self.logger.exception(
                f"FAILED: {name} -> {type(e).__name__}: {e}",
                extra={**op.context, "duration_ms": op.duration_ms},
            )
            raise
        self.logger.info(
            f"EXIT: {name}",
            extra={**op.context, "duration_ms": op.duration_ms, **op.metrics},
        )


F = TypeVar("F", bound=Callable[..., Any])


def _sanitize_param(param: Any) -> Any:
    """Loggable view of an argument: small scalars as-is, everything else summarised."""
    if param is None or isinstance(param, (bool, int, float)):
        return param
    if isinstance(param, str):
        return param if len(param) <= MAX_LOGGED_STRING else f"str[{len(param)}]"
    if isinstance(param, dict) and len(param) < MAX_LOGGED_ITEMS:
        return {key: _sanitize_param(value) for key, value in param.items()}
    if isinstance(param, (list, tuple)) and len(param) < MAX_LOGGED_ITEMS:
        return [_sanitize_param(item) for item in param]
    return type(param).__name__


def operation(name: Optional[str] = None):
    """
    Decorator for public service methods.

    Args:
        name: Operation name; defaults to `ClassName.method`
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            op_name = name or f"{type(self).__name__}.{func.__name__}"
            get_logger().debug(
                f"{op_name} called",
                extra={
                    "call_args": [_sanitize_param(a) for a in args],
                    "call_kwargs": {k: _sanitize_param(v) for k, v in kwargs.items()},
                },
            )
            with OperationHandler().operation(op_name, service=type(self).__name__):
                return func(self, *args, **kwargs)

        return cast(F, wrapper)

    return decorator
