"""
Service layer decorators for reducing code duplication.

This module provides the error-handling wrapper used by every public
service method: domain errors pass through untouched, anything else is
logged and wrapped in a ServiceError.
"""

from functools import wraps
from typing import Any, Callable, Optional, TypeVar, cast

from ..exceptions import BaseError

F = TypeVar("F", bound=Callable[..., Any])


def handle_service_errors(operation_name: Optional[str] = None):
    """
    Decorator to convert unexpected exceptions raised by a service method.

    Args:
        operation_name: Optional name for the operation. If not provided,
                       uses the function name.

    Usage:
        @handle_service_errors()
        def create_room(self, ...):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            op_name = operation_name or func.__name__
            try:
                return func(self, *args, **kwargs)
            except BaseError:
                raise
            except Exception as e:
                entity_id = args[0] if args and isinstance(args[0], str) else None
                self._handle_service_exception(op_name, e, entity_id)

        return cast(F, wrapper)

    return decorator
