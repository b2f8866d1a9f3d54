"""
Base service implementation with common functionality for all services.

This module provides a base class with shared methods and patterns to
reduce duplication across service implementations.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, NoReturn, Optional

from sqlalchemy.orm import Session

from ..context.service_context import ServiceContext
from ..exceptions import ErrorCode, ServiceError
from ..utils.logger import get_logger


class SessionManagedService:
    """
    Service that runs each operation in its own unit of work.

    Every `transaction()` block opens a fresh session from the context's
    DatabaseManager and commits or rolls back as one unit.
    """

    def __init__(self, context: ServiceContext):
        """
        Initialize service.

        Args:
            context: Injected configuration, database manager and clock
        """
        self.context = context
        self.config = context.config
        self.logger = get_logger()

    def now(self) -> datetime:
        return self.context.now()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for transactional operations.

        Usage:
            with self.transaction() as session:
                session.add(something)
                # Auto-commits on success, rollback on exception
        """
        with self.context.db_manager.session_scope() as session:
            yield session

    def _handle_service_exception(
        self, operation: str, exception: Exception, entity_id: Optional[str] = None
    ) -> NoReturn:
        """
        Log an unexpected exception and re-raise it wrapped in a ServiceError.

        Args:
            operation: Operation being performed
            exception: Exception that occurred
            entity_id: Optional ID of the entity involved
        """
        error_msg = f"Error in {operation}: {str(exception)}"
        self.logger.error(
            error_msg,
            extra={
                "operation": operation,
                "entity_id": entity_id,
                "error_type": type(exception).__name__,
                "error_details": str(exception),
            },
        )
        raise ServiceError(
            error_msg,
            error_code=ErrorCode.INTERNAL_ERROR,
            operation=operation,
            entity_id=entity_id,
            cause=exception,
        ) from exception

    @staticmethod
    def _apply_updates(record: Any, updates: Dict[str, Any]) -> List[str]:
        """Set each non-None value on record; return the names that changed."""
        changed = []
        for key, value in updates.items():
            if value is not None and hasattr(record, key) and getattr(record, key) != value:
                setattr(record, key, value)
                changed.append(key)
        return changed
