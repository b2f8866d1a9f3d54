"""
Shared column mixins and declarative base for the rental models.

Keeps the models portable between SQLite (tests, local development)
and PostgreSQL (production).
"""

import uuid
from typing import Any

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base

from ..utils.date_utils import utc_now

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class UUIDMixin:
    """Simple mixin for UUID primary keys."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
