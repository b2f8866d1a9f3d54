"""
Tenant (lessee) model.

Just the data structure - no business logic or class methods.
"""

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .db_base import Base, TimestampMixin, UUIDMixin


class Tenant(Base, UUIDMixin, TimestampMixin):
    """A person renting a room."""

    __tablename__ = "tenant"

    name = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=False, unique=True)
    email = Column(String(200), nullable=True)
    id_card = Column(String(20), nullable=True)
    line_user_id = Column(String(100), nullable=True, unique=True)
    address = Column(Text, nullable=True)

    contracts = relationship("Contract", back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant(id='{self.id}', name='{self.name}', phone='{self.phone}')>"
