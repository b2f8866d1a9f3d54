"""
Monthly payment model.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..enums import PaymentStatus
from .db_base import Base, TimestampMixin, UUIDMixin


class Payment(Base, UUIDMixin, TimestampMixin):
    """Expected rent for one contract and one calendar month, plus what was received."""

    __tablename__ = "payment"

    contract_id = Column(String(36), ForeignKey("contract.id"), nullable=False)
    period_year = Column(Integer, nullable=False)
    period_month = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False)
    paid_amount = Column(Float, nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(PaymentStatus, name="payment_status", native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    notes = Column(Text, nullable=True)

    contract = relationship("Contract", back_populates="payments")

    __table_args__ = (
        # Idempotency key for monthly generation
        UniqueConstraint(
            "contract_id", "period_year", "period_month", name="uq_payment_contract_period"
        ),
        Index("ix_payment_period", "period_year", "period_month"),
        Index("ix_payment_status_due", "status", "due_date"),
    )

    @property
    def outstanding(self) -> float:
        return (self.amount or 0) - (self.paid_amount or 0)

    def __repr__(self) -> str:
        return (
            f"<Payment(contract_id='{self.contract_id}', "
            f"period={self.period_year}-{self.period_month:02d}, status='{self.status}')>"
        )
