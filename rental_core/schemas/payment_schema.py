"""
Pydantic schemas for monthly payments and billing runs.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..enums import PaymentStatus


class PaymentCreate(BaseModel):
    """Manual payment row; generated rows come from PaymentService.generate_monthly_payments."""

    contract_id: str
    period_year: int
    period_month: int
    amount: float
    due_date: Optional[date] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PaymentRecord(BaseModel):
    """Money received against one payment row."""

    amount: float
    paid_date: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PaymentRead(BaseModel):
    id: str
    contract_id: str
    period_year: int
    period_month: int
    amount: float
    paid_amount: float
    due_date: date
    paid_date: Optional[datetime] = None
    status: PaymentStatus
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GenerationResult(BaseModel):
    created: int = 0
    skipped: int = 0


class BillingRunResult(BaseModel):
    """Outcome of the scheduled billing job for one period."""

    generated: int
    skipped: int
    auto_marked_overdue: int
    period: str


class OverduePayment(BaseModel):
    """An OVERDUE row with the labels the reminders need."""

    payment_id: str
    contract_id: str
    room_number: str
    building_name: str
    tenant_name: str
    outstanding: float
    due_date: date
    days_past_due: int
