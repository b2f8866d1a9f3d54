"""
Monthly payment generation, recording and overdue aging.

Generation is idempotent: the (contract_id, period_year, period_month)
unique constraint is the key, and a row that already exists, including one
inserted by a concurrent run, is counted as skipped.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..constants import PAYMENT_DUE_DAY
from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract
from ..db.db_payment_models import Payment
from ..enums import AGEABLE_PAYMENT_STATUSES, BILLABLE_STATUSES, PaymentStatus
from ..exceptions import InvalidStateError, duplicate, invalid_transition
from ..lifecycle import is_valid_payment_transition
from ..schemas.payment_schema import (
    BillingRunResult,
    GenerationResult,
    OverduePayment,
    PaymentCreate,
    PaymentRead,
    PaymentRecord,
)
from ..utils.crud_helpers import require_record
from ..utils.date_utils import days_since, month_bounds, to_date
from ..utils.validators import optional_text, require_period, require_positive
from .base_service import SessionManagedService


def _append_note(existing: Optional[str], note: Optional[str]) -> Optional[str]:
    note = optional_text(note)
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}\n{note}"


class PaymentService(SessionManagedService):
    """Rent payment rows: one per contract per calendar month."""

    @operation()
    @handle_service_errors()
    def generate_monthly_payments(self, year: int, month: int) -> GenerationResult:
        """
        Materialise one PENDING payment per billable contract for the period.

        Contracts must be ACTIVE or EXPIRING and their term must overlap the
        month. Each contract is decided in its own unit of work.
        """
        require_period(year, month)
        month_start, month_end = month_bounds(year, month)

        with self.transaction() as session:
            contracts = (
                session.query(Contract.id, Contract.rent_amount)
                .filter(
                    Contract.status.in_(BILLABLE_STATUSES),
                    Contract.start_date <= month_end,
                    Contract.end_date >= month_start,
                )
                .all()
            )

        result = GenerationResult()
        for contract_id, rent_amount in contracts:
            if self._create_period_row(contract_id, rent_amount, year, month):
                result.created += 1
            else:
                result.skipped += 1

        self.logger.info(
            "Generated monthly payments",
            extra={
                "period": f"{year}-{month:02d}",
                "created_count": result.created,
                "skipped_count": result.skipped,
            },
        )
        return result

    def _create_period_row(self, contract_id: str, rent_amount: float, year: int, month: int) -> bool:
        try:
            with self.transaction() as session:
                existing = (
                    session.query(Payment.id)
                    .filter(
                        Payment.contract_id == contract_id,
                        Payment.period_year == year,
                        Payment.period_month == month,
                    )
                    .first()
                )
                if existing:
                    return False
                session.add(
                    Payment(
                        contract_id=contract_id,
                        period_year=year,
                        period_month=month,
                        amount=rent_amount,
                        paid_amount=0,
                        due_date=date(year, month, PAYMENT_DUE_DAY),
                        status=PaymentStatus.PENDING,
                    )
                )
                session.flush()
                return True
        except IntegrityError:
            # Another run inserted the same period first
            self.logger.info(
                "Payment already generated concurrently",
                extra={"contract_id": contract_id, "period": f"{year}-{month:02d}"},
            )
            return False

    @operation()
    @handle_service_errors()
    def auto_mark_overdue(self) -> int:
        """Flip PENDING/PARTIAL rows whose due date has passed to OVERDUE; return the count."""
        today = to_date(self.now())
        with self.transaction() as session:
            count = (
                session.query(Payment)
                .filter(
                    Payment.status.in_(AGEABLE_PAYMENT_STATUSES),
                    Payment.due_date < today,
                )
                .update({Payment.status: PaymentStatus.OVERDUE}, synchronize_session=False)
            )
        self.logger.info("Marked overdue payments", extra={"count": count})
        return count

    @operation()
    @handle_service_errors()
    def record_payment(self, payment_id: str, data: PaymentRecord) -> PaymentRead:
        """
        Add received money to one payment row.

        Status becomes PAID once the cumulative amount covers the expected
        rent, otherwise PARTIAL. Only this row is touched.
        """
        amount = require_positive(data.amount, "amount")
        with self.transaction() as session:
            payment = require_record(session, Payment, payment_id)
            if payment.status == PaymentStatus.CANCELLED:
                raise InvalidStateError(
                    "Cannot record money against a cancelled payment",
                    current_state=PaymentStatus.CANCELLED.value,
                    payment_id=payment_id,
                )

            total_paid = (payment.paid_amount or 0) + amount
            payment.paid_amount = total_paid
            payment.status = PaymentStatus.PAID if total_paid >= payment.amount else PaymentStatus.PARTIAL
            payment.paid_date = data.paid_date or self.now()
            payment.notes = _append_note(payment.notes, data.notes)
            session.flush()

            self.logger.info(
                "Recorded payment",
                extra={
                    "payment_id": payment_id,
                    "amount": amount,
                    "paid_total": total_paid,
                    "status": PaymentStatus(payment.status).value,
                },
            )
            return PaymentRead.model_validate(payment)

    @operation()
    @handle_service_errors()
    def list_payments(
        self,
        contract_id: Optional[str] = None,
        period_year: Optional[int] = None,
        period_month: Optional[int] = None,
        status: Optional[PaymentStatus] = None,
    ) -> List[PaymentRead]:
        with self.transaction() as session:
            query = session.query(Payment)
            if contract_id:
                query = query.filter(Payment.contract_id == contract_id)
            if period_year is not None:
                query = query.filter(Payment.period_year == period_year)
            if period_month is not None:
                query = query.filter(Payment.period_month == period_month)
            if status:
                query = query.filter(Payment.status == PaymentStatus(status))
            rows = query.order_by(Payment.period_year.desc(), Payment.period_month.desc()).all()
            return [PaymentRead.model_validate(row) for row in rows]

    @operation()
    @handle_service_errors()
    def get_payment(self, payment_id: str) -> PaymentRead:
        with self.transaction() as session:
            return PaymentRead.model_validate(require_record(session, Payment, payment_id))

    @operation()
    @handle_service_errors()
    def create_payment(self, data: PaymentCreate) -> PaymentRead:
        """Manual payment entry, bound by the same one-row-per-period rule."""
        require_period(data.period_year, data.period_month)
        amount = require_positive(data.amount, "amount")
        identifiers = {
            "contract_id": data.contract_id,
            "period_year": data.period_year,
            "period_month": data.period_month,
        }
        try:
            with self.transaction() as session:
                require_record(session, Contract, data.contract_id)
                exists = (
                    session.query(Payment.id)
                    .filter(
                        Payment.contract_id == data.contract_id,
                        Payment.period_year == data.period_year,
                        Payment.period_month == data.period_month,
                    )
                    .first()
                )
                if exists:
                    raise duplicate("Payment", **identifiers)
                payment = Payment(
                    contract_id=data.contract_id,
                    period_year=data.period_year,
                    period_month=data.period_month,
                    amount=amount,
                    paid_amount=0,
                    due_date=data.due_date or date(data.period_year, data.period_month, PAYMENT_DUE_DAY),
                    status=PaymentStatus.PENDING,
                    notes=optional_text(data.notes),
                )
                session.add(payment)
                session.flush()
                return PaymentRead.model_validate(payment)
        except IntegrityError as e:
            raise duplicate("Payment", cause=e, **identifiers) from e

    @operation()
    @handle_service_errors()
    def mark_overdue(self, payment_id: str) -> PaymentRead:
        return self._move_payment(payment_id, PaymentStatus.OVERDUE)

    @operation()
    @handle_service_errors()
    def cancel_payment(self, payment_id: str) -> PaymentRead:
        return self._move_payment(payment_id, PaymentStatus.CANCELLED)

    def _move_payment(self, payment_id: str, target: PaymentStatus) -> PaymentRead:
        with self.transaction() as session:
            payment = require_record(session, Payment, payment_id)
            current = PaymentStatus(payment.status)
            if not is_valid_payment_transition(current, target):
                raise invalid_transition("payment", current, target, payment_id=payment_id)
            payment.status = target
            session.flush()
            return PaymentRead.model_validate(payment)

    @operation()
    @handle_service_errors()
    def list_overdue(self) -> List[OverduePayment]:
        """OVERDUE rows with room and tenant labels, oldest due date first."""
        now = self.now()
        with self.transaction() as session:
            rows = (
                session.query(Payment)
                .filter(Payment.status == PaymentStatus.OVERDUE)
                .order_by(Payment.due_date)
                .all()
            )
            return [
                OverduePayment(
                    payment_id=p.id,
                    contract_id=p.contract_id,
                    room_number=p.contract.room.room_number,
                    building_name=p.contract.room.building.name,
                    tenant_name=p.contract.tenant.name,
                    outstanding=p.outstanding,
                    due_date=p.due_date,
                    days_past_due=days_since(p.due_date, now),
                )
                for p in rows
            ]

    @operation()
    @handle_service_errors()
    def run_monthly_billing(self, year: Optional[int] = None, month: Optional[int] = None) -> BillingRunResult:
        """Scheduled job: generate the period's rows, then age everything past due."""
        now: datetime = self.now()
        year = year or now.year
        month = month or now.month
        generated = self.generate_monthly_payments(year, month)
        marked = self.auto_mark_overdue()
        return BillingRunResult(
            generated=generated.created,
            skipped=generated.skipped,
            auto_marked_overdue=marked,
            period=f"{year}-{month:02d}",
        )
