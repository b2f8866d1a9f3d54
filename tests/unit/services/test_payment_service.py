"""Tests for monthly payment generation, recording and aging."""

from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Query

from rental_core.enums import ContractStatus, PaymentStatus
from rental_core.exceptions import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from rental_core.schemas.payment_schema import PaymentCreate, PaymentRecord
from tests.fixtures.factories import ContractFactory, PaymentFactory


class TestGenerateMonthlyPayments:
    @pytest.fixture
    def contracts(self, db_session):
        return {
            "active": ContractFactory(rent_amount=5000),
            "expiring": ContractFactory(status=ContractStatus.EXPIRING, rent_amount=7200),
            "draft": ContractFactory(status=ContractStatus.DRAFT),
            "terminated": ContractFactory(status=ContractStatus.TERMINATED),
            "future": ContractFactory(start_date=date(2025, 3, 1), end_date=date(2026, 2, 28)),
        }

    def test_one_row_per_billable_contract(self, payment_service, contracts):
        result = payment_service.generate_monthly_payments(2025, 1)

        assert result.created == 2
        assert result.skipped == 0

        rows = {p.contract_id: p for p in payment_service.list_payments(period_year=2025, period_month=1)}
        assert set(rows) == {contracts["active"].id, contracts["expiring"].id}
        expiring_row = rows[contracts["expiring"].id]
        assert expiring_row.amount == 7200
        assert expiring_row.paid_amount == 0
        assert expiring_row.due_date == date(2025, 1, 5)
        assert expiring_row.status == PaymentStatus.PENDING

    def test_second_run_creates_nothing(self, payment_service, contracts):
        payment_service.generate_monthly_payments(2025, 1)

        again = payment_service.generate_monthly_payments(2025, 1)

        assert again.created == 0
        assert again.skipped == 2
        assert len(payment_service.list_payments()) == 2

    def test_existing_row_is_kept(self, payment_service, db_session):
        existing = PaymentFactory(paid_amount=1000, status=PaymentStatus.PARTIAL)

        result = payment_service.generate_monthly_payments(2025, 1)

        assert result.created == 0
        assert result.skipped == 1
        assert payment_service.get_payment(existing.id).paid_amount == 1000

    def test_concurrent_insert_counts_as_skipped(self, payment_service, db_session):
        existing = PaymentFactory()

        # Existence check misses the row, so the unique key decides
        with patch.object(Query, "first", return_value=None):
            result = payment_service.generate_monthly_payments(2025, 1)

        assert result.created == 0
        assert result.skipped == 1
        rows = payment_service.list_payments(contract_id=existing.contract_id)
        assert [p.id for p in rows] == [existing.id]

    def test_term_must_overlap_month(self, payment_service, db_session):
        ContractFactory(start_date=date(2024, 2, 1), end_date=date(2024, 12, 31))
        ContractFactory(start_date=date(2025, 1, 31), end_date=date(2026, 1, 30))

        result = payment_service.generate_monthly_payments(2025, 1)

        assert result.created == 1

    @pytest.mark.parametrize("year,month", [(2025, 0), (2025, 13), (25, 1)])
    def test_invalid_period(self, payment_service, db_session, year, month):
        with pytest.raises(ValidationError):
            payment_service.generate_monthly_payments(year, month)


class TestAutoMarkOverdue:
    def test_only_past_due_open_rows_are_aged(self, payment_service, db_session):
        eligible = [
            PaymentFactory(due_date=date(2025, 1, 5)),
            PaymentFactory(due_date=date(2024, 12, 5), status=PaymentStatus.PARTIAL, paid_amount=100),
        ]
        untouched = {
            PaymentFactory(due_date=date(2025, 1, 5), status=PaymentStatus.PAID).id: PaymentStatus.PAID,
            PaymentFactory(due_date=date(2025, 1, 15)).id: PaymentStatus.PENDING,
            PaymentFactory(due_date=date(2025, 2, 5)).id: PaymentStatus.PENDING,
            PaymentFactory(due_date=date(2024, 11, 5), status=PaymentStatus.CANCELLED).id: PaymentStatus.CANCELLED,
            PaymentFactory(due_date=date(2024, 10, 5), status=PaymentStatus.OVERDUE).id: PaymentStatus.OVERDUE,
        }

        count = payment_service.auto_mark_overdue()

        assert count == 2
        for payment in eligible:
            assert payment_service.get_payment(payment.id).status == PaymentStatus.OVERDUE
        for payment_id, status in untouched.items():
            assert payment_service.get_payment(payment_id).status == status

    def test_nothing_to_age(self, payment_service, db_session):
        assert payment_service.auto_mark_overdue() == 0


class TestRecordPayment:
    def test_partial_then_paid(self, payment_service, db_session):
        payment = PaymentFactory(amount=5000)

        partial = payment_service.record_payment(payment.id, PaymentRecord(amount=2000, notes="cash"))
        assert partial.status == PaymentStatus.PARTIAL
        assert partial.paid_amount == 2000
        assert partial.paid_date is not None

        paid = payment_service.record_payment(payment.id, PaymentRecord(amount=3000, notes="transfer"))
        assert paid.status == PaymentStatus.PAID
        assert paid.paid_amount == 5000
        assert paid.notes == "cash\ntransfer"

    def test_overpayment_is_paid(self, payment_service, db_session):
        payment = PaymentFactory(amount=5000)

        result = payment_service.record_payment(payment.id, PaymentRecord(amount=6000))

        assert result.status == PaymentStatus.PAID
        assert result.paid_amount == 6000

    def test_overdue_row_can_be_settled(self, payment_service, db_session):
        payment = PaymentFactory(status=PaymentStatus.OVERDUE)

        result = payment_service.record_payment(payment.id, PaymentRecord(amount=payment.amount))

        assert result.status == PaymentStatus.PAID

    def test_recording_touches_only_that_row(self, payment_service, db_session):
        contract = ContractFactory()
        january = PaymentFactory(contract=contract)
        february = PaymentFactory(contract=contract, period_month=2)

        payment_service.record_payment(january.id, PaymentRecord(amount=5000))

        assert payment_service.get_payment(february.id).status == PaymentStatus.PENDING
        assert payment_service.get_payment(february.id).paid_amount == 0

    @pytest.mark.parametrize("amount", [0, -10])
    def test_amount_must_be_positive(self, payment_service, db_session, amount):
        payment = PaymentFactory()

        with pytest.raises(ValidationError):
            payment_service.record_payment(payment.id, PaymentRecord(amount=amount))

    def test_cancelled_row_is_refused(self, payment_service, db_session):
        payment = PaymentFactory(status=PaymentStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            payment_service.record_payment(payment.id, PaymentRecord(amount=100))

    def test_unknown_payment(self, payment_service, db_session):
        with pytest.raises(NotFoundError):
            payment_service.record_payment("missing", PaymentRecord(amount=100))


class TestManualRows:
    def test_create_payment_defaults_due_date(self, payment_service, db_session):
        contract = ContractFactory()

        payment = payment_service.create_payment(
            PaymentCreate(contract_id=contract.id, period_year=2025, period_month=3, amount=5000)
        )

        assert payment.due_date == date(2025, 3, 5)
        assert payment.status == PaymentStatus.PENDING

    def test_duplicate_period_is_a_conflict(self, payment_service, db_session):
        existing = PaymentFactory()

        with pytest.raises(ConflictError):
            payment_service.create_payment(
                PaymentCreate(
                    contract_id=existing.contract_id, period_year=2025, period_month=1, amount=5000
                )
            )

    def test_cancel_and_illegal_moves(self, payment_service, db_session):
        pending = PaymentFactory()
        paid = PaymentFactory(status=PaymentStatus.PAID)

        assert payment_service.cancel_payment(pending.id).status == PaymentStatus.CANCELLED
        with pytest.raises(InvalidTransitionError):
            payment_service.mark_overdue(paid.id)

    def test_list_overdue_labels(self, payment_service, db_session):
        payment = PaymentFactory(status=PaymentStatus.OVERDUE, paid_amount=1500)

        rows = payment_service.list_overdue()

        assert len(rows) == 1
        assert rows[0].payment_id == payment.id
        assert rows[0].outstanding == 3500
        assert rows[0].days_past_due == 10
        assert rows[0].room_number == payment.contract.room.room_number


class TestMonthlyBilling:
    def test_generates_then_ages(self, payment_service, clock, db_session):
        clock.set(datetime(2025, 1, 1, 0, 5, tzinfo=timezone.utc))
        ContractFactory()
        stale = PaymentFactory(period_year=2024, period_month=12, due_date=date(2024, 12, 5))

        result = payment_service.run_monthly_billing()

        assert result.period == "2025-01"
        assert result.generated == 2
        assert result.skipped == 0
        assert result.auto_marked_overdue == 1
        assert payment_service.get_payment(stale.id).status == PaymentStatus.OVERDUE
