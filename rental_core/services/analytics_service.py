"""
Read-side rollups over payments, contracts and rooms.

Nothing here writes. The snapshot bundles every view for the AI summary
layer and the dashboard.
"""

from collections import OrderedDict
from datetime import timedelta
from typing import List

from sqlalchemy import func

from ..constants import EXPIRY_WINDOW_DAYS, INCOME_TREND_MONTHS, RECENT_ACTIVITY_DAYS
from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract, ContractStateTransition
from ..db.db_payment_models import Payment
from ..db.db_property_models import Building, Room
from ..enums import BILLABLE_STATUSES, ContractStatus, PaymentStatus, RoomStatus
from ..schemas.analytics_schema import (
    AnalyticsSnapshot,
    BillingSummary,
    BuildingIncome,
    CollectionReport,
    ExpiringItem,
    MonthlyIncome,
    OccupancyReport,
    OverdueItem,
    RoomBelowInflation,
    RoomIncome,
    SnapshotCollection,
    SnapshotContracts,
    SnapshotIncome,
    SnapshotInflation,
    SnapshotOccupancy,
    SnapshotPeriod,
    TrendPoint,
    VacantRoom,
)
from ..utils.date_utils import days_since, days_until, shift_month, to_date, trailing_months
from ..utils.rent_math import round_half_up
from .base_service import SessionManagedService
from .inflation_service import InflationService


def percent_change(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def percent_of(part: float, whole: float) -> int:
    return round_half_up(part / whole * 100) if whole > 0 else 0


class AnalyticsService(SessionManagedService):
    """Income, occupancy, collection and expiry views."""

    @operation()
    @handle_service_errors()
    def get_monthly_income(self, year: int, month: int) -> MonthlyIncome:
        """Money received for the period, grouped by building."""
        with self.transaction() as session:
            rows = (
                session.query(Building.id, Building.name, Payment.paid_amount)
                .join(Contract, Payment.contract_id == Contract.id)
                .join(Room, Contract.room_id == Room.id)
                .join(Building, Room.building_id == Building.id)
                .filter(Payment.period_year == year, Payment.period_month == month)
                .order_by(Building.name)
                .all()
            )

        by_building: "OrderedDict[str, BuildingIncome]" = OrderedDict()
        for building_id, name, paid in rows:
            entry = by_building.setdefault(
                building_id, BuildingIncome(building_id=building_id, name=name, amount=0)
            )
            entry.amount += paid or 0

        buildings = list(by_building.values())
        return MonthlyIncome(
            year=year,
            month=month,
            total=sum(b.amount for b in buildings),
            by_building=buildings,
        )

    @operation()
    @handle_service_errors()
    def get_billing_summary(self, year: int, month: int) -> BillingSummary:
        """Expected rent by building, with what PAID rows brought in and what the rest still owe."""
        with self.transaction() as session:
            payments = (
                session.query(Payment)
                .filter(Payment.period_year == year, Payment.period_month == month)
                .all()
            )
            by_building: "OrderedDict[str, BuildingIncome]" = OrderedDict()
            collected = 0.0
            pending = 0.0
            for p in payments:
                building = p.contract.room.building
                entry = by_building.setdefault(
                    building.id, BuildingIncome(building_id=building.id, name=building.name, amount=0)
                )
                entry.amount += p.amount
                if p.status == PaymentStatus.PAID:
                    collected += p.paid_amount or 0
                else:
                    pending += p.outstanding

        buildings = list(by_building.values())
        return BillingSummary(
            year=year,
            month=month,
            total=sum(b.amount for b in buildings),
            by_building=buildings,
            collected=collected,
            pending=pending,
        )

    @operation()
    @handle_service_errors()
    def get_income_by_room(self, year: int, month: int) -> List[RoomIncome]:
        with self.transaction() as session:
            payments = (
                session.query(Payment)
                .filter(Payment.period_year == year, Payment.period_month == month)
                .all()
            )
            result = []
            for p in payments:
                room = p.contract.room
                if p.status == PaymentStatus.PAID:
                    status = PaymentStatus.PAID
                elif (p.paid_amount or 0) > 0:
                    status = PaymentStatus.PARTIAL
                elif p.status == PaymentStatus.OVERDUE:
                    status = PaymentStatus.OVERDUE
                else:
                    status = PaymentStatus.PENDING
                result.append(
                    RoomIncome(
                        room_id=room.id,
                        room_number=room.room_number,
                        building_name=room.building.name,
                        expected=p.amount,
                        collected=p.paid_amount or 0,
                        status=status,
                    )
                )
            return result

    @operation()
    @handle_service_errors()
    def get_occupancy(self) -> OccupancyReport:
        with self.transaction() as session:
            counts = {
                RoomStatus(status): count
                for status, count in session.query(Room.status, func.count(Room.id))
                .group_by(Room.status)
                .all()
            }
        total = sum(counts.values())
        occupied = counts.get(RoomStatus.OCCUPIED, 0)
        return OccupancyReport(
            date=self.now(),
            total_rooms=total,
            occupied_rooms=occupied,
            vacant_rooms=counts.get(RoomStatus.VACANT, 0),
            maintenance_rooms=counts.get(RoomStatus.MAINTENANCE, 0),
            occupancy_rate=percent_of(occupied, total),
        )

    @operation()
    @handle_service_errors()
    def get_collection_rate(self, year: int, month: int) -> CollectionReport:
        with self.transaction() as session:
            payments = (
                session.query(Payment)
                .filter(Payment.period_year == year, Payment.period_month == month)
                .all()
            )
            expected = sum(p.amount for p in payments)
            collected = sum(p.paid_amount or 0 for p in payments)
            overdue_rows = [p for p in payments if p.status == PaymentStatus.OVERDUE]
            return CollectionReport(
                expected=expected,
                collected=collected,
                rate=percent_of(collected, expected),
                overdue=sum(p.outstanding for p in overdue_rows),
                overdue_count=len(overdue_rows),
            )

    @operation()
    @handle_service_errors()
    def get_income_trend(self, months: int = INCOME_TREND_MONTHS) -> List[TrendPoint]:
        """Received rent of PAID rows for the last `months` periods, oldest first."""
        now = self.now()
        periods = trailing_months(now.year, now.month, months)
        with self.transaction() as session:
            totals = {
                (year, month): total
                for year, month, total in session.query(
                    Payment.period_year, Payment.period_month, func.sum(Payment.paid_amount)
                )
                .filter(Payment.status == PaymentStatus.PAID)
                .group_by(Payment.period_year, Payment.period_month)
                .all()
            }
        return [
            TrendPoint(year=year, month=month, total=totals.get((year, month)) or 0)
            for year, month in periods
        ]

    @operation()
    @handle_service_errors()
    def get_snapshot(self, year: int, month: int) -> AnalyticsSnapshot:
        """Everything the monthly summary needs for one period."""
        now = self.now()
        today = to_date(now)

        income = self.get_monthly_income(year, month)
        last_month = self.get_monthly_income(*shift_month(year, month, -1))
        last_year = self.get_monthly_income(year - 1, month)
        occupancy = self.get_occupancy()
        collection = self.get_collection_rate(year, month)

        with self.transaction() as session:
            vacant = [
                VacantRoom(room=r.room_number, building=r.building.name, base_rent=r.base_rent)
                for r in session.query(Room)
                .filter(Room.status == RoomStatus.VACANT)
                .order_by(Room.room_number)
                .all()
            ]

            overdue = [
                OverdueItem(
                    room=p.contract.room.room_number,
                    building=p.contract.room.building.name,
                    amount=p.outstanding,
                    days_past_due=days_since(p.due_date, now),
                )
                for p in session.query(Payment)
                .filter(Payment.status == PaymentStatus.OVERDUE)
                .order_by(Payment.due_date)
                .all()
            ]

            paid_rows = (
                session.query(Payment)
                .filter(
                    Payment.period_year == year,
                    Payment.period_month == month,
                    Payment.status == PaymentStatus.PAID,
                    Payment.paid_date.isnot(None),
                )
                .all()
            )
            collect_days = [(to_date(p.paid_date) - p.due_date).days for p in paid_rows]

            expiring = [
                ExpiringItem(
                    contract_id=c.id,
                    room=c.room.room_number,
                    tenant=c.tenant.name,
                    days_remaining=days_until(c.end_date, now),
                )
                for c in session.query(Contract)
                .filter(
                    Contract.status.in_(BILLABLE_STATUSES),
                    Contract.end_date >= today,
                    Contract.end_date <= today + timedelta(days=EXPIRY_WINDOW_DAYS),
                )
                .order_by(Contract.end_date)
                .all()
            ]

            since = now - timedelta(days=RECENT_ACTIVITY_DAYS)
            recent = dict(
                session.query(ContractStateTransition.to_state, func.count(ContractStateTransition.id))
                .filter(
                    ContractStateTransition.created_at >= since,
                    ContractStateTransition.to_state.in_(
                        [ContractStatus.RENEWED, ContractStatus.TERMINATED]
                    ),
                )
                .group_by(ContractStateTransition.to_state)
                .all()
            )

        inflation_service = InflationService(self.context)
        current_rate = inflation_service.get_inflation(year, month)
        adjustments = inflation_service.get_all_rent_adjustments()
        growth = [a.adjustment.rent_growth_pct for a in adjustments]

        return AnalyticsSnapshot(
            period=SnapshotPeriod(year=year, month=month),
            income=SnapshotIncome(
                total=income.total,
                by_building=income.by_building,
                vs_last_month=percent_change(income.total, last_month.total),
                vs_last_year=percent_change(income.total, last_year.total),
            ),
            occupancy=SnapshotOccupancy(current=occupancy.occupancy_rate, vacant=vacant),
            collection=SnapshotCollection(
                rate=collection.rate,
                overdue=overdue,
                avg_days_to_collect=sum(collect_days) / len(collect_days) if collect_days else 0,
            ),
            contracts=SnapshotContracts(
                expiring_soon=expiring,
                recent_renewals=recent.get(ContractStatus.RENEWED, 0),
                recent_terminations=recent.get(ContractStatus.TERMINATED, 0),
            ),
            inflation=SnapshotInflation(
                current_rate=current_rate.rate_pct if current_rate else 0,
                avg_rent_growth=sum(growth) / len(growth) if growth else 0,
                rooms_below_inflation=[
                    RoomBelowInflation(
                        room=a.room_number, building=a.building_name, gap=a.adjustment.gap
                    )
                    for a in adjustments
                    if a.adjustment.gap < 0
                ],
            ),
        )
