"""
Thai CPI data and rent-adjustment recommendations.

Several CPI rows may exist for one period; the most recently created one
is the value for that period everywhere in this module.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_

from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract
from ..db.db_inflation_models import InflationIndex
from ..enums import BILLABLE_STATUSES
from ..exceptions import ErrorCode, ValidationError
from ..schemas.inflation_schema import InflationRead, RentAdjustment, RentAdjustmentEntry
from ..utils.crud_helpers import require_record
from ..utils.date_utils import month_index, shift_month
from ..utils.rent_math import calculate_adjustment, compound_rates, tenure_years
from ..utils.validators import optional_text, require_period
from .base_service import SessionManagedService


def _naive(value: datetime) -> datetime:
    # SQLite hands back naive UTC; rows still in the session may be aware
    return value.replace(tzinfo=None) if value.tzinfo else value


def latest_per_period(rows: List[InflationIndex]) -> Dict[Tuple[int, int], InflationIndex]:
    """Collapse rows to one per (year, month), keeping the newest by created_at."""
    latest: Dict[Tuple[int, int], InflationIndex] = {}
    for row in rows:
        key = (row.year, row.month)
        kept = latest.get(key)
        if kept is None or _naive(row.created_at) > _naive(kept.created_at):
            latest[key] = row
    return latest


class InflationService(SessionManagedService):
    """CPI storage plus the rent-adjustment calculation built on it."""

    @operation()
    @handle_service_errors()
    def get_inflation(self, year: int, month: int) -> Optional[InflationRead]:
        with self.transaction() as session:
            row = (
                session.query(InflationIndex)
                .filter(InflationIndex.year == year, InflationIndex.month == month)
                .order_by(InflationIndex.created_at.desc())
                .first()
            )
            return InflationRead.model_validate(row) if row else None

    @operation()
    @handle_service_errors()
    def list_inflation(self) -> List[InflationRead]:
        with self.transaction() as session:
            rows = session.query(InflationIndex).all()
            latest = latest_per_period(rows)
            return [InflationRead.model_validate(latest[key]) for key in sorted(latest)]

    @operation()
    @handle_service_errors()
    def upsert_inflation(
        self, year: int, month: int, rate_pct: float, source: str = "manual"
    ) -> InflationRead:
        """Update the newest row for the period, or insert one if there is none."""
        require_period(year, month)
        source = optional_text(source) or "manual"
        with self.transaction() as session:
            row = (
                session.query(InflationIndex)
                .filter(InflationIndex.year == year, InflationIndex.month == month)
                .order_by(InflationIndex.created_at.desc())
                .first()
            )
            if row is None:
                row = InflationIndex(
                    year=year, month=month, rate_pct=rate_pct, source=source, created_at=self.now()
                )
                session.add(row)
            else:
                row.rate_pct = rate_pct
                row.source = source
            session.flush()
            self.logger.info(
                "Stored inflation rate",
                extra={"period": f"{year}-{month:02d}", "rate_pct": rate_pct, "source": source},
            )
            return InflationRead.model_validate(row)

    @operation()
    @handle_service_errors()
    def get_cumulative_inflation(
        self,
        start_year: int,
        start_month: int,
        end_year: int,
        end_month: int,
        strict: Optional[bool] = None,
    ) -> float:
        """
        Compound monthly CPI changes over [start, end] inclusive, in percent.

        Months without data are left out of the product. With strict (or the
        strict_inflation_coverage feature flag) a gap raises ValidationError
        instead.
        """
        require_period(start_year, start_month)
        require_period(end_year, end_month)
        first = month_index(start_year, start_month)
        last = month_index(end_year, end_month)
        if last < first:
            return 0.0

        with self.transaction() as session:
            rows = (
                session.query(InflationIndex)
                .filter(
                    and_(
                        InflationIndex.year * 12 + InflationIndex.month - 1 >= first,
                        InflationIndex.year * 12 + InflationIndex.month - 1 <= last,
                    )
                )
                .all()
            )
            latest = latest_per_period(rows)

        missing = [
            shift_month(start_year, start_month, offset)
            for offset in range(last - first + 1)
            if shift_month(start_year, start_month, offset) not in latest
        ]
        if missing:
            strict = self.config.features.strict_inflation_coverage if strict is None else strict
            labels = [f"{y}-{m:02d}" for y, m in missing]
            if strict:
                raise ValidationError(
                    "Inflation data missing for part of the range",
                    field="inflation",
                    error_code=ErrorCode.PRECONDITION_FAILED,
                    missing_periods=labels,
                )
            self.logger.warning(
                "Inflation data missing; months omitted from compounding",
                extra={"missing_periods": ",".join(labels)},
            )

        return compound_rates(latest[key].rate_pct for key in sorted(latest))

    @operation()
    @handle_service_errors()
    def calculate_rent_adjustment(self, contract_id: str) -> RentAdjustment:
        """
        Compare a contract's rent growth against inflation since it started.

        The room's base rent is the anchor; nothing is written.
        """
        now = self.now()
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            start_date = contract.start_date
            original_rent = contract.room.base_rent
            current_rent = contract.rent_amount

        inflation_pct = self.get_cumulative_inflation(
            start_date.year, start_date.month, now.year, now.month
        )
        return calculate_adjustment(
            original_rent=original_rent,
            current_rent=current_rent,
            inflation_pct=inflation_pct,
            tenant_years=tenure_years(start_date, now),
        )

    @operation()
    @handle_service_errors()
    def get_all_rent_adjustments(self) -> List[RentAdjustmentEntry]:
        """Run the adjustment for every ACTIVE/EXPIRING contract; failures are logged and skipped."""
        with self.transaction() as session:
            contracts = [
                (c.id, c.room.room_number, c.room.building.name, c.tenant.name)
                for c in session.query(Contract)
                .filter(Contract.status.in_(BILLABLE_STATUSES))
                .order_by(Contract.start_date)
                .all()
            ]

        entries: List[RentAdjustmentEntry] = []
        for contract_id, room_number, building_name, tenant_name in contracts:
            try:
                adjustment = self.calculate_rent_adjustment(contract_id)
            except Exception as e:
                self.logger.warning(
                    "Skipping rent adjustment for contract",
                    extra={"contract_id": contract_id, "error_details": str(e)},
                )
                continue
            entries.append(
                RentAdjustmentEntry(
                    contract_id=contract_id,
                    room_number=room_number,
                    building_name=building_name,
                    tenant_name=tenant_name,
                    adjustment=adjustment,
                )
            )
        return entries
