"""
Read-side analytics shapes consumed by the dashboard and the AI summaries.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from ..enums import PaymentStatus


class BuildingIncome(BaseModel):
    building_id: str
    name: str
    amount: float


class MonthlyIncome(BaseModel):
    year: int
    month: int
    total: float
    by_building: List[BuildingIncome] = Field(default_factory=list)


class RoomIncome(BaseModel):
    room_id: str
    room_number: str
    building_name: str
    expected: float
    collected: float
    status: PaymentStatus


class OccupancyReport(BaseModel):
    date: datetime
    total_rooms: int
    occupied_rooms: int
    vacant_rooms: int
    maintenance_rooms: int
    occupancy_rate: int


class CollectionReport(BaseModel):
    expected: float
    collected: float
    rate: int
    overdue: float
    overdue_count: int


class TrendPoint(BaseModel):
    year: int
    month: int
    total: float


class SnapshotPeriod(BaseModel):
    year: int
    month: int


class SnapshotIncome(BaseModel):
    total: float
    by_building: List[BuildingIncome]
    vs_last_month: float
    vs_last_year: float


class VacantRoom(BaseModel):
    room: str
    building: str
    base_rent: float


class SnapshotOccupancy(BaseModel):
    current: int
    vacant: List[VacantRoom]


class OverdueItem(BaseModel):
    room: str
    building: str
    amount: float
    days_past_due: int


class SnapshotCollection(BaseModel):
    rate: int
    overdue: List[OverdueItem]
    avg_days_to_collect: float


class ExpiringItem(BaseModel):
    contract_id: str
    room: str
    tenant: str
    days_remaining: int


class SnapshotContracts(BaseModel):
    expiring_soon: List[ExpiringItem]
    recent_renewals: int
    recent_terminations: int


class RoomBelowInflation(BaseModel):
    room: str
    building: str
    gap: float


class SnapshotInflation(BaseModel):
    current_rate: float
    avg_rent_growth: float
    rooms_below_inflation: List[RoomBelowInflation]


class AnalyticsSnapshot(BaseModel):
    period: SnapshotPeriod
    income: SnapshotIncome
    occupancy: SnapshotOccupancy
    collection: SnapshotCollection
    contracts: SnapshotContracts
    inflation: SnapshotInflation


class BillingSummary(BaseModel):
    """Expected rent per building for a period, split into collected and still pending."""

    year: int
    month: int
    total: float
    by_building: List[BuildingIncome] = Field(default_factory=list)
    collected: float
    pending: float
