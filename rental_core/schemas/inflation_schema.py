"""
Pydantic schemas for CPI data and rent-adjustment results.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..enums import RentRecommendation


class InflationRead(BaseModel):
    year: int
    month: int
    rate_pct: float
    source: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InflationUpsert(BaseModel):
    year: int
    month: int
    rate_pct: float
    source: Optional[str] = None


class RentAdjustment(BaseModel):
    """Recommendation for one contract, derived purely from stored data."""

    current_rent: float
    original_rent: float
    suggested_rent: int
    minimum_rent: int
    adjustment_pct: float
    inflation_pct: float
    rent_growth_pct: float
    gap: float
    tenant_years: int
    tenant_factor: float
    recommendation: RentRecommendation
    reasoning: str


class RentAdjustmentEntry(BaseModel):
    contract_id: str
    room_number: str
    building_name: str
    tenant_name: str
    adjustment: RentAdjustment
