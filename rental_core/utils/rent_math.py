"""
Pure rent-adjustment arithmetic.

Nothing here touches the database; InflationService gathers the inputs
and these functions turn them into a RentAdjustment.
"""

import math
from datetime import date, datetime
from typing import Iterable, Tuple

from ..enums import RentRecommendation
from ..schemas.inflation_schema import RentAdjustment
from .date_utils import to_date

# (minimum tenure in years, discount factor), checked top down
LOYALTY_DISCOUNTS = ((5, 0.05), (3, 0.03), (1, 0.01))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching how Thai rent quotes are rounded."""
    return math.floor(value + 0.5)


def compound_rates(rates_pct: Iterable[float]) -> float:
    """Compound monthly percentage changes into one cumulative percentage."""
    cumulative = 1.0
    for rate in rates_pct:
        cumulative *= 1 + rate / 100
    return (cumulative - 1) * 100


def tenure_years(start_date: date, now: datetime) -> int:
    days = (to_date(now) - to_date(start_date)).days
    return max(days // 365, 0)


def loyalty_factor(years: int) -> float:
    for min_years, factor in LOYALTY_DISCOUNTS:
        if years >= min_years:
            return factor
    return 0.0


def classify_gap(gap: float) -> Tuple[RentRecommendation, str]:
    """Map rent growth minus inflation onto a recommendation and Thai reasoning."""
    if gap < -5:
        return (
            RentRecommendation.INCREASE,
            f"ค่าเช่าต่ำกว่าเงินเฟ้อ {abs(gap):.1f}% ควรปรับขึ้น",
        )
    if gap < -2:
        return RentRecommendation.INCREASE, "ค่าเช่าต่ำกว่าเงินเฟ้อเล็กน้อย แนะนำปรับ"
    if gap < 2:
        return RentRecommendation.MAINTAIN, "ค่าเช่าสอดคล้องกับเงินเฟ้อ ไม่จำเป็นต้องปรับ"
    if gap < 5:
        return RentRecommendation.MAINTAIN, "ค่าเช่าสูงกว่าเงินเฟ้อเล็กน้อย"
    return RentRecommendation.REVIEW, "ค่าเช่าสูงกว่าเงินเฟ้อมาก ระวังผู้เช่าย้าย"


def calculate_adjustment(
    original_rent: float,
    current_rent: float,
    inflation_pct: float,
    tenant_years: int,
) -> RentAdjustment:
    """
    Build a rent-adjustment recommendation.

    Args:
        original_rent: Anchor rent (the room's base rent)
        current_rent: Rent on the contract today
        inflation_pct: Cumulative inflation since the contract started, in percent
        tenant_years: Whole years the tenant has been on the contract

    Returns:
        RentAdjustment with suggested rent, gap analysis and Thai reasoning
    """
    rent_growth_pct = (
        (current_rent - original_rent) / original_rent * 100 if original_rent > 0 else 0.0
    )
    gap = rent_growth_pct - inflation_pct

    minimum_rent = round_half_up(original_rent * (1 + inflation_pct / 100))
    factor = loyalty_factor(tenant_years)
    suggested_rent = round_half_up(minimum_rent * (1 - factor))
    adjustment_pct = (
        (suggested_rent - current_rent) / current_rent * 100 if current_rent > 0 else 0.0
    )

    recommendation, reasoning = classify_gap(gap)
    if factor > 0:
        reasoning += f" (ผู้เช่าอยู่มา {tenant_years} ปี ให้ส่วนลด {factor * 100:.0f}%)"

    return RentAdjustment(
        current_rent=current_rent,
        original_rent=original_rent,
        suggested_rent=suggested_rent,
        minimum_rent=minimum_rent,
        adjustment_pct=adjustment_pct,
        inflation_pct=inflation_pct,
        rent_growth_pct=rent_growth_pct,
        gap=gap,
        tenant_years=tenant_years,
        tenant_factor=factor,
        recommendation=recommendation,
        reasoning=reasoning,
    )
