"""
Calendar helpers for billing periods.
"""

import calendar
import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Tuple, Union

from ..constants import BUDDHIST_ERA_OFFSET, THAI_MONTH_ABBREVIATIONS


def utc_now() -> datetime:
    """Return current UTC time with timezone info attached."""
    return datetime.now(timezone.utc)


def to_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_index(year: int, month: int) -> int:
    """Months since year 0, so periods can be compared and ranged as integers."""
    return year * 12 + (month - 1)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = month_index(year, month) + delta
    return index // 12, index % 12 + 1


def trailing_months(year: int, month: int, count: int) -> List[Tuple[int, int]]:
    """The `count` periods ending at (year, month), oldest first."""
    return [shift_month(year, month, -offset) for offset in range(count - 1, -1, -1)]


def days_until(target: date, now: datetime) -> int:
    """Whole days from now until the start of target, rounded up."""
    start = datetime.combine(target, datetime.min.time(), tzinfo=now.tzinfo)
    return math.ceil((start - now) / timedelta(days=1))


def days_since(target: date, now: datetime) -> int:
    """Whole days elapsed since the start of target, rounded up."""
    return -days_until(target, now)


def thai_month(month: int) -> str:
    return THAI_MONTH_ABBREVIATIONS[month]


def buddhist_year(year: int) -> int:
    return year + BUDDHIST_ERA_OFFSET


def format_thai_date(value: date) -> str:
    """d/m/BBBB, the short form Thai readers expect."""
    return f"{value.day}/{value.month}/{buddhist_year(value.year)}"
