"""Tests for billing-period and Thai date helpers."""

from datetime import date, datetime, timezone

import pytest

from rental_core.utils.date_utils import (
    buddhist_year,
    days_since,
    days_until,
    format_thai_date,
    month_bounds,
    shift_month,
    thai_month,
    to_date,
    trailing_months,
)

NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


class TestPeriods:
    @pytest.mark.parametrize(
        "year,month,expected",
        [
            (2025, 1, (date(2025, 1, 1), date(2025, 1, 31))),
            (2024, 2, (date(2024, 2, 1), date(2024, 2, 29))),
            (2025, 2, (date(2025, 2, 1), date(2025, 2, 28))),
        ],
    )
    def test_month_bounds(self, year, month, expected):
        assert month_bounds(year, month) == expected

    @pytest.mark.parametrize(
        "delta,expected", [(0, (2025, 1)), (-1, (2024, 12)), (11, (2025, 12)), (12, (2026, 1)), (-13, (2023, 12))]
    )
    def test_shift_month(self, delta, expected):
        assert shift_month(2025, 1, delta) == expected

    def test_trailing_months_oldest_first(self):
        assert trailing_months(2025, 2, 3) == [(2024, 12), (2025, 1), (2025, 2)]


class TestDayCounts:
    @pytest.mark.parametrize(
        "target,expected",
        [(date(2025, 1, 31), 16), (date(2025, 1, 16), 1), (date(2025, 1, 15), 0), (date(2025, 1, 14), -1)],
    )
    def test_days_until_rounds_up(self, target, expected):
        assert days_until(target, NOW) == expected

    def test_days_since(self):
        assert days_since(date(2025, 1, 5), NOW) == 10

    def test_to_date(self):
        assert to_date(NOW) == date(2025, 1, 15)
        assert to_date(date(2025, 1, 1)) == date(2025, 1, 1)


class TestThaiFormatting:
    def test_month_names(self):
        assert thai_month(1) == "ม.ค."
        assert thai_month(2) == "ก.พ."

    def test_buddhist_year(self):
        assert buddhist_year(2025) == 2568

    def test_short_date(self):
        assert format_thai_date(date(2025, 2, 1)) == "1/2/2568"
