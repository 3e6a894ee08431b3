"""Tests for date and validation utilities."""

import math
from datetime import date, datetime

import pytest

from src.utils.date_utils import parse_flex_date, start_of_month, start_of_week, to_date
from src.utils.validation import is_blank, to_finite_float


class TestParseFlexDate:
    """Tests for broker export date parsing."""

    def test_date_only_parses_to_midnight(self) -> None:
        """YYYYMMDD should parse to midnight of that day."""
        assert parse_flex_date("20250115") == datetime(2025, 1, 15, 0, 0, 0)

    def test_date_with_time(self) -> None:
        """YYYYMMDD;HHMMSS should keep the time component."""
        assert parse_flex_date("20250115;143052") == datetime(2025, 1, 15, 14, 30, 52)

    def test_surrounding_whitespace_ignored(self) -> None:
        assert parse_flex_date(" 20250115 ") == datetime(2025, 1, 15)

    @pytest.mark.parametrize("value", [None, "", "   ", "2025-01-15", "20251345", "20250115;25"])
    def test_invalid_values_raise(self, value) -> None:
        """Unparseable values should raise ValueError."""
        with pytest.raises(ValueError):
            parse_flex_date(value)


class TestPeriodHelpers:
    """Tests for week and month bucketing helpers."""

    def test_week_starts_on_monday(self) -> None:
        # 2025-01-15 is a Wednesday
        assert start_of_week(datetime(2025, 1, 15, 10, 0)) == date(2025, 1, 13)

    def test_monday_is_its_own_week_start(self) -> None:
        assert start_of_week(date(2025, 1, 13)) == date(2025, 1, 13)

    def test_sunday_belongs_to_previous_monday(self) -> None:
        assert start_of_week(date(2025, 1, 19)) == date(2025, 1, 13)

    def test_start_of_month(self) -> None:
        assert start_of_month(datetime(2025, 2, 28, 23, 59)) == date(2025, 2, 1)

    def test_to_date(self) -> None:
        assert to_date(datetime(2025, 1, 15, 9, 30)) == date(2025, 1, 15)
        assert to_date(date(2025, 1, 15)) == date(2025, 1, 15)


class TestToFiniteFloat:
    """Tests for numeric coercion."""

    def test_parses_plain_and_signed_numbers(self) -> None:
        assert to_finite_float("5.50") == 5.5
        assert to_finite_float("-1.05") == -1.05
        assert to_finite_float(3) == 3.0

    def test_strips_thousands_separators(self) -> None:
        assert to_finite_float("1,250.00") == 1250.0

    @pytest.mark.parametrize("value", [None, "", "abc", "nan", "inf", "-Infinity", math.nan])
    def test_rejects_missing_and_non_finite(self, value) -> None:
        with pytest.raises(ValueError):
            to_finite_float(value)

    def test_is_blank(self) -> None:
        assert is_blank(None)
        assert is_blank("  ")
        assert not is_blank("0")
