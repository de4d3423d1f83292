"""Tests for utils/dt_utils.py."""

from datetime import date, datetime

from freezegun import freeze_time
import pytest

from missionboard.utils.dt_utils import (
    dt_add_interval,
    dt_days_between,
    dt_format_date,
    dt_format_display,
    dt_last_day_of_month,
    dt_next_day,
    dt_parse_date,
    dt_today,
    weekday_index,
)


class TestParse:
    """Test dt_parse_date()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2024-03-04", date(2024, 3, 4)),
            (" 2024-03-04 ", date(2024, 3, 4)),
            ("2024-03-04T22:30:00", date(2024, 3, 4)),
            ("2024/03/04", date(2024, 3, 4)),
            (date(2024, 3, 4), date(2024, 3, 4)),
            (datetime(2024, 3, 4, 23, 59), date(2024, 3, 4)),
        ],
    )
    def test_accepted_inputs(self, value: object, expected: date) -> None:
        """Supported inputs normalize to a date."""
        assert dt_parse_date(value) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", [None, "", "2024-02-30", "tomorrow", 20240304, True])
    def test_rejected_inputs(self, value: object) -> None:
        """Anything else is None."""
        assert dt_parse_date(value) is None  # type: ignore[arg-type]


class TestFormat:
    """Test formatting helpers."""

    def test_format_date(self) -> None:
        """ISO formatting with None passthrough."""
        assert dt_format_date(date(2024, 3, 4)) == "2024-03-04"
        assert dt_format_date(None) is None

    def test_format_display(self) -> None:
        """Display format used by agenda headings."""
        assert dt_format_display(date(2024, 3, 4)) == "Monday, March 4, 2024"
        assert dt_format_display(date(2024, 3, 10)) == "Sunday, March 10, 2024"
        assert dt_format_display(None) == "Invalid date"


class TestArithmetic:
    """Test calendar arithmetic."""

    def test_weekday_index_starts_on_sunday(self) -> None:
        """0=Sunday..6=Saturday."""
        assert weekday_index(date(2024, 3, 3)) == 0
        assert weekday_index(date(2024, 3, 4)) == 1
        assert weekday_index(date(2024, 3, 9)) == 6

    def test_days_between(self) -> None:
        """Signed whole days."""
        assert dt_days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2
        assert dt_days_between(date(2024, 3, 1), date(2024, 2, 28)) == -2

    def test_last_day_of_month(self) -> None:
        """Leap years are respected."""
        assert dt_last_day_of_month(2024, 2) == 29
        assert dt_last_day_of_month(2023, 2) == 28
        assert dt_last_day_of_month(2024, 4) == 30

    def test_next_day(self) -> None:
        """None at the end of the calendar."""
        assert dt_next_day(date(2024, 2, 28)) == date(2024, 2, 29)
        assert dt_next_day(date.max) is None

    @pytest.mark.parametrize(
        ("unit", "delta", "expected"),
        [
            ("day", 3, date(2024, 2, 3)),
            ("week", 2, date(2024, 2, 14)),
            ("month", 1, date(2024, 2, 29)),
            ("year", 1, date(2025, 1, 31)),
        ],
    )
    def test_add_interval(self, unit: str, delta: int, expected: date) -> None:
        """Month arithmetic clamps to the month end."""
        assert dt_add_interval(date(2024, 1, 31), unit, delta) == expected

    def test_add_interval_out_of_range(self) -> None:
        """Overflow returns None."""
        assert dt_add_interval(date(9999, 12, 1), "month", 2) is None
        assert dt_add_interval(date(2024, 1, 1), "day", 10**10) is None

    def test_add_interval_unknown_unit(self) -> None:
        """Unknown units return None."""
        assert dt_add_interval(date(2024, 1, 1), "fortnight", 1) is None


@freeze_time("2024-03-04 23:30:00")
class TestToday:
    """Test today helpers under a frozen clock."""

    def test_today(self) -> None:
        """Today is the local calendar date."""
        assert dt_today() == date(2024, 3, 4)
