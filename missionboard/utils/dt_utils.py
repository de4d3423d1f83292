# File: utils/dt_utils.py
"""Calendar-date utilities for MissionBoard.

Pure Python date functions. All scheduling happens at day granularity, so
everything here works on `datetime.date`; datetimes are truncated to their
date and no timezone conversion is performed.

Functions:
    - dt_today: Get today's calendar date
    - dt_parse_date: Normalize str/date/datetime input to a date
    - dt_format_date: Format a date as "YYYY-MM-DD"
    - dt_format_display: Format a date for agenda headings
    - dt_days_between: Whole days between two dates
    - dt_last_day_of_month: Last day number of a month
    - dt_add_interval: Add day/week/month/year units with month-end clamping
    - dt_next_day: Next calendar day, or None at date.max
    - weekday_index: Weekday as 0=Sunday..6=Saturday
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timedelta
import logging

from dateutil.relativedelta import relativedelta

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

UNIT_DAY = "day"
UNIT_WEEK = "week"
UNIT_MONTH = "month"
UNIT_YEAR = "year"

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

DISPLAY_UNKNOWN = "Invalid date"


# ==============================================================================
# Today
# ==============================================================================


def dt_today() -> date:
    """Return today's calendar date.

    Example:
        datetime.date(2024, 3, 4)
    """
    return datetime.now().date()


# ==============================================================================
# Parsing and Formatting
# ==============================================================================


def dt_parse_date(date_input: str | date | datetime | None) -> date | None:
    """Safely normalize a date input into a `datetime.date`.

    Accepts:
    - `date` objects (returned as-is)
    - `datetime` objects (time-of-day dropped)
    - "2024-03-04" (ISO format)
    - "2024-03-04T10:30:00" (ISO datetime, time dropped)
    - "2024/03/04"

    Args:
        date_input: Value to normalize, or None

    Returns:
        datetime.date or None if the input cannot be parsed.
    """
    if date_input is None or isinstance(date_input, bool):
        return None

    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input
    if not isinstance(date_input, str) or not date_input.strip():
        return None

    text = date_input.strip()

    # Try ISO format first (most common)
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    try:
        return datetime.strptime(text, "%Y/%m/%d").date()
    except ValueError:
        _LOGGER.debug("dt_parse_date: Unparseable date %r", date_input)

    return None


def dt_format_date(value: date | None) -> str | None:
    """Format a date as "YYYY-MM-DD" (the persisted format).

    Args:
        value: Date to format, or None

    Returns:
        ISO date string, or None for None input.
    """
    if value is None:
        return None
    return value.isoformat()


def dt_format_display(value: date | None) -> str:
    """Format a date for agenda headings.

    Example:
        date(2024, 3, 4) → "Monday, March 4, 2024"
    """
    if value is None:
        return DISPLAY_UNKNOWN
    return (
        f"{WEEKDAY_NAMES[weekday_index(value)]}, "
        f"{MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"
    )


# ==============================================================================
# Calendar Arithmetic
# ==============================================================================


def weekday_index(value: date) -> int:
    """Return the weekday as 0=Sunday..6=Saturday.

    Python's `date.weekday()` counts from Monday; the stored weekday sets
    count from Sunday.
    """
    return (value.weekday() + 1) % 7


def dt_days_between(start: date, end: date) -> int:
    """Return whole days from start to end (negative if end precedes start)."""
    return (end - start).days


def dt_last_day_of_month(year: int, month: int) -> int:
    """Return the last day number of the given month (28-31)."""
    return monthrange(year, month)[1]


def dt_next_day(value: date) -> date | None:
    """Return the following calendar day, or None when value is date.max."""
    if value >= date.max:
        return None
    return value + timedelta(days=1)


def dt_add_interval(base_date: date, interval_unit: str, delta: int) -> date | None:
    """Add a number of day/week/month/year units to a date.

    Uses relativedelta for month/year arithmetic so month ends clamp
    (e.g., Jan 31 + 1 month = Feb 29 in a leap year, not Mar 2).

    Args:
        base_date: Starting date
        interval_unit: One of "day", "week", "month", "year"
        delta: Number of units to add (can be negative)

    Returns:
        Resulting date, or None if the unit is unknown or the result falls
        outside the supported date range.
    """
    try:
        if interval_unit == UNIT_DAY:
            return base_date + timedelta(days=delta)
        if interval_unit == UNIT_WEEK:
            return base_date + timedelta(weeks=delta)
        if interval_unit == UNIT_MONTH:
            return base_date + relativedelta(months=delta)
        if interval_unit == UNIT_YEAR:
            return base_date + relativedelta(years=delta)
    except (OverflowError, ValueError):
        _LOGGER.debug(
            "dt_add_interval: Out of range. base=%s, unit=%s, delta=%s",
            base_date,
            interval_unit,
            delta,
        )
        return None

    _LOGGER.warning("dt_add_interval: Unsupported interval_unit %s", interval_unit)
    return None
