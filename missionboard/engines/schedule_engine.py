"""Schedule Engine for MissionBoard.

Single source of truth for recurrence math:
- `is_due()` decides whether a template is due on a calendar date
- `enumerate_occurrences()` lists upcoming due dates with a bounded scan
- `RecurrenceEngine.to_rrule_string()` exports a rule as RFC 5545 RRULE

Both the agenda and the daily materializer call `is_due()`; neither derives
recurrence math on its own.

Scanning is day by day and always bounded by a horizon, so a rule with an
absurd interval or an end date in the past still terminates. Month/year
horizon spans use `dateutil.relativedelta` so month ends clamp the same way
the rules do.

IMPORTANT: This module must NOT import from managers or the store.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import EntityValidationError, coerce_scheduled_mission
from ..type_defs import DailyRule, MonthlyRule, WeeklyRule, YearlyRule
from ..utils.dt_utils import (
    dt_add_interval,
    dt_days_between,
    dt_last_day_of_month,
    dt_next_day,
    dt_parse_date,
    weekday_index,
)

if TYPE_CHECKING:
    from ..type_defs import RecurrenceRule, ScheduledMission


class RecurrenceEngine:
    """Membership and enumeration for one template's recurrence.

    Handles all rule variants:
    - None: one-off, due on the anchor date only
    - DailyRule: every N days from the anchor
    - WeeklyRule: every N weeks on selected weekdays, weeks counted from the
      first selected weekday on or after the anchor
    - MonthlyRule: every N months on the anchor's day, clamped to month end
    - YearlyRule: every N years on the anchor's month and day

    The engine is immutable after construction and safe to share.
    """

    def __init__(
        self,
        rule: RecurrenceRule | None,
        anchor_date: date,
        exceptions: Iterable[date] = (),
    ) -> None:
        """Initialize the recurrence engine.

        Args:
            rule: Recurrence rule, or None for a one-off template.
            anchor_date: First scheduled date (already normalized).
            exceptions: Dates that are never due.
        """
        self._rule = rule
        self._anchor = anchor_date
        self._exceptions = frozenset(exceptions)
        self._first_weekly: date | None = None
        if isinstance(rule, WeeklyRule):
            self._first_weekly = self._find_first_weekly(rule)

    @classmethod
    def from_mission(
        cls,
        mission: ScheduledMission,
        extra_exceptions: Iterable[date] = (),
    ) -> RecurrenceEngine:
        """Build an engine for a template, merging registry exceptions."""
        return cls(
            mission.recurrence,
            mission.anchor_date,
            mission.exceptions.union(extra_exceptions),
        )

    @property
    def rule(self) -> RecurrenceRule | None:
        """Return the recurrence rule (None for one-off templates)."""
        return self._rule

    @property
    def anchor_date(self) -> date:
        """Return the anchor date."""
        return self._anchor

    # =========================================================================
    # Membership
    # =========================================================================

    def is_due(self, candidate: date) -> bool:
        """Return True if the template is due on the candidate date."""
        if candidate < self._anchor:
            return False

        rule = self._rule
        if rule is None:
            matches = candidate == self._anchor
        elif isinstance(rule, DailyRule):
            matches = dt_days_between(self._anchor, candidate) % rule.interval == 0
        elif isinstance(rule, WeeklyRule):
            matches = self._is_due_weekly(rule, candidate)
        elif isinstance(rule, MonthlyRule):
            matches = self._is_due_monthly(rule, candidate)
        elif isinstance(rule, YearlyRule):
            matches = self._is_due_yearly(rule, candidate)
        else:
            const.LOGGER.warning(
                "RecurrenceEngine: Unknown rule type %s", type(rule).__name__
            )
            return False

        if matches and rule is not None and rule.end_date is not None:
            matches = candidate <= rule.end_date
        return matches and candidate not in self._exceptions

    def _find_first_weekly(self, rule: WeeklyRule) -> date | None:
        """Return the first date on or after the anchor with a selected weekday."""
        if not rule.days_of_week:
            return None
        day: date | None = self._anchor
        for _ in range(const.DAYS_PER_WEEK):
            if day is None:
                break
            if weekday_index(day) in rule.days_of_week:
                return day
            day = dt_next_day(day)
        return None

    def _is_due_weekly(self, rule: WeeklyRule, candidate: date) -> bool:
        """Weekly membership: selected weekday and an on-cycle week."""
        if not rule.days_of_week:
            return False
        if weekday_index(candidate) not in rule.days_of_week:
            return False
        first = self._first_weekly
        if first is None or candidate < first:
            return False
        weeks_elapsed = dt_days_between(first, candidate) // const.DAYS_PER_WEEK
        return weeks_elapsed % rule.interval == 0

    def _is_due_monthly(self, rule: MonthlyRule, candidate: date) -> bool:
        """Monthly membership with day-of-month clamping (Jan 31 -> Feb 29)."""
        month_diff = (candidate.year - self._anchor.year) * 12 + (
            candidate.month - self._anchor.month
        )
        if month_diff < 0 or month_diff % rule.interval != 0:
            return False
        target_day = min(
            self._anchor.day, dt_last_day_of_month(candidate.year, candidate.month)
        )
        return candidate.day == target_day

    def _is_due_yearly(self, rule: YearlyRule, candidate: date) -> bool:
        """Yearly membership; Feb 29 anchors only match leap years."""
        year_diff = candidate.year - self._anchor.year
        if year_diff < 0 or year_diff % rule.interval != 0:
            return False
        return (
            candidate.month == self._anchor.month and candidate.day == self._anchor.day
        )

    def first_occurrence(self) -> date | None:
        """Return the earliest date the rule matches, ignoring exceptions.

        Returns None when the rule can never match (empty weekly rule, or the
        first match falls after the end date).
        """
        rule = self._rule
        first = self._first_weekly if isinstance(rule, WeeklyRule) else self._anchor
        if first is None:
            return None
        if rule is not None and rule.end_date is not None and first > rule.end_date:
            return None
        return first

    # =========================================================================
    # Enumeration
    # =========================================================================

    def estimate_horizon_days(
        self,
        cap: int,
        min_horizon_days: int = const.DEFAULT_MIN_HORIZON_DAYS,
        max_horizon_days: int = const.DEFAULT_MAX_HORIZON_DAYS,
        start: date | None = None,
    ) -> int:
        """Return how many days a scan needs to find `cap` occurrences.

        The span covers `interval * cap` rule units from the scan start, plus
        one week for the weekly first-occurrence offset, and is clamped to
        [min_horizon_days, max_horizon_days].

        Args:
            cap: Occurrences wanted.
            min_horizon_days: Lower bound for the scan.
            max_horizon_days: Hard upper bound for the scan.
            start: Scan start date (defaults to the anchor).

        Returns:
            Number of days to scan.
        """
        rule = self._rule
        if rule is None or cap <= 0:
            return min_horizon_days

        origin = start or self._anchor
        span_end = dt_add_interval(origin, rule.unit, rule.interval * cap)
        if span_end is None:
            span = max_horizon_days
        else:
            span = dt_days_between(origin, span_end) + const.DAYS_PER_WEEK

        return min(max_horizon_days, max(min_horizon_days, span))

    def get_occurrences(
        self,
        from_date: date,
        cap: int = const.DEFAULT_DISPLAY_CAP,
        horizon_days: int | None = None,
        *,
        min_horizon_days: int = const.DEFAULT_MIN_HORIZON_DAYS,
        max_horizon_days: int = const.DEFAULT_MAX_HORIZON_DAYS,
    ) -> list[date]:
        """Return up to `cap` ascending due dates on or after from_date.

        The scan starts at max(anchor, from_date) and stops when `cap` dates
        are found, the end date is passed, `horizon_days` days were scanned, or
        the calendar runs out. The horizon counts the start date, so
        `horizon_days=10` examines the start date and the nine days after it.
        An exhausted horizon yields a short (possibly empty) list, never an
        error.

        Args:
            from_date: First date to consider (usually today).
            cap: Maximum occurrences to return.
            horizon_days: Days to scan; estimated from the rule when None.
            min_horizon_days: Lower bound for the estimated horizon.
            max_horizon_days: Upper bound for the estimated horizon.

        Returns:
            Strictly ascending list of due dates.
        """
        if cap <= 0:
            return []

        candidate: date | None = max(self._anchor, from_date)
        if horizon_days is None:
            horizon_days = self.estimate_horizon_days(
                cap, min_horizon_days, max_horizon_days, start=candidate
            )

        end_date = self._rule.end_date if self._rule is not None else None
        occurrences: list[date] = []
        scanned = 0

        while candidate is not None and len(occurrences) < cap and scanned < horizon_days:
            if end_date is not None and candidate > end_date:
                break
            if self.is_due(candidate):
                occurrences.append(candidate)
            scanned += 1
            candidate = dt_next_day(candidate)

        if not occurrences:
            const.LOGGER.debug(
                "RecurrenceEngine: No occurrences from %s within %d days",
                from_date,
                horizon_days,
            )
        return occurrences

    # =========================================================================
    # Presentation and export
    # =========================================================================

    def describe(self) -> str:
        """Return a short human-readable description of the rule.

        Examples:
            "every day"
            "every 2 weeks on Mon, Wed until 2024-06-30"
            "" for one-off templates
        """
        rule = self._rule
        if rule is None:
            return ""

        if rule.interval == 1:
            text = f"every {rule.unit}"
        else:
            text = f"every {rule.interval} {rule.unit}s"

        if isinstance(rule, WeeklyRule) and rule.days_of_week:
            names = ", ".join(
                const.WEEKDAY_SHORT_NAMES[day] for day in sorted(rule.days_of_week)
            )
            text += f" on {names}"

        if rule.end_date is not None:
            text += f" until {rule.end_date.isoformat()}"
        return text

    @property
    def rrule_dtstart(self) -> date | None:
        """Return the DTSTART date that pairs with to_rrule_string()."""
        return self.first_occurrence()

    def to_rrule_string(self) -> str:
        """Generate an RFC 5545 RRULE string for iCal export.

        Pair the result with `rrule_dtstart` as DTSTART. Exceptions are not
        included (export them as EXDATE if needed).

        Returns:
            RRULE string (e.g., "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE;WKST=MO")
            or empty string if not representable.
        """
        rule = self._rule
        first = self.first_occurrence()
        if rule is None or first is None:
            return ""

        if isinstance(rule, DailyRule):
            text = f"FREQ=DAILY;INTERVAL={rule.interval}"
        elif isinstance(rule, WeeklyRule):
            days = ",".join(
                const.WEEKDAY_RRULE_CODES[day] for day in sorted(rule.days_of_week)
            )
            # Week boundaries start on the first occurrence's weekday so the
            # interval counts weeks elapsed since that occurrence.
            wkst = const.WEEKDAY_RRULE_CODES[weekday_index(first)]
            text = f"FREQ=WEEKLY;INTERVAL={rule.interval};BYDAY={days};WKST={wkst}"
        elif isinstance(rule, MonthlyRule):
            day = self._anchor.day
            if day > const.MIN_DAYS_IN_MONTH:
                # Last existing day among 28..day is min(day, month length)
                days = ",".join(
                    str(d) for d in range(const.MIN_DAYS_IN_MONTH, day + 1)
                )
                text = (
                    f"FREQ=MONTHLY;INTERVAL={rule.interval};"
                    f"BYMONTHDAY={days};BYSETPOS=-1"
                )
            else:
                text = f"FREQ=MONTHLY;INTERVAL={rule.interval};BYMONTHDAY={day}"
        elif isinstance(rule, YearlyRule):
            text = (
                f"FREQ=YEARLY;INTERVAL={rule.interval};"
                f"BYMONTH={self._anchor.month};BYMONTHDAY={self._anchor.day}"
            )
        else:
            return ""

        if rule.end_date is not None:
            text += f";UNTIL={rule.end_date.strftime('%Y%m%d')}"
        return text


# =============================================================================
# Module-level convenience functions
# =============================================================================


def _normalize_exceptions(exceptions: Iterable[Any] | None) -> frozenset[date]:
    """Normalize exception dates, dropping unparseable entries with a warning."""
    if not exceptions:
        return frozenset()
    result: set[date] = set()
    for value in exceptions:
        day = dt_parse_date(value)
        if day is None:
            const.LOGGER.warning("Ignoring invalid exception date %r", value)
            continue
        result.add(day)
    return frozenset(result)


def is_due(
    rule: RecurrenceRule | None,
    anchor_date: date | datetime | str,
    exceptions: Iterable[date | str] | None,
    candidate_date: date | datetime | str,
) -> bool:
    """Return True if a template with this rule is due on candidate_date.

    Pure function; callable independently of enumeration or materialization.
    Datetimes are truncated to their date. An unparseable anchor or candidate
    date logs a warning and yields False.

    Args:
        rule: Recurrence rule, or None for a one-off template.
        anchor_date: First scheduled date.
        exceptions: Skipped dates (never due), or None.
        candidate_date: Date to test.

    Returns:
        True if due, False otherwise.

    Examples:
        is_due(MonthlyRule(), date(2024, 1, 31), None, date(2024, 2, 29)) → True
        is_due(None, date(2024, 5, 10), None, date(2024, 5, 11)) → False
    """
    anchor = dt_parse_date(anchor_date)
    if anchor is None:
        const.LOGGER.warning("is_due: Invalid anchor date %r", anchor_date)
        return False
    candidate = dt_parse_date(candidate_date)
    if candidate is None:
        const.LOGGER.warning("is_due: Invalid candidate date %r", candidate_date)
        return False

    engine = RecurrenceEngine(rule, anchor, _normalize_exceptions(exceptions))
    return engine.is_due(candidate)


def enumerate_occurrences(
    template: ScheduledMission | Mapping[str, Any],
    from_date: date | datetime | str,
    cap: int = const.DEFAULT_DISPLAY_CAP,
    horizon_days: int | None = None,
    *,
    extra_exceptions: Iterable[date] = (),
    min_horizon_days: int = const.DEFAULT_MIN_HORIZON_DAYS,
    max_horizon_days: int = const.DEFAULT_MAX_HORIZON_DAYS,
) -> list[date]:
    """Enumerate a template's upcoming due dates.

    Recomputed from scratch on each call (no cursor state). An invalid
    template or from_date logs a warning and yields an empty list.

    Args:
        template: ScheduledMission or persisted record.
        from_date: First date to consider (usually today).
        cap: Maximum occurrences to return.
        horizon_days: Days to scan; estimated from the rule when None.
        extra_exceptions: Registry exceptions merged with the template's own.
        min_horizon_days: Lower bound for the estimated horizon.
        max_horizon_days: Upper bound for the estimated horizon.

    Returns:
        Strictly ascending list of at most `cap` dates.
    """
    try:
        mission = coerce_scheduled_mission(template)
    except EntityValidationError as err:
        const.LOGGER.warning("enumerate_occurrences: Skipping template: %s", err)
        return []

    start = dt_parse_date(from_date)
    if start is None:
        const.LOGGER.warning("enumerate_occurrences: Invalid from_date %r", from_date)
        return []

    engine = RecurrenceEngine.from_mission(mission, extra_exceptions)
    return engine.get_occurrences(
        start,
        cap,
        horizon_days,
        min_horizon_days=min_horizon_days,
        max_horizon_days=max_horizon_days,
    )


def next_occurrence(
    template: ScheduledMission | Mapping[str, Any],
    after: date | datetime | str,
    *,
    extra_exceptions: Iterable[date] = (),
) -> date | None:
    """Return the first due date strictly after `after`, or None.

    Convenience wrapper around enumerate_occurrences() with cap=1.
    """
    start = dt_parse_date(after)
    if start is None:
        const.LOGGER.warning("next_occurrence: Invalid date %r", after)
        return None
    following = dt_next_day(start)
    if following is None:
        return None
    found = enumerate_occurrences(
        template, following, cap=1, extra_exceptions=extra_exceptions
    )
    return found[0] if found else None


__all__ = [
    "RecurrenceEngine",
    "enumerate_occurrences",
    "is_due",
    "next_occurrence",
]
