"""Type definitions for MissionBoard data structures.

TWO LAYERS
==========

1. **TypedDict for PERSISTED records** (the JSON shape the app stores):
   - ScheduledMissionData, TaskInstanceData, DailyRepetitionsData
   - camelCase keys, dates as "YYYY-MM-DD" strings, weekdays possibly as
     numeric strings. TypedDict is STATIC ANALYSIS ONLY; runtime validation
     lives in data_builders.py.

2. **Frozen dataclasses for the RUNTIME model** used by the engines:
   - RecurrenceRule is a tagged union of DailyRule, WeeklyRule, MonthlyRule
     and YearlyRule. `days_of_week` only exists on WeeklyRule, so a weekday
     set cannot be attached to a monthly rule.
   - ScheduledMission (template), TaskInstance, AgendaEntry, AgendaGroup.

IMPORTANT: This file must NOT import from engines, managers or the store.
Only import from const.py and the standard library.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, NotRequired, TypedDict

from . import const

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

TemplateId = str
MissionId = str
TaskId = str
ISODate = str  # ISO 8601 date string "2024-03-04"


# =============================================================================
# Persisted Records
# =============================================================================


class DailyRepetitionsData(TypedDict):
    """How many times a task must be repeated on its day to complete."""

    max: int


class ScheduledMissionData(TypedDict):
    """Persisted scheduled mission (template) record.

    Recurrence fields are only present when isRecurring is true.
    """

    id: TemplateId
    missionId: NotRequired[MissionId | None]
    name: NotRequired[str]
    points: NotRequired[float]
    categoryId: NotRequired[str | None]
    dailyRepetitions: NotRequired[DailyRepetitionsData]
    scheduledDate: ISODate
    isRecurring: NotRequired[bool]
    repeatUnit: NotRequired[str]
    repeatInterval: NotRequired[int | str]
    repeatEndDate: NotRequired[ISODate | None]
    daysOfWeek: NotRequired[list[int | str]]
    skippedDates: NotRequired[list[ISODate]]


class TaskInstanceData(TypedDict):
    """Persisted task instance record, grouped by date under tasksByDate."""

    id: TaskId
    name: str
    points: float
    missionId: MissionId | None
    scheduledMissionId: NotRequired[TemplateId | None]
    completed: bool
    currentRepetitions: int
    dailyRepetitions: DailyRepetitionsData


# =============================================================================
# Recurrence Rules (tagged union)
# =============================================================================


def _check_interval(interval: int) -> None:
    """Reject non-positive or non-integer intervals."""
    if isinstance(interval, bool) or not isinstance(interval, int):
        raise TypeError(f"interval must be an int, got {type(interval).__name__}")
    if interval < 1:
        raise ValueError(f"interval must be >= 1, got {interval}")


@dataclass(frozen=True, slots=True)
class DailyRule:
    """Every `interval` days from the anchor date."""

    unit: ClassVar[str] = const.UNIT_DAY

    interval: int = const.DEFAULT_INTERVAL
    end_date: date | None = None

    def __post_init__(self) -> None:
        """Validate the interval."""
        _check_interval(self.interval)


@dataclass(frozen=True, slots=True)
class WeeklyRule:
    """Every `interval` weeks on the selected weekdays (0=Sunday..6=Saturday).

    An empty weekday set is allowed and never matches any date.
    """

    unit: ClassVar[str] = const.UNIT_WEEK

    days_of_week: frozenset[int] = frozenset()
    interval: int = const.DEFAULT_INTERVAL
    end_date: date | None = None

    def __post_init__(self) -> None:
        """Validate the interval and freeze the weekday set."""
        _check_interval(self.interval)
        days = frozenset(self.days_of_week)
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int):
                raise TypeError(f"weekday must be an int, got {day!r}")
            if not const.SUNDAY_INDEX <= day <= const.SATURDAY_INDEX:
                raise ValueError(f"weekday out of range 0-6: {day}")
        object.__setattr__(self, "days_of_week", days)


@dataclass(frozen=True, slots=True)
class MonthlyRule:
    """Every `interval` months on the anchor's day, clamped to the month end."""

    unit: ClassVar[str] = const.UNIT_MONTH

    interval: int = const.DEFAULT_INTERVAL
    end_date: date | None = None

    def __post_init__(self) -> None:
        """Validate the interval."""
        _check_interval(self.interval)


@dataclass(frozen=True, slots=True)
class YearlyRule:
    """Every `interval` years on the anchor's month and day (no clamping)."""

    unit: ClassVar[str] = const.UNIT_YEAR

    interval: int = const.DEFAULT_INTERVAL
    end_date: date | None = None

    def __post_init__(self) -> None:
        """Validate the interval."""
        _check_interval(self.interval)


RecurrenceRule = DailyRule | WeeklyRule | MonthlyRule | YearlyRule

RULE_CLASSES_BY_UNIT: dict[str, type[RecurrenceRule]] = {
    const.UNIT_DAY: DailyRule,
    const.UNIT_WEEK: WeeklyRule,
    const.UNIT_MONTH: MonthlyRule,
    const.UNIT_YEAR: YearlyRule,
}


# =============================================================================
# Templates and Instances
# =============================================================================


@dataclass(frozen=True, slots=True)
class ScheduledMission:
    """A scheduled mission template.

    Attributes:
        id: Template id
        anchor_date: First scheduled calendar date
        recurrence: Recurrence rule, or None for a one-off template
        exceptions: Dates explicitly skipped by the user
        mission_id: Owning mission in the mission book
        name: Snapshot copied into materialized instances
        points: Snapshot copied into materialized instances
        max_repetitions: Snapshot of the daily repetition count
        category_id: Snapshot of the mission category
    """

    id: TemplateId
    anchor_date: date
    recurrence: RecurrenceRule | None = None
    exceptions: frozenset[date] = frozenset()
    mission_id: MissionId | None = None
    name: str = ""
    points: float = const.DEFAULT_POINTS
    max_repetitions: int = const.DEFAULT_MAX_REPETITIONS
    category_id: str | None = None

    @property
    def is_recurring(self) -> bool:
        """Return True if the template carries a recurrence rule."""
        return self.recurrence is not None


@dataclass(slots=True)
class TaskInstance:
    """A concrete, independently completable task for one calendar date.

    `completed` and `current_repetitions` belong to the day-to-day task flow;
    the scheduling engine only ever creates instances, it never edits them.
    """

    id: TaskId
    date: date
    name: str
    template_id: TemplateId | None = None
    mission_id: MissionId | None = None
    points: float = const.DEFAULT_POINTS
    max_repetitions: int = const.DEFAULT_MAX_REPETITIONS
    completed: bool = False
    current_repetitions: int = 0


# =============================================================================
# Agenda
# =============================================================================


@dataclass(frozen=True, slots=True)
class AgendaEntry:
    """One template occurrence in the agenda.

    `is_anchor` is True only on the template's own anchor date; the UI offers
    deletion there and not on generated repeats.
    """

    template_id: TemplateId
    date: date
    name: str
    points: float
    is_anchor: bool
    is_recurring: bool
    recurrence_label: str = ""


@dataclass(frozen=True, slots=True)
class AgendaGroup:
    """All agenda entries falling on the same date."""

    date: date
    heading: str
    label: str | None = None
    entries: tuple[AgendaEntry, ...] = field(default_factory=tuple)
