"""Record validation, parsing and building for scheduled missions and tasks.

This module is the SINGLE SOURCE OF TRUTH for:
- The persisted record shape (voluptuous schemas)
- Field defaults (missing interval -> 1, missing unit -> day, max reps -> 1)
- Conversion between persisted records and the runtime dataclasses
- Building new templates and task instances (id generation)

### Parse Functions
`parse_scheduled_mission()` and `parse_task_instance()` take a persisted
record and return the runtime dataclass, raising EntityValidationError with
the offending field when the record cannot be used.

### Serialize Functions
`serialize_scheduled_mission()` and `serialize_task_instance()` write the same
keys back, so a record survives a load/save cycle unchanged in meaning.

### Build Functions
`build_scheduled_mission()` handles create (existing=None) and update
(existing=ScheduledMission); `build_task_instance()` seeds a new instance
from a template snapshot.

Consumers:
- engines/ (coerce records passed in by callers)
- store.py (record collections)
- managers/schedule_manager.py (user actions)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
import uuid

import voluptuous as vol

from . import const
from .type_defs import (
    RULE_CLASSES_BY_UNIT,
    RecurrenceRule,
    ScheduledMission,
    ScheduledMissionData,
    TaskInstance,
    TaskInstanceData,
    WeeklyRule,
)
from .utils.dt_utils import dt_format_date, dt_parse_date

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class MissionBoardError(Exception):
    """Base class for MissionBoard errors."""


class EntityValidationError(MissionBoardError):
    """A persisted record or user input failed validation.

    Attributes:
        field: The record key that failed (const.ERROR_FIELD_*)
        reason: Human-readable description of the failure
        record_id: Id of the offending record, when known

    Example:
        raise EntityValidationError(
            field=const.ERROR_FIELD_DAYS_OF_WEEK,
            reason="expected int",
            record_id="sm-1",
        )
    """

    def __init__(self, field: str, reason: str, record_id: str | None = None) -> None:
        """Initialize EntityValidationError.

        Args:
            field: The record key that failed validation
            reason: Description of the failure
            record_id: Id of the offending record, if known
        """
        self.field = field
        self.reason = reason
        self.record_id = record_id
        super().__init__(f"Invalid {field} for record {record_id}: {reason}")


# ==============================================================================
# FIELD VALIDATORS
# ==============================================================================


def _calendar_date(value: Any) -> date:
    """Validate a required calendar date."""
    parsed = dt_parse_date(value)
    if parsed is None:
        raise vol.Invalid(f"invalid date: {value!r}")
    return parsed


def _optional_calendar_date(value: Any) -> date | None:
    """Validate an optional calendar date; None and "" mean absent."""
    if value is None or value == "":
        return None
    return _calendar_date(value)


def _default_interval(value: Any) -> Any:
    """Missing, empty or zero intervals fall back to 1 like the app's form."""
    if value is None or value == "" or value == 0 or value == "0":
        return const.DEFAULT_INTERVAL
    return value


def _default_repetitions(value: Any) -> Any:
    """Missing or zero repetition counts fall back to 1."""
    if value is None or value == "" or value == 0:
        return const.DEFAULT_MAX_REPETITIONS
    return value


def _points(value: Any) -> float:
    """Accept ints, floats and numeric strings; keep ints as ints."""
    if value is None or value == "":
        return const.DEFAULT_POINTS
    if isinstance(value, bool):
        raise vol.Invalid("points must be a number")
    if isinstance(value, (int, float)):
        return value
    try:
        text = str(value).strip()
        return int(text) if text.lstrip("-").isdigit() else float(text)
    except ValueError as err:
        raise vol.Invalid(f"points must be a number: {value!r}") from err


def _weekday(value: Any) -> int:
    """Validate a weekday entry (int or numeric string, 0=Sunday..6=Saturday)."""
    if isinstance(value, bool):
        raise vol.Invalid(f"invalid weekday: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise vol.Invalid(f"weekday is not numeric: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise vol.Invalid(f"weekday is not an integer: {value!r}")
    try:
        day = int(value)
    except (TypeError, ValueError) as err:
        raise vol.Invalid(f"invalid weekday: {value!r}") from err
    if not const.SUNDAY_INDEX <= day <= const.SATURDAY_INDEX:
        raise vol.Invalid(f"weekday out of range 0-6: {day}")
    return day


_INTERVAL = vol.All(_default_interval, vol.Coerce(int), vol.Range(min=1))

_DAILY_REPETITIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.DATA_REPETITIONS_MAX, default=const.DEFAULT_MAX_REPETITIONS
        ): vol.All(_default_repetitions, vol.Coerce(int), vol.Range(min=1)),
    },
    extra=vol.ALLOW_EXTRA,
)

SCHEDULED_MISSION_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_SCHEDULED_ID): vol.All(str, vol.Length(min=1)),
        vol.Required(const.DATA_SCHEDULED_DATE): _calendar_date,
        vol.Optional(const.DATA_SCHEDULED_MISSION_ID, default=None): vol.Any(
            None, str
        ),
        vol.Optional(const.DATA_SCHEDULED_NAME, default=""): vol.Any(
            None, vol.Coerce(str)
        ),
        vol.Optional(const.DATA_SCHEDULED_POINTS, default=const.DEFAULT_POINTS): _points,
        vol.Optional(const.DATA_SCHEDULED_CATEGORY_ID, default=None): vol.Any(
            None, str
        ),
        vol.Optional(const.DATA_SCHEDULED_DAILY_REPETITIONS, default=None): vol.Any(
            None, _DAILY_REPETITIONS_SCHEMA
        ),
        vol.Optional(const.DATA_SCHEDULED_IS_RECURRING, default=False): vol.Any(
            None, vol.Boolean()
        ),
        vol.Optional(const.DATA_SCHEDULED_REPEAT_UNIT, default=None): vol.Any(
            None, vol.In(const.RECURRENCE_UNITS)
        ),
        vol.Optional(
            const.DATA_SCHEDULED_REPEAT_INTERVAL, default=const.DEFAULT_INTERVAL
        ): _INTERVAL,
        vol.Optional(
            const.DATA_SCHEDULED_REPEAT_END_DATE, default=None
        ): _optional_calendar_date,
        vol.Optional(const.DATA_SCHEDULED_DAYS_OF_WEEK, default=None): vol.Any(
            None, [_weekday]
        ),
        vol.Optional(const.DATA_SCHEDULED_SKIPPED_DATES, default=None): vol.Any(
            None, list
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

TASK_INSTANCE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_TASK_ID): vol.All(str, vol.Length(min=1)),
        vol.Optional(const.DATA_TASK_NAME, default=""): vol.Any(None, vol.Coerce(str)),
        vol.Optional(const.DATA_TASK_POINTS, default=const.DEFAULT_POINTS): _points,
        vol.Optional(const.DATA_TASK_MISSION_ID, default=None): vol.Any(None, str),
        vol.Optional(const.DATA_TASK_TEMPLATE_ID, default=None): vol.Any(None, str),
        vol.Optional(const.DATA_TASK_COMPLETED, default=False): vol.Boolean(),
        vol.Optional(const.DATA_TASK_CURRENT_REPETITIONS, default=0): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
        vol.Optional(const.DATA_TASK_DAILY_REPETITIONS, default=None): vol.Any(
            None, _DAILY_REPETITIONS_SCHEMA
        ),
    },
    extra=vol.ALLOW_EXTRA,
)


def _validation_error(err: vol.Invalid, record_id: str | None) -> EntityValidationError:
    """Map a voluptuous error to EntityValidationError with its field."""
    field = str(err.path[0]) if err.path else const.ERROR_FIELD_RECORD
    return EntityValidationError(field=field, reason=err.msg, record_id=record_id)


def _new_id(prefix: str) -> str:
    """Return a fresh record id with the given prefix."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# ==============================================================================
# SKIPPED DATES
# ==============================================================================


def parse_skipped_dates(
    values: Iterable[Any] | None, record_id: str | None = None
) -> frozenset[date]:
    """Parse persisted skipped dates.

    A malformed entry is dropped with a warning; it does not invalidate the
    template it belongs to.

    Args:
        values: Iterable of date strings/dates, or None
        record_id: Template id for log context

    Returns:
        Frozen set of valid dates.
    """
    if not values:
        return frozenset()

    parsed: set[date] = set()
    for value in values:
        day = dt_parse_date(value)
        if day is None:
            const.LOGGER.warning(
                "Ignoring invalid skipped date %r on scheduled mission %s",
                value,
                record_id,
            )
            continue
        parsed.add(day)
    return frozenset(parsed)


# ==============================================================================
# SCHEDULED MISSIONS (templates)
# ==============================================================================


def _build_recurrence(data: dict[str, Any], record_id: str) -> RecurrenceRule:
    """Build the tagged recurrence rule from validated record data."""
    unit = data[const.DATA_SCHEDULED_REPEAT_UNIT] or const.UNIT_DAY
    interval = data[const.DATA_SCHEDULED_REPEAT_INTERVAL]
    end_date = data[const.DATA_SCHEDULED_REPEAT_END_DATE]
    days = data[const.DATA_SCHEDULED_DAYS_OF_WEEK] or []

    if unit == const.UNIT_WEEK:
        return WeeklyRule(
            days_of_week=frozenset(days), interval=interval, end_date=end_date
        )

    if days:
        const.LOGGER.debug(
            "Scheduled mission %s: daysOfWeek ignored for unit %s", record_id, unit
        )
    return RULE_CLASSES_BY_UNIT[unit](interval=interval, end_date=end_date)


def parse_scheduled_mission(record: Mapping[str, Any]) -> ScheduledMission:
    """Parse a persisted scheduled mission record.

    Args:
        record: ScheduledMissionData-shaped mapping

    Returns:
        ScheduledMission dataclass

    Raises:
        EntityValidationError: If the anchor date, unit, interval, end date or
            a weekday entry is invalid.
    """
    if not isinstance(record, Mapping):
        raise EntityValidationError(
            field=const.ERROR_FIELD_RECORD,
            reason=f"expected a mapping, got {type(record).__name__}",
        )

    raw_id = record.get(const.DATA_SCHEDULED_ID)
    record_id = raw_id if isinstance(raw_id, str) else None

    try:
        data = SCHEDULED_MISSION_SCHEMA(dict(record))
    except vol.Invalid as err:
        raise _validation_error(err, record_id) from err

    template_id: str = data[const.DATA_SCHEDULED_ID]
    recurrence: RecurrenceRule | None = None
    if data[const.DATA_SCHEDULED_IS_RECURRING]:
        recurrence = _build_recurrence(data, template_id)

    repetitions = data[const.DATA_SCHEDULED_DAILY_REPETITIONS] or {}

    return ScheduledMission(
        id=template_id,
        anchor_date=data[const.DATA_SCHEDULED_DATE],
        recurrence=recurrence,
        exceptions=parse_skipped_dates(
            data[const.DATA_SCHEDULED_SKIPPED_DATES], template_id
        ),
        mission_id=data[const.DATA_SCHEDULED_MISSION_ID],
        name=data[const.DATA_SCHEDULED_NAME] or "",
        points=data[const.DATA_SCHEDULED_POINTS],
        max_repetitions=repetitions.get(
            const.DATA_REPETITIONS_MAX, const.DEFAULT_MAX_REPETITIONS
        ),
        category_id=data[const.DATA_SCHEDULED_CATEGORY_ID],
    )


def coerce_scheduled_mission(
    value: ScheduledMission | Mapping[str, Any],
) -> ScheduledMission:
    """Return value as a ScheduledMission, parsing persisted records.

    Raises:
        EntityValidationError: If value is a record that fails validation.
    """
    if isinstance(value, ScheduledMission):
        return value
    return parse_scheduled_mission(value)


def serialize_scheduled_mission(mission: ScheduledMission) -> ScheduledMissionData:
    """Convert a ScheduledMission back to its persisted record shape."""
    record: ScheduledMissionData = {
        const.DATA_SCHEDULED_ID: mission.id,
        const.DATA_SCHEDULED_MISSION_ID: mission.mission_id,
        const.DATA_SCHEDULED_NAME: mission.name,
        const.DATA_SCHEDULED_POINTS: mission.points,
        const.DATA_SCHEDULED_CATEGORY_ID: mission.category_id,
        const.DATA_SCHEDULED_DAILY_REPETITIONS: {
            const.DATA_REPETITIONS_MAX: mission.max_repetitions
        },
        const.DATA_SCHEDULED_DATE: mission.anchor_date.isoformat(),
        const.DATA_SCHEDULED_IS_RECURRING: mission.is_recurring,
        const.DATA_SCHEDULED_SKIPPED_DATES: [
            day.isoformat() for day in sorted(mission.exceptions)
        ],
    }

    rule = mission.recurrence
    if rule is not None:
        record[const.DATA_SCHEDULED_REPEAT_UNIT] = rule.unit
        record[const.DATA_SCHEDULED_REPEAT_INTERVAL] = rule.interval
        record[const.DATA_SCHEDULED_REPEAT_END_DATE] = dt_format_date(rule.end_date)
        if isinstance(rule, WeeklyRule):
            # Weekdays are stored as strings, matching the scheduling form values
            record[const.DATA_SCHEDULED_DAYS_OF_WEEK] = [
                str(day) for day in sorted(rule.days_of_week)
            ]

    return record


def build_scheduled_mission(
    user_input: Mapping[str, Any],
    existing: ScheduledMission | None = None,
) -> ScheduledMission:
    """Build a scheduled mission for create or update operations.

    One function handles both create (existing=None) and update
    (existing=ScheduledMission). Keys in user_input use the persisted record
    names (const.DATA_SCHEDULED_*).

    Args:
        user_input: Fields to set (may be partial on update)
        existing: None for create, the current template for update

    Returns:
        Validated ScheduledMission

    Raises:
        EntityValidationError: If the merged record fails validation.

    Examples:
        # CREATE - generates an "sm-" id, applies defaults
        build_scheduled_mission({"scheduledDate": "2024-03-04", "name": "Run"})

        # UPDATE - switch to every 2 weeks on Mon/Wed, keep skipped dates
        build_scheduled_mission(
            {"isRecurring": True, "repeatUnit": "week", "repeatInterval": 2,
             "daysOfWeek": ["1", "3"]},
            existing=template,
        )
    """
    record: dict[str, Any]
    if existing is None:
        record = {const.DATA_SCHEDULED_ID: _new_id(const.ID_PREFIX_SCHEDULED)}
    else:
        record = dict(serialize_scheduled_mission(existing))

    is_recurring_update = const.DATA_SCHEDULED_IS_RECURRING in user_input
    record.update(user_input)

    # A rule switched off or replaced must not inherit stale sibling fields
    if existing is not None and is_recurring_update:
        for key in (
            const.DATA_SCHEDULED_REPEAT_UNIT,
            const.DATA_SCHEDULED_REPEAT_INTERVAL,
            const.DATA_SCHEDULED_REPEAT_END_DATE,
            const.DATA_SCHEDULED_DAYS_OF_WEEK,
        ):
            if key not in user_input:
                record.pop(key, None)

    if existing is not None:
        record[const.DATA_SCHEDULED_ID] = existing.id

    return parse_scheduled_mission(record)


# ==============================================================================
# TASK INSTANCES
# ==============================================================================


def build_task_instance(mission: ScheduledMission, day: date) -> TaskInstance:
    """Seed a fresh task instance from a template's current snapshot."""
    return TaskInstance(
        id=_new_id(const.ID_PREFIX_TASK),
        date=day,
        name=mission.name,
        template_id=mission.id,
        mission_id=mission.mission_id,
        points=mission.points,
        max_repetitions=mission.max_repetitions,
    )


def parse_task_instance(record: Mapping[str, Any], day: date) -> TaskInstance:
    """Parse a persisted task record stored under tasksByDate[day].

    Raises:
        EntityValidationError: If the record fails validation.
    """
    if not isinstance(record, Mapping):
        raise EntityValidationError(
            field=const.ERROR_FIELD_RECORD,
            reason=f"expected a mapping, got {type(record).__name__}",
        )

    raw_id = record.get(const.DATA_TASK_ID)
    try:
        data = TASK_INSTANCE_SCHEMA(dict(record))
    except vol.Invalid as err:
        raise _validation_error(
            err, raw_id if isinstance(raw_id, str) else None
        ) from err

    repetitions = data[const.DATA_TASK_DAILY_REPETITIONS] or {}
    return TaskInstance(
        id=data[const.DATA_TASK_ID],
        date=day,
        name=data[const.DATA_TASK_NAME] or "",
        template_id=data[const.DATA_TASK_TEMPLATE_ID],
        mission_id=data[const.DATA_TASK_MISSION_ID],
        points=data[const.DATA_TASK_POINTS],
        max_repetitions=repetitions.get(
            const.DATA_REPETITIONS_MAX, const.DEFAULT_MAX_REPETITIONS
        ),
        completed=data[const.DATA_TASK_COMPLETED],
        current_repetitions=data[const.DATA_TASK_CURRENT_REPETITIONS],
    )


def serialize_task_instance(instance: TaskInstance) -> TaskInstanceData:
    """Convert a TaskInstance to its persisted record shape (date is the key)."""
    return {
        const.DATA_TASK_ID: instance.id,
        const.DATA_TASK_NAME: instance.name,
        const.DATA_TASK_POINTS: instance.points,
        const.DATA_TASK_MISSION_ID: instance.mission_id,
        const.DATA_TASK_TEMPLATE_ID: instance.template_id,
        const.DATA_TASK_COMPLETED: instance.completed,
        const.DATA_TASK_CURRENT_REPETITIONS: instance.current_repetitions,
        const.DATA_TASK_DAILY_REPETITIONS: {
            const.DATA_REPETITIONS_MAX: instance.max_repetitions
        },
    }
