"""Schedule Manager - stateful scheduling operations over a MissionStore.

This manager handles every operation that changes scheduling state:
- Daily materialization of today's task instances (process_today)
- Scheduling, rescheduling and unscheduling missions
- Skipping / restoring single dates
- Mission deletion cascade and snapshot sync

ARCHITECTURE:
- ScheduleManager = STATEFUL (reads and writes the store, owns the lock)
- schedule_engine / agenda_engine / materialization_engine = pure logic

All mutating operations run under one `threading.Lock`, so a materialization
is always complete before any other writer touches today's instances.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import date, datetime
import threading
from typing import TYPE_CHECKING, Any

from .. import const, data_builders as db
from ..config import OPTIONS_SCHEMA, apply_log_level, load_options
from ..engines.agenda_engine import build_agenda
from ..engines.materialization_engine import materialize_today
from ..engines.schedule_engine import RecurrenceEngine
from ..exception_registry import ExceptionRegistry
from ..store import MissionStore
from ..utils.dt_utils import dt_parse_date, dt_today

if TYPE_CHECKING:
    from os import PathLike

    from ..type_defs import AgendaGroup, ScheduledMission, TaskInstance


__all__ = ["ScheduleManager", "TemplateNotFoundError"]

# Keys that only make sense alongside isRecurring=True
_RECURRENCE_KEYS = (
    const.DATA_SCHEDULED_REPEAT_UNIT,
    const.DATA_SCHEDULED_REPEAT_INTERVAL,
    const.DATA_SCHEDULED_REPEAT_END_DATE,
    const.DATA_SCHEDULED_DAYS_OF_WEEK,
)


class TemplateNotFoundError(db.MissionBoardError):
    """Raised when an operation names a scheduled mission that does not exist.

    Attributes:
        template_id: The id that was not found
    """

    def __init__(self, template_id: str) -> None:
        """Initialize TemplateNotFoundError.

        Args:
            template_id: The id that was not found
        """
        self.template_id = template_id
        super().__init__(f"Scheduled mission not found: {template_id}")


class ScheduleManager:
    """Manager for scheduled missions and daily materialization.

    Responsibilities:
    - Run materialization for today and persist the insertions
    - Apply user actions to template records
    - Build the agenda with the configured display cap and horizons

    NOT responsible for:
    - Task completion and repetition progress (day-to-day task flow)
    - Rolling unfinished tasks over to the next day
    """

    def __init__(
        self,
        store: MissionStore,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Store holding templates and task instances
            options: Options dict (validated with OPTIONS_SCHEMA)
        """
        self._store = store
        self._options: dict[str, Any] = OPTIONS_SCHEMA(dict(options or {}))
        self._lock = threading.Lock()

    @classmethod
    def from_options(
        cls, source: Mapping[str, Any] | str | PathLike[str] | None = None
    ) -> ScheduleManager:
        """Build a manager from options (a mapping or a YAML file).

        Applies the log_level option to the package logger and loads the
        store from store_path; without a store_path the store is in memory.

        Raises:
            voluptuous.Invalid: If an option is invalid.
            OSError: If the options file cannot be read.
        """
        options = load_options(source)
        apply_log_level(options)
        store = MissionStore(options[const.CONF_STORE_PATH])
        store.load()
        return cls(store, options)

    @property
    def store(self) -> MissionStore:
        """Return the backing store."""
        return self._store

    @property
    def options(self) -> dict[str, Any]:
        """Return the validated options."""
        return self._options

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _resolve_day(value: date | datetime | str | None) -> date:
        """Return value as a date, defaulting to today."""
        if value is None:
            return dt_today()
        day = dt_parse_date(value)
        if day is None:
            raise ValueError(f"Invalid date: {value!r}")
        return day

    def _require_record(self, template_id: str) -> dict[str, Any]:
        """Return a template record or raise TemplateNotFoundError."""
        record = self._store.get_template(template_id)
        if record is None:
            raise TemplateNotFoundError(template_id)
        return record

    def _require_template(self, template_id: str) -> ScheduledMission:
        """Return a parsed template or raise.

        Raises:
            TemplateNotFoundError: If the id is unknown.
            EntityValidationError: If the stored record is invalid.
        """
        return db.parse_scheduled_mission(self._require_record(template_id))

    def _write_template(
        self, mission: ScheduledMission, previous: Mapping[str, Any] | None = None
    ) -> None:
        """Store a template, keeping unknown keys of the previous record."""
        record = dict(previous or {})
        for key in _RECURRENCE_KEYS:
            record.pop(key, None)
        record.update(db.serialize_scheduled_mission(mission))
        self._store.save_template(record)

    def _horizon_kwargs(self) -> dict[str, int]:
        return {
            "min_horizon_days": self._options[const.CONF_MIN_HORIZON_DAYS],
            "max_horizon_days": self._options[const.CONF_MAX_HORIZON_DAYS],
        }

    # =========================================================================
    # Materialization
    # =========================================================================

    def process_today(
        self, today: date | datetime | str | None = None
    ) -> list[TaskInstance]:
        """Materialize today's instances and persist the insertions.

        Safe to call on every load: a second call on the same day inserts
        nothing and leaves existing progress untouched.

        Args:
            today: Date to materialize (defaults to the current date)

        Returns:
            The newly inserted instances.
        """
        day = self._resolve_day(today)
        with self._lock:
            return self._process_today_locked(day)

    def _process_today_locked(self, day: date) -> list[TaskInstance]:
        """Materialization body (called inside the lock)."""
        templates = self._store.get_templates()
        existing = self._store.get_instances(day)
        registry = ExceptionRegistry.from_records(templates)

        insertions = materialize_today(templates, registry, existing, day)
        if insertions:
            self._store.set_instances(
                day,
                existing + [db.serialize_task_instance(item) for item in insertions],
            )
            const.LOGGER.info(
                "Materialized %d scheduled task(s) for %s", len(insertions), day
            )

        self._store.last_date = day
        self._store.save()
        return insertions

    # =========================================================================
    # Template Actions
    # =========================================================================

    def schedule_mission(
        self,
        user_input: Mapping[str, Any],
        today: date | datetime | str | None = None,
    ) -> ScheduledMission:
        """Create a template from user input, then materialize today.

        Args:
            user_input: Template fields keyed by const.DATA_SCHEDULED_*
            today: Date to materialize (defaults to the current date)

        Returns:
            The created template.

        Raises:
            EntityValidationError: If the input is invalid.
        """
        day = self._resolve_day(today)
        mission = db.build_scheduled_mission(user_input)
        with self._lock:
            self._write_template(mission)
            const.LOGGER.debug(
                "Scheduled mission %s (%s) from %s",
                mission.id,
                mission.name,
                mission.anchor_date,
            )
            self._process_today_locked(day)
        return mission

    def reschedule(
        self,
        template_id: str,
        user_input: Mapping[str, Any],
        today: date | datetime | str | None = None,
    ) -> ScheduledMission:
        """Replace a template's anchor and/or recurrence; skipped dates are kept.

        Raises:
            TemplateNotFoundError: If the id is unknown.
            EntityValidationError: If the merged template is invalid.
        """
        day = self._resolve_day(today)
        with self._lock:
            record = self._require_record(template_id)
            existing = db.parse_scheduled_mission(record)
            mission = db.build_scheduled_mission(user_input, existing)
            self._write_template(mission, record)
            self._process_today_locked(day)
        return mission

    def unschedule(self, template_id: str) -> None:
        """Delete a template. Instances already created are kept.

        Raises:
            TemplateNotFoundError: If the id is unknown.
        """
        with self._lock:
            if not self._store.delete_template(template_id):
                raise TemplateNotFoundError(template_id)
            self._store.save()
        const.LOGGER.debug("Unscheduled %s", template_id)

    def delete_mission(self, mission_id: str) -> int:
        """Delete every template of a mission.

        Task instances already created for the mission stay in place.

        Returns:
            Number of templates removed.
        """
        removed = 0
        with self._lock:
            for record in self._store.get_templates():
                if not self._has_mission(record, mission_id):
                    continue
                if self._store.delete_template(record.get(const.DATA_SCHEDULED_ID)):
                    removed += 1
            if removed:
                self._store.save()
        const.LOGGER.debug(
            "Deleted mission %s: %d scheduled mission(s) removed", mission_id, removed
        )
        return removed

    def skip_date(self, template_id: str, day: date | datetime | str) -> bool:
        """Skip one date of a template and drop that day's instance.

        Returns:
            True if the date was newly skipped.

        Raises:
            TemplateNotFoundError: If the id is unknown.
            EntityValidationError: If the stored record is invalid.
        """
        skip_day = self._resolve_day(day)
        with self._lock:
            record = self._require_record(template_id)
            mission = db.parse_scheduled_mission(record)
            registry = ExceptionRegistry.from_missions([mission])
            added = registry.skip(mission.id, skip_day)
            if added:
                self._write_template(
                    replace(mission, exceptions=registry.get(mission.id)), record
                )

            instances = self._store.get_instances(skip_day)
            kept = [item for item in instances if not self._belongs_to(item, mission)]
            if len(kept) != len(instances):
                self._store.set_instances(skip_day, kept)
                const.LOGGER.debug(
                    "Removed %s instance for skipped date %s", template_id, skip_day
                )
            self._store.save()
        return added

    def restore_date(
        self,
        template_id: str,
        day: date | datetime | str,
        today: date | datetime | str | None = None,
    ) -> bool:
        """Undo a skipped date; re-materializes when the date is today.

        Returns:
            True if the date had been skipped.

        Raises:
            TemplateNotFoundError: If the id is unknown.
        """
        restore_day = self._resolve_day(day)
        current = self._resolve_day(today)
        with self._lock:
            record = self._require_record(template_id)
            mission = db.parse_scheduled_mission(record)
            registry = ExceptionRegistry.from_missions([mission])
            restored = registry.restore(mission.id, restore_day)
            if restored:
                self._write_template(
                    replace(mission, exceptions=registry.get(mission.id)), record
                )
            if restored and restore_day == current:
                self._process_today_locked(current)
            else:
                self._store.save()
        return restored

    def prune_skipped_dates(self, before: date | datetime | str | None = None) -> int:
        """Drop skipped dates older than `before` (default today) from all templates.

        Invalid template records are left untouched.

        Returns:
            Number of dates removed.
        """
        cutoff = self._resolve_day(before)
        removed = 0
        with self._lock:
            for record in self._store.get_templates():
                try:
                    mission = db.parse_scheduled_mission(record)
                except db.EntityValidationError as err:
                    const.LOGGER.warning("Skipping invalid template: %s", err)
                    continue
                registry = ExceptionRegistry.from_missions([mission])
                count = registry.prune_before(cutoff)
                if count:
                    removed += count
                    self._write_template(
                        replace(mission, exceptions=registry.get(mission.id)), record
                    )
            if removed:
                self._store.save()
        return removed

    def sync_mission_snapshot(
        self,
        mission_id: str,
        *,
        name: str | None = None,
        points: float | None = None,
        max_repetitions: int | None = None,
        category_id: str | None = None,
        today: date | datetime | str | None = None,
    ) -> int:
        """Copy edited mission fields into its templates and today's instance.

        Today's instance gets the new name, points and repetition count but
        keeps `completed` and `currentRepetitions`.

        Returns:
            Number of templates updated.
        """
        day = self._resolve_day(today)
        updates: dict[str, Any] = {}
        if name is not None:
            updates[const.DATA_SCHEDULED_NAME] = name
        if points is not None:
            updates[const.DATA_SCHEDULED_POINTS] = points
        if max_repetitions is not None:
            updates[const.DATA_SCHEDULED_DAILY_REPETITIONS] = {
                const.DATA_REPETITIONS_MAX: max_repetitions
            }
        task_updates = dict(updates)
        if category_id is not None:
            updates[const.DATA_SCHEDULED_CATEGORY_ID] = category_id
        if not updates:
            return 0

        updated = 0
        with self._lock:
            for record in self._store.get_templates():
                if not self._has_mission(record, mission_id):
                    continue
                self._store.save_template({**record, **updates})
                updated += 1

            if task_updates:
                instances = self._store.get_instances(day)
                synced = [
                    {**item, **task_updates}
                    if self._has_mission(item, mission_id)
                    else item
                    for item in instances
                ]
                if synced != instances:
                    self._store.set_instances(day, synced)
            self._store.save()
        return updated

    @staticmethod
    def _has_mission(record: Any, mission_id: str) -> bool:
        """Return True if a stored template or task entry belongs to the mission."""
        return (
            isinstance(record, Mapping)
            and record.get(const.DATA_SCHEDULED_MISSION_ID) == mission_id
        )

    @staticmethod
    def _belongs_to(item: Mapping[str, Any], mission: ScheduledMission) -> bool:
        """Return True if a stored task record was created from the template."""
        if not isinstance(item, Mapping):
            return False
        template_id = item.get(const.DATA_TASK_TEMPLATE_ID)
        if template_id:
            return template_id == mission.id
        return bool(mission.mission_id) and (
            item.get(const.DATA_TASK_MISSION_ID) == mission.mission_id
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_template(self, template_id: str) -> ScheduledMission:
        """Return a parsed template.

        Raises:
            TemplateNotFoundError: If the id is unknown.
        """
        return self._require_template(template_id)

    def get_agenda(self, today: date | datetime | str | None = None) -> list[AgendaGroup]:
        """Return the agenda grouped by date, capped per template."""
        day = self._resolve_day(today)
        return build_agenda(
            self._store.get_templates(),
            day,
            self._options[const.CONF_DISPLAY_CAP],
            **self._horizon_kwargs(),
        )

    def get_occurrences(
        self,
        template_id: str,
        from_date: date | datetime | str | None = None,
        cap: int | None = None,
    ) -> list[date]:
        """Return a template's upcoming due dates."""
        mission = self._require_template(template_id)
        engine = RecurrenceEngine.from_mission(mission)
        return engine.get_occurrences(
            self._resolve_day(from_date),
            cap if cap is not None else self._options[const.CONF_DISPLAY_CAP],
            **self._horizon_kwargs(),
        )

    def export_rrule(self, template_id: str) -> str:
        """Return the template's recurrence as an RRULE string ("" if none)."""
        return RecurrenceEngine.from_mission(
            self._require_template(template_id)
        ).to_rrule_string()
