"""Materialization Engine - decides which task instances to create for today.

Pure computation: given the templates, their skipped dates and the instances
already stored for today, return ONLY the instances that must be inserted.
Existing instances are never returned, copied or modified, so progress fields
(`completed`, `current_repetitions`) survive any number of reloads.

Calling `materialize_today()` twice with the output of the first call added to
`existing_instances` returns an empty list the second time.

Persisting the insertions, and making sure no other writer touches today's
instances in between, is the caller's job (see ScheduleManager.process_today).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .. import const
from ..data_builders import (
    EntityValidationError,
    build_task_instance,
    coerce_scheduled_mission,
)
from ..exception_registry import ExceptionSource, lookup_exceptions
from ..type_defs import ScheduledMission, TaskInstance
from ..utils.dt_utils import dt_parse_date
from .schedule_engine import RecurrenceEngine

ExistingInstance = TaskInstance | Mapping[str, Any]


class MaterializationEngine:
    """Pure logic engine for daily materialization.

    All methods are static - no instance state.
    """

    @staticmethod
    def instance_keys(
        instances: Iterable[ExistingInstance], today: date
    ) -> tuple[set[str], set[str]]:
        """Collect what today's existing instances already cover.

        Returns:
            (template ids with an instance today,
             mission ids of legacy instances that carry no template id)

        Raw records are assumed to belong to `today` unless they carry a
        parseable "date" key. Records created before template ids were
        stored only carry a missionId; they still count for the templates of
        that mission.
        """
        template_ids: set[str] = set()
        legacy_mission_ids: set[str] = set()

        for instance in instances:
            if isinstance(instance, TaskInstance):
                day = instance.date
                template_id = instance.template_id
                mission_id = instance.mission_id
            elif isinstance(instance, Mapping):
                day = dt_parse_date(instance.get("date")) or today
                template_id = instance.get(const.DATA_TASK_TEMPLATE_ID)
                mission_id = instance.get(const.DATA_TASK_MISSION_ID)
            else:
                const.LOGGER.warning(
                    "materialize_today: Ignoring unknown instance %r", instance
                )
                continue

            if day != today:
                continue
            if template_id:
                template_ids.add(template_id)
            elif mission_id:
                legacy_mission_ids.add(mission_id)

        return template_ids, legacy_mission_ids

    @staticmethod
    def is_due_today(
        mission: ScheduledMission, today: date, extra_exceptions: Iterable[date] = ()
    ) -> bool:
        """Return True if the template is due today after all exceptions."""
        return RecurrenceEngine.from_mission(mission, extra_exceptions).is_due(today)


def materialize_today(
    templates: Iterable[ScheduledMission | Mapping[str, Any]],
    exceptions: ExceptionSource,
    existing_instances: Iterable[ExistingInstance],
    today: date | datetime | str,
) -> list[TaskInstance]:
    """Return the task instances to insert for today.

    For each template due today (its own skipped dates united with the
    registry's), emit one instance seeded from the template snapshot unless an
    instance for (template id, today) already exists or was emitted earlier in
    this call. Invalid templates are logged and excluded.

    Args:
        templates: ScheduledMission objects or persisted records.
        exceptions: ExceptionRegistry, template id -> dates mapping, or None.
        existing_instances: Instances already stored for today (TaskInstance
            objects or persisted task records).
        today: The date being materialized.

    Returns:
        New TaskInstance objects only (insertions).
    """
    day = dt_parse_date(today)
    if day is None:
        const.LOGGER.warning("materialize_today: Invalid today %r", today)
        return []

    covered, legacy_mission_ids = MaterializationEngine.instance_keys(
        existing_instances, day
    )
    insertions: list[TaskInstance] = []

    for template in templates:
        try:
            mission = coerce_scheduled_mission(template)
        except EntityValidationError as err:
            const.LOGGER.warning("materialize_today: Skipping template: %s", err)
            continue

        if mission.id in covered:
            continue
        if mission.mission_id and mission.mission_id in legacy_mission_ids:
            const.LOGGER.debug(
                "materialize_today: %s already has a legacy instance for mission %s",
                mission.id,
                mission.mission_id,
            )
            continue
        if not MaterializationEngine.is_due_today(
            mission, day, lookup_exceptions(exceptions, mission.id)
        ):
            continue

        instance = build_task_instance(mission, day)
        insertions.append(instance)
        covered.add(mission.id)
        const.LOGGER.debug(
            "materialize_today: Created %s from template %s for %s",
            instance.id,
            mission.id,
            day,
        )

    return insertions
