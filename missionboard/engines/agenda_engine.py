"""Agenda Engine - Pure logic for the upcoming-occurrences view.

Merges every template's upcoming occurrences into a date-grouped list:
- one AgendaEntry per occurrence, tagged `is_anchor` on the template's own
  anchor date (the only date the UI offers deletion on)
- entries sorted ascending by date, stable in template order
- groups labelled "today" / "tomorrow" by pure calendar-date comparison

ARCHITECTURE: Stateless. Templates and exceptions are passed in; the caller
(ScheduleManager) owns the data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from itertools import groupby
from typing import Any

from .. import const
from ..data_builders import EntityValidationError, coerce_scheduled_mission
from ..exception_registry import ExceptionSource, lookup_exceptions
from ..type_defs import AgendaEntry, AgendaGroup, ScheduledMission
from ..utils.dt_utils import dt_format_display, dt_parse_date
from .schedule_engine import RecurrenceEngine


class AgendaEngine:
    """Pure logic engine for the agenda projection.

    All methods are static - no instance state.
    """

    @staticmethod
    def label_for(day: date, today: date) -> str | None:
        """Return "today", "tomorrow" or None for a group date."""
        if day == today:
            return const.AGENDA_LABEL_TODAY
        if day == today + timedelta(days=1):
            return const.AGENDA_LABEL_TOMORROW
        return None

    @staticmethod
    def heading_for(day: date, label: str | None) -> str:
        """Return the display heading for a group.

        Examples:
            "Today, Monday, March 4, 2024"
            "Wednesday, March 6, 2024"
        """
        display = dt_format_display(day)
        prefix = const.AGENDA_HEADING_PREFIXES.get(label) if label else None
        return f"{prefix}, {display}" if prefix else display

    @staticmethod
    def entries_for_template(
        mission: ScheduledMission,
        today: date,
        cap: int,
        extra_exceptions: Iterable[date] = (),
        *,
        min_horizon_days: int = const.DEFAULT_MIN_HORIZON_DAYS,
        max_horizon_days: int = const.DEFAULT_MAX_HORIZON_DAYS,
    ) -> list[AgendaEntry]:
        """Return up to `cap` agenda entries for one template."""
        engine = RecurrenceEngine.from_mission(mission, extra_exceptions)
        description = engine.describe()
        return [
            AgendaEntry(
                template_id=mission.id,
                date=day,
                name=mission.name,
                points=mission.points,
                is_anchor=day == mission.anchor_date,
                is_recurring=mission.is_recurring,
                recurrence_label=description,
            )
            for day in engine.get_occurrences(
                today,
                cap,
                min_horizon_days=min_horizon_days,
                max_horizon_days=max_horizon_days,
            )
        ]

    @staticmethod
    def group_entries(entries: list[AgendaEntry], today: date) -> list[AgendaGroup]:
        """Sort entries by date (stable) and group same-date entries."""
        ordered = sorted(entries, key=lambda entry: entry.date)
        groups: list[AgendaGroup] = []
        for day, same_day in groupby(ordered, key=lambda entry: entry.date):
            label = AgendaEngine.label_for(day, today)
            groups.append(
                AgendaGroup(
                    date=day,
                    heading=AgendaEngine.heading_for(day, label),
                    label=label,
                    entries=tuple(same_day),
                )
            )
        return groups


def build_agenda(
    templates: Iterable[ScheduledMission | Mapping[str, Any]],
    today: date | datetime | str,
    cap: int = const.DEFAULT_DISPLAY_CAP,
    *,
    exceptions: ExceptionSource = None,
    min_horizon_days: int = const.DEFAULT_MIN_HORIZON_DAYS,
    max_horizon_days: int = const.DEFAULT_MAX_HORIZON_DAYS,
) -> list[AgendaGroup]:
    """Build the date-grouped agenda for all templates.

    Each template contributes at most `cap` entries. An invalid template is
    logged and skipped; the others still appear.

    Args:
        templates: ScheduledMission objects or persisted records.
        today: Reference date for enumeration and today/tomorrow labels.
        cap: Maximum occurrences per template.
        exceptions: Registry (or template id -> dates mapping) merged with
            each template's own skipped dates.
        min_horizon_days: Lower bound for each enumeration horizon.
        max_horizon_days: Upper bound for each enumeration horizon.

    Returns:
        AgendaGroup list in ascending date order.
    """
    reference = dt_parse_date(today)
    if reference is None:
        const.LOGGER.warning("build_agenda: Invalid today %r", today)
        return []

    entries: list[AgendaEntry] = []
    for template in templates:
        try:
            mission = coerce_scheduled_mission(template)
        except EntityValidationError as err:
            const.LOGGER.warning("build_agenda: Skipping template: %s", err)
            continue
        entries.extend(
            AgendaEngine.entries_for_template(
                mission,
                reference,
                cap,
                lookup_exceptions(exceptions, mission.id),
                min_horizon_days=min_horizon_days,
                max_horizon_days=max_horizon_days,
            )
        )

    groups = AgendaEngine.group_entries(entries, reference)
    const.LOGGER.debug(
        "build_agenda: %d entries in %d groups from %s",
        len(entries),
        len(groups),
        reference,
    )
    return groups
