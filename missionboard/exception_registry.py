"""Per-template registry of skipped calendar dates.

A skipped date is one the user removed from a template's schedule even though
the recurrence rule would otherwise make it due ("not today"). The registry is
an explicit object handed to the engines; nothing here is global.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from . import const
from .data_builders import parse_skipped_dates
from .type_defs import ScheduledMission


class ExceptionRegistry:
    """Skipped dates keyed by template id."""

    def __init__(self, skipped: Mapping[str, Iterable[date]] | None = None) -> None:
        """Initialize the registry.

        Args:
            skipped: Optional initial mapping of template id to skipped dates.
        """
        self._skipped: dict[str, set[date]] = {}
        for template_id, days in (skipped or {}).items():
            for day in days:
                self.skip(template_id, day)

    @classmethod
    def from_missions(cls, missions: Iterable[ScheduledMission]) -> ExceptionRegistry:
        """Build a registry from the exceptions carried by templates."""
        registry = cls()
        for mission in missions:
            for day in mission.exceptions:
                registry.skip(mission.id, day)
        return registry

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> ExceptionRegistry:
        """Build a registry from persisted records' skippedDates fields.

        Records without a usable id are ignored; entries that are not mappings
        and malformed dates are dropped with a warning.
        """
        registry = cls()
        for record in records:
            if not isinstance(record, Mapping):
                const.LOGGER.warning(
                    "ExceptionRegistry: Skipping non-mapping template record %r", record
                )
                continue
            template_id = record.get(const.DATA_SCHEDULED_ID)
            if not isinstance(template_id, str) or not template_id:
                continue
            days = parse_skipped_dates(
                record.get(const.DATA_SCHEDULED_SKIPPED_DATES), template_id
            )
            for day in days:
                registry.skip(template_id, day)
        return registry

    def skip(self, template_id: str, day: date) -> bool:
        """Mark a date as skipped for a template.

        Returns:
            True if the date was newly added, False if already skipped.
        """
        days = self._skipped.setdefault(template_id, set())
        if day in days:
            return False
        days.add(day)
        const.LOGGER.debug("Skipped %s for scheduled mission %s", day, template_id)
        return True

    def restore(self, template_id: str, day: date) -> bool:
        """Remove a skipped date so the template is due again that day.

        Returns:
            True if the date was skipped before, False otherwise.
        """
        days = self._skipped.get(template_id)
        if not days or day not in days:
            return False
        days.discard(day)
        if not days:
            del self._skipped[template_id]
        return True

    def get(self, template_id: str) -> frozenset[date]:
        """Return the skipped dates for a template (empty if none)."""
        return frozenset(self._skipped.get(template_id, ()))

    def is_skipped(self, template_id: str, day: date) -> bool:
        """Return True if the date is skipped for the template."""
        return day in self._skipped.get(template_id, ())

    def remove_template(self, template_id: str) -> None:
        """Forget every skipped date of a deleted template."""
        self._skipped.pop(template_id, None)

    def prune_before(self, cutoff: date) -> int:
        """Drop skipped dates strictly before cutoff.

        Past skipped dates can no longer affect materialization or the agenda,
        which only look at today and later.

        Returns:
            Number of dates removed.
        """
        removed = 0
        for template_id in list(self._skipped):
            days = self._skipped[template_id]
            stale = {day for day in days if day < cutoff}
            if not stale:
                continue
            days -= stale
            removed += len(stale)
            if not days:
                del self._skipped[template_id]
        if removed:
            const.LOGGER.debug("Pruned %d skipped dates before %s", removed, cutoff)
        return removed

    def to_record_list(self, template_id: str) -> list[str]:
        """Return a template's skipped dates in the persisted format."""
        return [day.isoformat() for day in sorted(self.get(template_id))]

    def template_ids(self) -> list[str]:
        """Return ids of templates that have at least one skipped date."""
        return list(self._skipped)

    def __contains__(self, template_id: object) -> bool:
        """Return True if the template has skipped dates."""
        return template_id in self._skipped

    def __len__(self) -> int:
        """Return the number of templates with skipped dates."""
        return len(self._skipped)


ExceptionSource = ExceptionRegistry | Mapping[str, Iterable[Any]] | None


def lookup_exceptions(exceptions: ExceptionSource, template_id: str) -> frozenset[date]:
    """Return the skipped dates for a template from a registry or plain mapping.

    Plain mappings may hold date strings; malformed entries are dropped with a
    warning.
    """
    if exceptions is None:
        return frozenset()
    if isinstance(exceptions, ExceptionRegistry):
        return exceptions.get(template_id)
    return parse_skipped_dates(exceptions.get(template_id), template_id)
