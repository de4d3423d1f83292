# File: store.py
"""Handles persistent data storage for MissionBoard scheduling state.

Keeps the scheduled mission templates and the per-date task instances in an
in-memory dict, optionally mirrored to a JSON file so state survives restarts.
Records are kept in their persisted (camelCase) shape; unknown keys written by
other parts of the app are preserved untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
import json
import os
from pathlib import Path
from typing import Any

from . import const
from .data_builders import parse_skipped_dates
from .utils.dt_utils import dt_parse_date


def _record_id(record: Any) -> Any:
    """Return a stored template's id (None for entries that are not mappings)."""
    if not isinstance(record, Mapping):
        return None
    return record.get(const.DATA_SCHEDULED_ID)


def _day_key(day: date | str) -> str:
    """Return the tasksByDate key ("YYYY-MM-DD") for a date."""
    parsed = dt_parse_date(day)
    if parsed is None:
        raise ValueError(f"Invalid date: {day!r}")
    return parsed.isoformat()


class MissionStore:
    """Handles persistent storage operations for scheduling data.

    Implements the state-store contract used by ScheduleManager:
    get_templates / get_exceptions / get_instances / set_instances, plus
    template writes and load/save.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        storage_key: str = const.STORAGE_KEY,
    ) -> None:
        """Initialize the store.

        Args:
            path: JSON file to load from and save to. None keeps the store
                in memory only.
            storage_key: Name used in log messages to identify the store.
        """
        self._path = Path(path) if path is not None else None
        self._storage_key = storage_key
        self._data: dict[str, Any] = MissionStore.get_default_structure()

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return canonical empty data structure for fresh installations.

        Returns:
            dict: Default structure with all buckets and meta initialized.
        """
        return {
            const.DATA_META: {
                const.DATA_META_STORAGE_VERSION: const.STORAGE_VERSION,
            },
            const.DATA_SCHEDULED_MISSIONS: [],
            const.DATA_TASKS_BY_DATE: {},
            const.DATA_LAST_DATE: "",
        }

    # -------------------------------------------------------------------------------------
    # Load / Save
    # -------------------------------------------------------------------------------------

    @property
    def path(self) -> Path | None:
        """Return the storage file path (None for in-memory stores)."""
        return self._path

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    def set_data(self, new_data: Mapping[str, Any]) -> None:
        """Replace the entire in-memory data structure.

        Missing buckets are filled in from the default structure.
        """
        data = dict(new_data)
        for key, value in MissionStore.get_default_structure().items():
            data.setdefault(key, value)
        self._data = data
        const.LOGGER.debug(
            "Store %s: %d scheduled missions, %d task dates",
            self._storage_key,
            len(self._data[const.DATA_SCHEDULED_MISSIONS]),
            len(self._data[const.DATA_TASKS_BY_DATE]),
        )

    def load(self) -> None:
        """Load data from the storage file.

        A missing file initializes the default structure. A file that cannot
        be parsed is logged and replaced by the default structure, as a fresh
        install would be.
        """
        if self._path is None or not self._path.exists():
            const.LOGGER.info("No existing storage found. Initializing new data")
            self._data = MissionStore.get_default_structure()
            return

        try:
            with self._path.open(encoding="utf-8") as handle:
                loaded = json.load(handle)
        except (OSError, json.JSONDecodeError) as err:
            const.LOGGER.error(
                "Failed to load storage from %s: %s. Starting with empty data",
                self._path,
                err,
            )
            self._data = MissionStore.get_default_structure()
            return

        if not isinstance(loaded, dict):
            const.LOGGER.error(
                "Storage %s does not hold an object. Starting with empty data",
                self._path,
            )
            self._data = MissionStore.get_default_structure()
            return

        self.set_data(loaded)

    def save(self) -> None:
        """Write the current data structure to the storage file.

        Errors are logged and do not stop execution. In-memory stores only
        log at debug level.
        """
        if self._path is None:
            const.LOGGER.debug("Store %s is in memory only", self._storage_key)
            return

        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(self._data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
            const.LOGGER.debug("Data saved successfully to %s", self._path)
        except OSError as err:
            const.LOGGER.error(
                "Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._path,
            )
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "Failed to save storage due to non-serializable data: %s", err
            )

    def clear_data(self) -> None:
        """Clear all stored data and reset to default structure."""
        const.LOGGER.warning("Clearing all MissionBoard scheduling data")
        self._data = MissionStore.get_default_structure()
        self.save()

    # -------------------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------------------

    def get_templates(self) -> list[dict[str, Any]]:
        """Return the stored template records (shallow list copy)."""
        return list(self._data[const.DATA_SCHEDULED_MISSIONS])

    def get_template(self, template_id: str) -> dict[str, Any] | None:
        """Return one template record by id, or None."""
        for record in self._data[const.DATA_SCHEDULED_MISSIONS]:
            if _record_id(record) == template_id:
                return record
        return None

    def save_template(self, record: Mapping[str, Any]) -> None:
        """Insert or replace a template record (matched by id)."""
        template_id = record.get(const.DATA_SCHEDULED_ID)
        records: list[dict[str, Any]] = self._data[const.DATA_SCHEDULED_MISSIONS]
        for index, existing in enumerate(records):
            if _record_id(existing) == template_id:
                records[index] = dict(record)
                return
        records.append(dict(record))

    def delete_template(self, template_id: str) -> bool:
        """Remove a template record.

        Returns:
            True if a record was removed.
        """
        records: list[dict[str, Any]] = self._data[const.DATA_SCHEDULED_MISSIONS]
        kept = [r for r in records if _record_id(r) != template_id]
        self._data[const.DATA_SCHEDULED_MISSIONS] = kept
        return len(kept) != len(records)

    def get_exceptions(self, template_id: str) -> frozenset[date]:
        """Return the skipped dates stored on a template (empty if unknown)."""
        record = self.get_template(template_id)
        if record is None:
            return frozenset()
        return parse_skipped_dates(
            record.get(const.DATA_SCHEDULED_SKIPPED_DATES), template_id
        )

    # -------------------------------------------------------------------------------------
    # Task Instances
    # -------------------------------------------------------------------------------------

    def get_instances(self, day: date | str) -> list[dict[str, Any]]:
        """Return the task records stored for a date (shallow list copy)."""
        return list(self._data[const.DATA_TASKS_BY_DATE].get(_day_key(day), []))

    def set_instances(self, day: date | str, instances: Iterable[Mapping[str, Any]]) -> None:
        """Replace the task records stored for a date."""
        self._data[const.DATA_TASKS_BY_DATE][_day_key(day)] = [
            dict(instance) if isinstance(instance, Mapping) else instance
            for instance in instances
        ]

    def get_instance_dates(self) -> list[str]:
        """Return every date key that holds task records."""
        return list(self._data[const.DATA_TASKS_BY_DATE])

    @property
    def last_date(self) -> str:
        """Return the last processed date ("" if never processed)."""
        return self._data.get(const.DATA_LAST_DATE) or ""

    @last_date.setter
    def last_date(self, value: date | str) -> None:
        self._data[const.DATA_LAST_DATE] = _day_key(value)
