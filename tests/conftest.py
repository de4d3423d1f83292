"""Shared fixtures for MissionBoard tests."""

# pylint: disable=redefined-outer-name  # Pytest fixtures redefine names

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from missionboard import const
from missionboard.managers import ScheduleManager
from missionboard.store import MissionStore


@pytest.fixture
def store() -> MissionStore:
    """Return an in-memory store with the default structure."""
    return MissionStore()


@pytest.fixture
def manager(store: MissionStore) -> ScheduleManager:
    """Return a schedule manager over the in-memory store."""
    return ScheduleManager(store)


@pytest.fixture
def restore_log_level() -> Iterator[None]:
    """Restore the package logger level after a test changes it."""
    level = const.LOGGER.level
    yield
    const.LOGGER.setLevel(level)


@pytest.fixture
def make_record() -> Callable[..., dict[str, Any]]:
    """Return a factory for persisted scheduled mission records.

    Keyword arguments override the defaults, e.g.
    make_record(isRecurring=True, repeatUnit="week", daysOfWeek=["1", "3"]).
    """

    def _make(
        template_id: str = "sm-read",
        scheduled_date: str = "2024-03-04",
        **overrides: Any,
    ) -> dict[str, Any]:
        record: dict[str, Any] = {
            const.DATA_SCHEDULED_ID: template_id,
            const.DATA_SCHEDULED_MISSION_ID: "m-read",
            const.DATA_SCHEDULED_NAME: "Read 20 pages",
            const.DATA_SCHEDULED_POINTS: 10,
            const.DATA_SCHEDULED_CATEGORY_ID: "cat-study",
            const.DATA_SCHEDULED_DAILY_REPETITIONS: {const.DATA_REPETITIONS_MAX: 1},
            const.DATA_SCHEDULED_DATE: scheduled_date,
            const.DATA_SCHEDULED_IS_RECURRING: False,
        }
        record.update(overrides)
        return record

    return _make
