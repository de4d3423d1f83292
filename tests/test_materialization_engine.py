"""Unit tests for materialization_engine.py.

The materializer returns insertions only. Tests cover seeding, idempotence,
progress preservation, exceptions, legacy records and invalid templates.
"""

from datetime import date
import logging

import pytest

from missionboard import const
from missionboard.engines.materialization_engine import (
    MaterializationEngine,
    materialize_today,
)
from missionboard.exception_registry import ExceptionRegistry
from missionboard.type_defs import DailyRule, ScheduledMission, TaskInstance

TODAY = date(2024, 3, 4)


@pytest.fixture
def daily_water() -> ScheduledMission:
    """Daily template with a repetition count."""
    return ScheduledMission(
        id="sm-water",
        anchor_date=date(2024, 3, 1),
        recurrence=DailyRule(),
        mission_id="m-water",
        name="Drink water",
        points=2,
        max_repetitions=8,
    )


# =============================================================================
# Seeding
# =============================================================================


class TestSeeding:
    """Test the content of created instances."""

    def test_instance_copies_snapshot(self, daily_water: ScheduledMission) -> None:
        """Name, points and repetitions come from the template."""
        (instance,) = materialize_today([daily_water], None, [], TODAY)

        assert instance.template_id == "sm-water"
        assert instance.mission_id == "m-water"
        assert instance.date == TODAY
        assert instance.name == "Drink water"
        assert instance.points == 2
        assert instance.max_repetitions == 8
        assert instance.completed is False
        assert instance.current_repetitions == 0
        assert instance.id.startswith(f"{const.ID_PREFIX_TASK}-")

    def test_not_due_creates_nothing(self) -> None:
        """A one-off anchored tomorrow is not materialized today."""
        tomorrow = ScheduledMission(id="sm-later", anchor_date=date(2024, 3, 5))
        assert materialize_today([tomorrow], None, [], TODAY) == []

    def test_one_off_on_anchor(self) -> None:
        """A one-off anchored today is materialized."""
        one_off = ScheduledMission(id="sm-now", anchor_date=TODAY, name="Now")
        (instance,) = materialize_today([one_off], None, [], TODAY)
        assert instance.template_id == "sm-now"

    def test_accepts_iso_today(self, daily_water: ScheduledMission) -> None:
        """Today may be given as an ISO string."""
        (instance,) = materialize_today([daily_water], None, [], "2024-03-04")
        assert instance.date == TODAY


# =============================================================================
# Idempotence and progress
# =============================================================================


class TestIdempotence:
    """Repeated runs never duplicate or overwrite."""

    def test_second_run_inserts_nothing(self, daily_water: ScheduledMission) -> None:
        """Feeding the first run's output back yields no insertions."""
        first = materialize_today([daily_water], None, [], TODAY)
        assert len(first) == 1
        assert materialize_today([daily_water], None, first, TODAY) == []

    def test_existing_progress_untouched(self, daily_water: ScheduledMission) -> None:
        """An in-progress stored record is neither returned nor changed."""
        stored = {
            const.DATA_TASK_ID: "task-1",
            const.DATA_TASK_TEMPLATE_ID: "sm-water",
            const.DATA_TASK_MISSION_ID: "m-water",
            const.DATA_TASK_COMPLETED: True,
            const.DATA_TASK_CURRENT_REPETITIONS: 8,
        }
        snapshot = dict(stored)

        assert materialize_today([daily_water], None, [stored], TODAY) == []
        assert stored == snapshot

    def test_duplicate_templates_emit_once(self, daily_water: ScheduledMission) -> None:
        """The same template listed twice still yields one instance."""
        result = materialize_today([daily_water, daily_water], None, [], TODAY)
        assert len(result) == 1

    def test_other_day_instance_does_not_block(
        self, daily_water: ScheduledMission
    ) -> None:
        """Only instances dated today count."""
        yesterday = TaskInstance(
            id="task-old",
            date=date(2024, 3, 3),
            name="Drink water",
            template_id="sm-water",
        )
        result = materialize_today([daily_water], None, [yesterday], TODAY)
        assert len(result) == 1

    def test_dated_record_for_other_day_does_not_block(
        self, daily_water: ScheduledMission
    ) -> None:
        """Raw records with an explicit other date are ignored."""
        record = {"id": "task-x", "scheduledMissionId": "sm-water", "date": "2024-03-03"}
        assert len(materialize_today([daily_water], None, [record], TODAY)) == 1

    def test_legacy_record_matches_mission(self, daily_water: ScheduledMission) -> None:
        """Records stored without a template id match on mission id."""
        legacy = {
            const.DATA_TASK_ID: "task-legacy",
            const.DATA_TASK_MISSION_ID: "m-water",
            const.DATA_TASK_CURRENT_REPETITIONS: 3,
        }
        assert materialize_today([daily_water], None, [legacy], TODAY) == []

    def test_adhoc_task_does_not_block(self, daily_water: ScheduledMission) -> None:
        """Ad-hoc tasks (no template, no mission) never match."""
        adhoc = {const.DATA_TASK_ID: "task-adhoc", const.DATA_TASK_MISSION_ID: None}
        assert len(materialize_today([daily_water], None, [adhoc], TODAY)) == 1


# =============================================================================
# Exceptions and invalid input
# =============================================================================


class TestExceptionsAndErrors:
    """Test exception sources and invalid templates."""

    def test_registry_exception_skips_today(
        self, daily_water: ScheduledMission
    ) -> None:
        """A registry skip for today prevents materialization."""
        registry = ExceptionRegistry({"sm-water": [TODAY]})
        assert materialize_today([daily_water], registry, [], TODAY) == []

    def test_template_exception_skips_today(self) -> None:
        """The template's own skipped dates apply too."""
        mission = ScheduledMission(
            id="sm-x",
            anchor_date=date(2024, 3, 1),
            recurrence=DailyRule(),
            exceptions=frozenset({TODAY}),
        )
        assert materialize_today([mission], None, [], TODAY) == []

    def test_mapping_exception_source(self, daily_water: ScheduledMission) -> None:
        """A mapping of ISO strings is accepted."""
        result = materialize_today(
            [daily_water], {"sm-water": ["2024-03-04"]}, [], TODAY
        )
        assert result == []

    def test_invalid_template_excluded(
        self, daily_water: ScheduledMission, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Invalid records are logged and skipped; others still materialize."""
        broken = {
            "id": "sm-broken",
            "scheduledDate": "2024-03-04",
            "isRecurring": True,
            "daysOfWeek": ["monday"],
            "repeatUnit": "week",
        }
        with caplog.at_level(logging.WARNING, logger=const.LOGGER.name):
            result = materialize_today([broken, daily_water], None, [], TODAY)

        assert [item.template_id for item in result] == ["sm-water"]
        assert "sm-broken" in caplog.text

    def test_invalid_today(self, daily_water: ScheduledMission) -> None:
        """An unparseable today materializes nothing."""
        assert materialize_today([daily_water], None, [], "soon") == []


class TestInstanceKeys:
    """Test the coverage keys collected from existing instances."""

    def test_keys_split_by_template_and_legacy(self) -> None:
        """Template ids and legacy mission ids are collected separately."""
        instances = [
            {"id": "a", "scheduledMissionId": "sm-1", "missionId": "m-1"},
            {"id": "b", "missionId": "m-2"},
            TaskInstance(id="c", date=TODAY, name="C", template_id="sm-3"),
        ]
        templates, legacy = MaterializationEngine.instance_keys(instances, TODAY)
        assert templates == {"sm-1", "sm-3"}
        assert legacy == {"m-2"}
