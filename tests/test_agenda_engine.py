"""Unit tests for agenda_engine.py.

Tests the date-grouped agenda projection: ordering, grouping, today/tomorrow
labels, anchor tagging, per-template caps and invalid template handling.
"""

from datetime import date
import logging

import pytest

from missionboard import const
from missionboard.engines.agenda_engine import AgendaEngine, build_agenda
from missionboard.exception_registry import ExceptionRegistry
from missionboard.type_defs import DailyRule, ScheduledMission, WeeklyRule

TODAY = date(2024, 3, 4)  # Monday


@pytest.fixture
def daily_read() -> ScheduledMission:
    """Daily template anchored today."""
    return ScheduledMission(
        id="sm-read",
        anchor_date=TODAY,
        recurrence=DailyRule(),
        mission_id="m-read",
        name="Read",
        points=10,
    )


@pytest.fixture
def dentist() -> ScheduledMission:
    """One-off template tomorrow."""
    return ScheduledMission(
        id="sm-dentist",
        anchor_date=date(2024, 3, 5),
        mission_id="m-dentist",
        name="Dentist",
        points=5,
    )


# =============================================================================
# Labels and headings
# =============================================================================


class TestLabels:
    """Test today/tomorrow labels and headings."""

    def test_label_today_and_tomorrow(self) -> None:
        """Pure date comparison against today."""
        assert AgendaEngine.label_for(TODAY, TODAY) == const.AGENDA_LABEL_TODAY
        assert (
            AgendaEngine.label_for(date(2024, 3, 5), TODAY)
            == const.AGENDA_LABEL_TOMORROW
        )
        assert AgendaEngine.label_for(date(2024, 3, 6), TODAY) is None

    def test_label_across_month_end(self) -> None:
        """Tomorrow works across month boundaries."""
        assert (
            AgendaEngine.label_for(date(2024, 3, 1), date(2024, 2, 29))
            == const.AGENDA_LABEL_TOMORROW
        )

    def test_headings(self) -> None:
        """Headings prefix today/tomorrow to the display date."""
        assert (
            AgendaEngine.heading_for(TODAY, const.AGENDA_LABEL_TODAY)
            == "Today, Monday, March 4, 2024"
        )
        assert (
            AgendaEngine.heading_for(date(2024, 3, 5), const.AGENDA_LABEL_TOMORROW)
            == "Tomorrow, Tuesday, March 5, 2024"
        )
        assert AgendaEngine.heading_for(date(2024, 3, 6), None) == (
            "Wednesday, March 6, 2024"
        )


# =============================================================================
# build_agenda
# =============================================================================


class TestBuildAgenda:
    """Test the merged agenda."""

    def test_groups_sorted_and_labelled(
        self, daily_read: ScheduledMission, dentist: ScheduledMission
    ) -> None:
        """Same-date entries share a group; groups ascend by date."""
        groups = build_agenda([daily_read, dentist], TODAY, cap=3)

        assert [group.date for group in groups] == [
            date(2024, 3, 4),
            date(2024, 3, 5),
            date(2024, 3, 6),
        ]
        assert [group.label for group in groups] == [
            const.AGENDA_LABEL_TODAY,
            const.AGENDA_LABEL_TOMORROW,
            None,
        ]
        assert groups[0].heading == "Today, Monday, March 4, 2024"
        # Stable in template order within a date
        assert [entry.name for entry in groups[1].entries] == ["Read", "Dentist"]

    def test_anchor_tagging(
        self, daily_read: ScheduledMission, dentist: ScheduledMission
    ) -> None:
        """Only the template's own anchor date is tagged."""
        groups = build_agenda([daily_read, dentist], TODAY, cap=3)
        tagged = {
            (entry.template_id, entry.date): entry.is_anchor
            for group in groups
            for entry in group.entries
        }
        assert tagged[("sm-read", TODAY)] is True
        assert tagged[("sm-read", date(2024, 3, 5))] is False
        assert tagged[("sm-dentist", date(2024, 3, 5))] is True

    def test_entry_details(self, daily_read: ScheduledMission) -> None:
        """Entries carry points, recurring flag and description."""
        entry = build_agenda([daily_read], TODAY, cap=1)[0].entries[0]
        assert entry.points == 10
        assert entry.is_recurring is True
        assert entry.recurrence_label == "every day"

    def test_cap_is_per_template(
        self, daily_read: ScheduledMission, dentist: ScheduledMission
    ) -> None:
        """Each template contributes at most cap entries."""
        groups = build_agenda([daily_read, dentist], TODAY, cap=7)
        read_entries = [
            entry
            for group in groups
            for entry in group.entries
            if entry.template_id == "sm-read"
        ]
        assert len(read_entries) == 7
        assert groups[-1].date == date(2024, 3, 10)

    def test_registry_exceptions_removed(self, daily_read: ScheduledMission) -> None:
        """Skipped dates from the registry do not appear."""
        registry = ExceptionRegistry({"sm-read": [TODAY]})
        groups = build_agenda([daily_read], TODAY, cap=2, exceptions=registry)
        assert [group.date for group in groups] == [
            date(2024, 3, 5),
            date(2024, 3, 6),
        ]

    def test_mapping_exceptions_accepted(self, daily_read: ScheduledMission) -> None:
        """A plain mapping of date strings works as the exception source."""
        groups = build_agenda(
            [daily_read], TODAY, cap=1, exceptions={"sm-read": ["2024-03-04"]}
        )
        assert groups[0].date == date(2024, 3, 5)

    def test_invalid_template_skipped(
        self, daily_read: ScheduledMission, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A broken record is logged and the rest still render."""
        broken = {
            "id": "sm-broken",
            "scheduledDate": "2024-03-04",
            "isRecurring": True,
            "repeatUnit": "fortnight",
        }
        with caplog.at_level(logging.WARNING, logger=const.LOGGER.name):
            groups = build_agenda([broken, daily_read], TODAY, cap=2)

        assert [entry.template_id for g in groups for entry in g.entries] == [
            "sm-read",
            "sm-read",
        ]
        assert "sm-broken" in caplog.text

    def test_records_and_weekly_rules(self) -> None:
        """Persisted weekly records show their description."""
        record = {
            "id": "sm-run",
            "name": "Run",
            "scheduledDate": "2024-03-04",
            "isRecurring": True,
            "repeatUnit": "week",
            "repeatInterval": 2,
            "daysOfWeek": ["1", "3"],
            "repeatEndDate": "2024-06-30",
        }
        groups = build_agenda([record], TODAY, cap=4)
        assert [group.date.day for group in groups] == [4, 6, 18, 20]
        assert groups[0].entries[0].recurrence_label == (
            "every 2 weeks on Mon, Wed until 2024-06-30"
        )

    def test_past_templates_absent(self) -> None:
        """A one-off in the past contributes nothing."""
        past = ScheduledMission(id="sm-old", anchor_date=date(2024, 3, 1))
        assert build_agenda([past], TODAY) == []

    def test_empty_weekly_rule_absent(self) -> None:
        """An empty weekday set contributes nothing."""
        empty = ScheduledMission(
            id="sm-empty", anchor_date=TODAY, recurrence=WeeklyRule()
        )
        assert build_agenda([empty], TODAY) == []

    def test_invalid_today(self) -> None:
        """An unparseable today yields an empty agenda."""
        assert build_agenda([], "yesterday-ish") == []
