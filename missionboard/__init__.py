"""MissionBoard recurrence scheduling engine.

Decides when scheduled mission templates are due, lists their upcoming
occurrences for the agenda, and creates today's task instances without
duplicating or overwriting in-progress work.
"""

from .data_builders import EntityValidationError, MissionBoardError
from .engines import build_agenda, enumerate_occurrences, is_due, materialize_today
from .exception_registry import ExceptionRegistry
from .managers import ScheduleManager, TemplateNotFoundError
from .store import MissionStore
from .type_defs import (
    AgendaEntry,
    AgendaGroup,
    DailyRule,
    MonthlyRule,
    ScheduledMission,
    TaskInstance,
    WeeklyRule,
    YearlyRule,
)

__version__ = "0.1.0"

__all__ = [
    "AgendaEntry",
    "AgendaGroup",
    "DailyRule",
    "EntityValidationError",
    "ExceptionRegistry",
    "MissionBoardError",
    "MissionStore",
    "MonthlyRule",
    "ScheduleManager",
    "ScheduledMission",
    "TaskInstance",
    "TemplateNotFoundError",
    "WeeklyRule",
    "YearlyRule",
    "build_agenda",
    "enumerate_occurrences",
    "is_due",
    "materialize_today",
]
