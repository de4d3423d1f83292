"""Engine modules for MissionBoard.

Contains the pure scheduling computations:
- schedule_engine: Date membership, occurrence enumeration and RRULE export
- agenda_engine: Date-grouped projection of upcoming occurrences
- materialization_engine: Today's task instances to insert
"""

# Use relative imports within package to avoid mypy module resolution issues
from .agenda_engine import AgendaEngine, build_agenda
from .materialization_engine import MaterializationEngine, materialize_today
from .schedule_engine import (
    RecurrenceEngine,
    enumerate_occurrences,
    is_due,
    next_occurrence,
)

__all__ = [
    "AgendaEngine",
    "MaterializationEngine",
    "RecurrenceEngine",
    "build_agenda",
    "enumerate_occurrences",
    "is_due",
    "materialize_today",
    "next_occurrence",
]
