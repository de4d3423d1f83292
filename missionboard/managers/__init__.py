"""Manager modules for MissionBoard.

Managers orchestrate workflows and coordinate between engines and the store.
They are stateful and own the locking around writes.
"""

from .schedule_manager import ScheduleManager, TemplateNotFoundError

__all__ = [
    "ScheduleManager",
    "TemplateNotFoundError",
]
