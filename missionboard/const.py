# File: const.py
"""Constants for MissionBoard.

This file centralizes storage keys, defaults, option keys, labels and logger
setup for consistency across the scheduling engine, the store and the manager.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General Information
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# Storage and Versioning
STORAGE_KEY = "pointsAppState"
STORAGE_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Recurrence Units
# ------------------------------------------------------------------------------------------------
UNIT_DAY = "day"
UNIT_WEEK = "week"
UNIT_MONTH = "month"
UNIT_YEAR = "year"

RECURRENCE_UNITS = (UNIT_DAY, UNIT_WEEK, UNIT_MONTH, UNIT_YEAR)

# Weekday indices as stored by the app: 0=Sunday .. 6=Saturday
SUNDAY_INDEX = 0
SATURDAY_INDEX = 6
DAYS_PER_WEEK = 7

WEEKDAY_SHORT_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEKDAY_RRULE_CODES = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")

# ------------------------------------------------------------------------------------------------
# Scheduling Defaults
# ------------------------------------------------------------------------------------------------
# The agenda shows at most this many occurrences per template
DEFAULT_DISPLAY_CAP = 7

# Enumerator scan bounds (calendar days)
DEFAULT_MIN_HORIZON_DAYS = 14
DEFAULT_MAX_HORIZON_DAYS = 18300

DEFAULT_INTERVAL = 1
DEFAULT_MAX_REPETITIONS = 1
DEFAULT_POINTS = 0
DEFAULT_LOG_LEVEL = "WARNING"

# First clamped day-of-month (months shorter than this do not exist)
MIN_DAYS_IN_MONTH = 28

# ------------------------------------------------------------------------------------------------
# Options (config file keys)
# ------------------------------------------------------------------------------------------------
CONF_DISPLAY_CAP = "display_cap"
CONF_MIN_HORIZON_DAYS = "min_horizon_days"
CONF_MAX_HORIZON_DAYS = "max_horizon_days"
CONF_LOG_LEVEL = "log_level"
CONF_STORE_PATH = "store_path"

LOG_LEVEL_OPTIONS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ------------------------------------------------------------------------------------------------
# Persisted State Keys (top level)
# ------------------------------------------------------------------------------------------------
DATA_SCHEDULED_MISSIONS = "scheduledMissions"
DATA_TASKS_BY_DATE = "tasksByDate"
DATA_LAST_DATE = "lastDate"
DATA_META = "meta"
DATA_META_STORAGE_VERSION = "storageVersion"

# ------------------------------------------------------------------------------------------------
# Persisted Scheduled Mission (template) Keys
# ------------------------------------------------------------------------------------------------
DATA_SCHEDULED_ID = "id"
DATA_SCHEDULED_MISSION_ID = "missionId"
DATA_SCHEDULED_NAME = "name"
DATA_SCHEDULED_POINTS = "points"
DATA_SCHEDULED_CATEGORY_ID = "categoryId"
DATA_SCHEDULED_DAILY_REPETITIONS = "dailyRepetitions"
DATA_SCHEDULED_DATE = "scheduledDate"
DATA_SCHEDULED_IS_RECURRING = "isRecurring"
DATA_SCHEDULED_REPEAT_UNIT = "repeatUnit"
DATA_SCHEDULED_REPEAT_INTERVAL = "repeatInterval"
DATA_SCHEDULED_REPEAT_END_DATE = "repeatEndDate"
DATA_SCHEDULED_DAYS_OF_WEEK = "daysOfWeek"
DATA_SCHEDULED_SKIPPED_DATES = "skippedDates"

# Nested key inside dailyRepetitions
DATA_REPETITIONS_MAX = "max"

# ------------------------------------------------------------------------------------------------
# Persisted Task Instance Keys
# ------------------------------------------------------------------------------------------------
DATA_TASK_ID = "id"
DATA_TASK_NAME = "name"
DATA_TASK_POINTS = "points"
DATA_TASK_MISSION_ID = "missionId"
DATA_TASK_TEMPLATE_ID = "scheduledMissionId"
DATA_TASK_COMPLETED = "completed"
DATA_TASK_CURRENT_REPETITIONS = "currentRepetitions"
DATA_TASK_DAILY_REPETITIONS = "dailyRepetitions"

# ID prefixes
ID_PREFIX_SCHEDULED = "sm"
ID_PREFIX_TASK = "task"

# ------------------------------------------------------------------------------------------------
# Agenda Labels
# ------------------------------------------------------------------------------------------------
AGENDA_LABEL_TODAY = "today"
AGENDA_LABEL_TOMORROW = "tomorrow"

AGENDA_HEADING_PREFIXES = {
    AGENDA_LABEL_TODAY: "Today",
    AGENDA_LABEL_TOMORROW: "Tomorrow",
}


# ------------------------------------------------------------------------------------------------
# Validation Fields (EntityValidationError.field)
# ------------------------------------------------------------------------------------------------
ERROR_FIELD_ID = DATA_SCHEDULED_ID
ERROR_FIELD_ANCHOR_DATE = DATA_SCHEDULED_DATE
ERROR_FIELD_REPEAT_UNIT = DATA_SCHEDULED_REPEAT_UNIT
ERROR_FIELD_REPEAT_INTERVAL = DATA_SCHEDULED_REPEAT_INTERVAL
ERROR_FIELD_REPEAT_END_DATE = DATA_SCHEDULED_REPEAT_END_DATE
ERROR_FIELD_DAYS_OF_WEEK = DATA_SCHEDULED_DAYS_OF_WEEK
ERROR_FIELD_RECORD = "record"
