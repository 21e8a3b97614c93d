# File: const.py
"""Constants for the habitcore package.

This file centralizes data keys, status codes, defaults, cache limits and
logger identifiers for consistency across engines and managers.

IMPORTANT: This module must NOT import from engines/ or managers/ to avoid
circular imports. Only the standard library is allowed here.
"""

import logging
from typing import Final

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
HABITCORE_TITLE = "habitcore"

# Logger
LOGGER = logging.getLogger(__package__)

# Sentinel values
SENTINEL_EMPTY = ""

# ------------------------------------------------------------------------------------------------
# Time of day slots
# ------------------------------------------------------------------------------------------------
TIME_MORNING = "Morning"
TIME_AFTERNOON = "Afternoon"
TIME_EVENING = "Evening"

# Canonical slot order (also the packed bit order, lowest bits first)
TIMES_OF_DAY: Final[tuple[str, ...]] = (TIME_MORNING, TIME_AFTERNOON, TIME_EVENING)

# ------------------------------------------------------------------------------------------------
# Status packing
# ------------------------------------------------------------------------------------------------
STATUS_BITS_PER_SLOT = 2
STATUS_SLOT_MASK = 0b11
STATUS_BITS_PER_DAY = STATUS_BITS_PER_SLOT * len(TIMES_OF_DAY)

# Bit offset of each slot inside a packed day value
SLOT_BIT_OFFSET: Final[dict[str, int]] = {
    TIME_MORNING: 0,
    TIME_AFTERNOON: 2,
    TIME_EVENING: 4,
}

# Month wide-integer buffers: 31 days * 6 bits = 186 bits -> 24 bytes
MONTH_BUFFER_BYTES = 24

# Shard / entry keys
SHARD_KEY_PREFIX = "logs:"
ENTRY_KEY_SEPARATOR = "_"
HEX_PREFIX = "0x"

# ------------------------------------------------------------------------------------------------
# Frequency
# ------------------------------------------------------------------------------------------------
FREQUENCY_DAILY = "daily"
FREQUENCY_SPECIFIC_DAYS_OF_WEEK = "specific_days_of_week"
FREQUENCY_INTERVAL = "interval"

FREQUENCY_TYPES: Final[tuple[str, ...]] = (
    FREQUENCY_DAILY,
    FREQUENCY_SPECIFIC_DAYS_OF_WEEK,
    FREQUENCY_INTERVAL,
)

TIME_UNIT_DAYS = "days"
TIME_UNIT_WEEKS = "weeks"

INTERVAL_UNITS: Final[tuple[str, ...]] = (TIME_UNIT_DAYS, TIME_UNIT_WEEKS)

DAYS_PER_WEEK = 7

# ------------------------------------------------------------------------------------------------
# Goals
# ------------------------------------------------------------------------------------------------
GOAL_TYPE_CHECK = "check"
GOAL_TYPE_PAGES = "pages"
GOAL_TYPE_MINUTES = "minutes"

GOAL_TYPES: Final[tuple[str, ...]] = (
    GOAL_TYPE_CHECK,
    GOAL_TYPE_PAGES,
    GOAL_TYPE_MINUTES,
)

# Adaptive goal heuristic
SMART_GOAL_MINIMUM = 5
SMART_GOAL_WEEKLY_INCREMENT = 5
SMART_GOAL_REQUIRED_MATCHES = 2
CHECK_GOAL_VALUE = 1

# ------------------------------------------------------------------------------------------------
# Streak milestones
# ------------------------------------------------------------------------------------------------
STREAK_SEMI_CONSOLIDATED = 21
STREAK_CONSOLIDATED = 66

# Day summary momentum look-back (number of prior perfect days required)
PLUS_INDICATOR_LOOKBACK_DAYS = 2

# ------------------------------------------------------------------------------------------------
# Data keys: Habit
# ------------------------------------------------------------------------------------------------
DATA_HABITS = "habits"
DATA_DAILY_INFO = "daily_info"
DATA_LOGS = "logs"
DATA_VERSION = "version"

DATA_HABIT_ID = "id"
DATA_HABIT_CREATED_ON = "created_on"
DATA_HABIT_DELETED_ON = "deleted_on"
DATA_HABIT_GRADUATED_ON = "graduated_on"
DATA_HABIT_SCHEDULE_HISTORY = "schedule_history"

# Data keys: HabitSchedule
DATA_SCHEDULE_START_DATE = "start_date"
DATA_SCHEDULE_END_DATE = "end_date"
DATA_SCHEDULE_TIMES = "times"
DATA_SCHEDULE_GOAL = "goal"
DATA_SCHEDULE_FREQUENCY = "frequency"
DATA_SCHEDULE_ANCHOR = "schedule_anchor"
DATA_SCHEDULE_ICON = "icon"
DATA_SCHEDULE_COLOR = "color"
DATA_SCHEDULE_NAME = "name"
DATA_SCHEDULE_SUBTITLE = "subtitle"
DATA_SCHEDULE_NAME_KEY = "name_key"
DATA_SCHEDULE_SUBTITLE_KEY = "subtitle_key"

# Data keys: Frequency
DATA_FREQUENCY_TYPE = "type"
DATA_FREQUENCY_DAYS = "days"
DATA_FREQUENCY_UNIT = "unit"
DATA_FREQUENCY_AMOUNT = "amount"

# Data keys: Goal
DATA_GOAL_TYPE = "type"
DATA_GOAL_TOTAL = "total"
DATA_GOAL_UNIT_KEY = "unit_key"

# Data keys: daily info / instances
DATA_DAILY_INSTANCES = "instances"
DATA_DAILY_SCHEDULE = "daily_schedule"
DATA_INSTANCE_NOTE = "note"
DATA_INSTANCE_GOAL_OVERRIDE = "goal_override"

# Persisted state version
STATE_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Engine configuration
# ------------------------------------------------------------------------------------------------
CONF_MAX_CACHE_ENTRIES = "max_cache_entries"
CONF_MAX_ANCHOR_CACHE_ENTRIES = "max_anchor_cache_entries"
CONF_STREAK_LOOKBACK_DAYS = "streak_lookback_days"
CONF_SMART_GOAL_LOOKBACK_DAYS = "smart_goal_lookback_days"
CONF_TIME_ZONE = "time_zone"

DEFAULT_MAX_CACHE_ENTRIES = 750
DEFAULT_MAX_ANCHOR_CACHE_ENTRIES = 365
DEFAULT_STREAK_LOOKBACK_DAYS = 730
DEFAULT_SMART_GOAL_LOOKBACK_DAYS = 14
DEFAULT_TIME_ZONE = "UTC"

# ------------------------------------------------------------------------------------------------
# Mark-all actions
# ------------------------------------------------------------------------------------------------
MARK_ALL_COMPLETED = "completed"
MARK_ALL_SNOOZED = "snoozed"
