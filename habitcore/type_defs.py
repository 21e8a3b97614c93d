"""Type definitions for habitcore data structures.

HYBRID APPROACH (TypedDict + dict[str, Any])
============================================

1. **TypedDict for STATIC structures** (fixed keys known at design time):
   - Records: HabitData, HabitScheduleData, FrequencyData, GoalData
   - Query results: DaySummary, DisplayInfo, ActiveHabit
   - Configuration: EngineConfig

2. **dict[...] for DYNAMIC structures** (keys determined at runtime):
   - Per-date override records: daily_info[date_iso][habit_id]
   - Status shards: shards["logs:YYYY-MM"]

Keys of the TypedDicts below mirror the DATA_* constants in const.py.
Records are storage/transport shaped: they are what the durable store hands
to the engine at boot and what export_state() hands back.

IMPORTANT: This file must NOT import from engines/ or managers/.
TypedDict is STATIC ANALYSIS ONLY; runtime validation lives in
data_builders.py (voluptuous schemas).
"""

from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

HabitId = str  # UUID string
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"
MonthKey = str  # "YYYY-MM"
ShardKey = str  # "logs:YYYY-MM"
EntryKey = str  # "{habit_id}_YYYY-MM-DD"
TimeOfDay = Literal["Morning", "Afternoon", "Evening"]

# Shard payload: ordered list of (entry key, packed value as decimal string)
ShardPayload = list[list[str]]


# =============================================================================
# Schedule records
# =============================================================================


class FrequencyData(TypedDict):
    """Tagged frequency variant.

    type == "daily": no other keys.
    type == "specific_days_of_week": days (0 = Sunday ... 6 = Saturday).
    type == "interval": unit ("days" | "weeks") and amount (>= 1).
    """

    type: str
    days: NotRequired[list[int]]
    unit: NotRequired[str]
    amount: NotRequired[int]


class GoalData(TypedDict):
    """Binary ("check") or measurable ("pages"/"minutes") goal."""

    type: str
    total: NotRequired[int]
    unit_key: NotRequired[str]


class HabitScheduleData(TypedDict):
    """One effective-dated configuration record, valid in [start_date, end_date)."""

    start_date: ISODate
    end_date: NotRequired[ISODate | None]  # Absent only for the current record
    times: list[str]
    goal: GoalData
    frequency: FrequencyData
    schedule_anchor: NotRequired[ISODate | None]  # Defaults to start_date
    icon: NotRequired[str]
    color: NotRequired[str]
    name: NotRequired[str]
    subtitle: NotRequired[str]
    name_key: NotRequired[str]
    subtitle_key: NotRequired[str]


class HabitData(TypedDict):
    """A tracked habit with its append-only schedule history."""

    id: HabitId
    created_on: ISODate
    deleted_on: NotRequired[ISODate | None]  # Tombstone
    graduated_on: NotRequired[ISODate | None]
    schedule_history: list[HabitScheduleData]


class PredefinedHabit(TypedDict):
    """Display-only habit template offered when creating a new habit."""

    name_key: str
    subtitle_key: str
    icon: str
    color: str
    times: list[str]
    goal: GoalData
    frequency: FrequencyData
    is_default: NotRequired[bool]


# =============================================================================
# Per-instance overrides
# =============================================================================


class HabitInstanceData(TypedDict, total=False):
    """Override record for one (habit, date, slot)."""

    note: str | None
    goal_override: int | None


class HabitDailyInfo(TypedDict):
    """Override records for one (habit, date)."""

    instances: dict[str, HabitInstanceData]
    daily_schedule: NotRequired[list[str] | None]


# daily_info[date_iso][habit_id] -> HabitDailyInfo
DailyInfoMap = dict[ISODate, dict[HabitId, HabitDailyInfo]]


# =============================================================================
# Query results
# =============================================================================


class DaySummary(TypedDict):
    """Aggregated completion state of every due slot on one date."""

    total: int
    completed: int
    snoozed: int
    pending: int
    completed_percent: float
    snoozed_percent: float
    show_plus_indicator: bool


class ActiveHabit(TypedDict):
    """A due habit and the slots it requires on a date."""

    habit: HabitData
    schedule: list[str]


class DisplayInfo(TypedDict):
    """Name/subtitle (plus per-slot status for live habits) for display."""

    name: str
    subtitle: str
    name_key: NotRequired[str | None]
    subtitle_key: NotRequired[str | None]
    status: NotRequired[int]
    is_completed: NotRequired[bool]
    note: NotRequired[str | None]
    value: NotRequired[int]


# =============================================================================
# Configuration & persisted state
# =============================================================================


class EngineConfig(TypedDict, total=False):
    """Engine tuning knobs. Every key is optional (defaults in const.py)."""

    max_cache_entries: int
    max_anchor_cache_entries: int
    streak_lookback_days: int
    smart_goal_lookback_days: int
    time_zone: str


class PersistedState(TypedDict):
    """Snapshot handed to / received from the durable store or a backup."""

    version: int
    habits: list[HabitData]
    daily_info: DailyInfoMap
    logs: dict[ShardKey, Any]
