"""Record building, validation and loading helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Voluptuous schemas of every persisted record (habit, schedule, overrides)
- Engine configuration validation and defaults
- Status shard entry validation (entry keys, packed values)
- Building complete habit/schedule records from user input

### Build Functions
`build_schedule()` / `build_habit()` take user input (DATA_* keys), apply
defaults, and return a validated record ready to append to the engine state.
They raise `vol.Invalid` on bad input; the mutation surface translates that.

### Load Functions
`load_habits()` / `load_daily_info()` take raw records from the durable store
and return the valid subset. A malformed record is logged and dropped; it
never aborts the whole load.

Consumers:
- engines/habit_engine.py (config)
- engines/status_store.py (shard entries)
- managers/habit_manager.py (build + load)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import re
from typing import Any, cast
import uuid

import voluptuous as vol

from . import const
from .type_defs import (
    DailyInfoMap,
    EngineConfig,
    HabitDailyInfo,
    HabitData,
    HabitScheduleData,
)
from .utils.dt_utils import dt_normalize_iso

ENTRY_KEY_PATTERN = re.compile(r"^(?P<habit_id>.+)_(?P<date>\d{4}-\d{2}-\d{2})$")

# ==============================================================================
# VALIDATORS
# ==============================================================================


def iso_date(value: Any) -> str:
    """Validate and normalize an ISO date ("YYYY-MM-DD")."""
    normalized = dt_normalize_iso(value)
    if normalized is None:
        raise vol.Invalid(f"invalid ISO date: {value!r}")
    return normalized


def _unique_in_order(values: list[Any]) -> list[Any]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(values))


def _unique_sorted(values: list[int]) -> list[int]:
    return sorted(set(values))


def coerce_packed_value(value: Any) -> int:
    """Coerce a transported packed day value to int.

    Accepts ints, decimal strings (system of record) and "0x" hex strings
    (legacy cloud serialization). The value must fit the 6-bit day layout.
    """
    if isinstance(value, bool):
        raise vol.Invalid("packed value must not be a boolean")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith(const.HEX_PREFIX):
                result = int(text, 16)
            else:
                result = int(text, 10)
        except ValueError as err:
            raise vol.Invalid(f"packed value is not numeric: {value!r}") from err
    else:
        raise vol.Invalid(f"unsupported packed value type: {type(value).__name__}")

    if not 0 <= result < (1 << const.STATUS_BITS_PER_DAY):
        raise vol.Invalid(f"packed value out of range: {result}")
    return result


def coerce_wide_value(value: Any) -> int:
    """Coerce a month wide-integer (int, decimal or "0x" hex string)."""
    if isinstance(value, bool):
        raise vol.Invalid("wide value must not be a boolean")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        base = 16 if text.lower().startswith(const.HEX_PREFIX) else 10
        try:
            result = int(text, base)
        except ValueError as err:
            raise vol.Invalid(f"wide value is not numeric: {value!r}") from err
    else:
        raise vol.Invalid(f"unsupported wide value type: {type(value).__name__}")

    if result < 0 or result.bit_length() > const.MONTH_BUFFER_BYTES * 8:
        raise vol.Invalid(f"wide value out of range: {result}")
    return result


TIMES_LIST = vol.All([vol.In(const.TIMES_OF_DAY)], _unique_in_order)

# ==============================================================================
# SCHEMAS
# ==============================================================================

_DAILY_FREQUENCY_SCHEMA = vol.Schema(
    {vol.Required(const.DATA_FREQUENCY_TYPE): const.FREQUENCY_DAILY},
    extra=vol.REMOVE_EXTRA,
)

_WEEKDAY_FREQUENCY_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_FREQUENCY_TYPE): const.FREQUENCY_SPECIFIC_DAYS_OF_WEEK,
        vol.Required(const.DATA_FREQUENCY_DAYS): vol.All(
            [vol.All(vol.Coerce(int), vol.Range(min=0, max=6))], _unique_sorted
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

_INTERVAL_FREQUENCY_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_FREQUENCY_TYPE): const.FREQUENCY_INTERVAL,
        vol.Required(const.DATA_FREQUENCY_UNIT): vol.In(const.INTERVAL_UNITS),
        vol.Required(const.DATA_FREQUENCY_AMOUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

FREQUENCY_SCHEMA = vol.Any(
    _DAILY_FREQUENCY_SCHEMA,
    _WEEKDAY_FREQUENCY_SCHEMA,
    _INTERVAL_FREQUENCY_SCHEMA,
)

GOAL_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_GOAL_TYPE): vol.In(const.GOAL_TYPES),
        vol.Optional(const.DATA_GOAL_TOTAL): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=0))
        ),
        vol.Optional(const.DATA_GOAL_UNIT_KEY): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

SCHEDULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_SCHEDULE_START_DATE): iso_date,
        vol.Optional(const.DATA_SCHEDULE_END_DATE): vol.Any(None, iso_date),
        vol.Required(const.DATA_SCHEDULE_TIMES): vol.All(TIMES_LIST, vol.Length(min=1)),
        vol.Required(const.DATA_SCHEDULE_GOAL): GOAL_SCHEMA,
        vol.Required(const.DATA_SCHEDULE_FREQUENCY): FREQUENCY_SCHEMA,
        vol.Optional(const.DATA_SCHEDULE_ANCHOR): vol.Any(None, iso_date),
        vol.Optional(const.DATA_SCHEDULE_ICON): str,
        vol.Optional(const.DATA_SCHEDULE_COLOR): str,
        vol.Optional(const.DATA_SCHEDULE_NAME): vol.Any(None, str),
        vol.Optional(const.DATA_SCHEDULE_SUBTITLE): vol.Any(None, str),
        vol.Optional(const.DATA_SCHEDULE_NAME_KEY): vol.Any(None, str),
        vol.Optional(const.DATA_SCHEDULE_SUBTITLE_KEY): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_HABIT_ID): vol.All(str, vol.Length(min=1)),
        vol.Required(const.DATA_HABIT_CREATED_ON): iso_date,
        vol.Optional(const.DATA_HABIT_DELETED_ON): vol.Any(None, iso_date),
        vol.Optional(const.DATA_HABIT_GRADUATED_ON): vol.Any(None, iso_date),
        # An empty history is kept: the habit is never due and never displayed
        vol.Required(const.DATA_HABIT_SCHEDULE_HISTORY): [SCHEDULE_SCHEMA],
    },
    extra=vol.ALLOW_EXTRA,
)

INSTANCE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_INSTANCE_NOTE): vol.Any(None, str),
        vol.Optional(const.DATA_INSTANCE_GOAL_OVERRIDE): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=0))
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

DAILY_INFO_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_DAILY_INSTANCES, default=dict): vol.Schema(
            {vol.In(const.TIMES_OF_DAY): INSTANCE_SCHEMA}
        ),
        vol.Optional(const.DATA_DAILY_SCHEDULE): vol.Any(None, TIMES_LIST),
    },
    extra=vol.ALLOW_EXTRA,
)

SHARD_ENTRY_SCHEMA = vol.Schema(
    vol.ExactSequence([vol.Match(ENTRY_KEY_PATTERN), coerce_packed_value])
)

ENGINE_CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_MAX_CACHE_ENTRIES, default=const.DEFAULT_MAX_CACHE_ENTRIES
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(
            const.CONF_MAX_ANCHOR_CACHE_ENTRIES,
            default=const.DEFAULT_MAX_ANCHOR_CACHE_ENTRIES,
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(
            const.CONF_STREAK_LOOKBACK_DAYS, default=const.DEFAULT_STREAK_LOOKBACK_DAYS
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(
            const.CONF_SMART_GOAL_LOOKBACK_DAYS,
            default=const.DEFAULT_SMART_GOAL_LOOKBACK_DAYS,
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(const.CONF_TIME_ZONE, default=const.DEFAULT_TIME_ZONE): str,
    }
)


# ==============================================================================
# CONFIG
# ==============================================================================


def normalize_engine_config(config: Mapping[str, Any] | None) -> EngineConfig:
    """Validate engine config and fill defaults.

    Raises:
        vol.Invalid: If a key is unknown or a value is out of range.
    """
    return cast("EngineConfig", ENGINE_CONFIG_SCHEMA(dict(config or {})))


# ==============================================================================
# ENTRY KEYS
# ==============================================================================


def make_entry_key(habit_id: str, date_iso: str) -> str:
    """Build the per-day status entry key "{habit_id}_YYYY-MM-DD"."""
    return f"{habit_id}{const.ENTRY_KEY_SEPARATOR}{date_iso}"


def parse_entry_key(entry_key: str) -> tuple[str, str] | None:
    """Split an entry key into (habit_id, date_iso).

    Habit ids may themselves contain underscores; only the trailing date is
    split off. Returns None for malformed keys or impossible dates.
    """
    if not isinstance(entry_key, str):
        return None
    match = ENTRY_KEY_PATTERN.match(entry_key)
    if not match:
        return None
    date_iso = dt_normalize_iso(match.group("date"))
    if date_iso is None:
        return None
    return match.group("habit_id"), date_iso


# ==============================================================================
# BUILDERS
# ==============================================================================


def build_schedule(
    user_input: Mapping[str, Any],
    start_date: str,
    existing: HabitScheduleData | None = None,
) -> HabitScheduleData:
    """Build a complete schedule record starting on `start_date`.

    Args:
        user_input: Schedule fields (DATA_SCHEDULE_* keys). Missing fields are
            taken from `existing` when editing.
        start_date: First day of the record's validity window.
        existing: Record being superseded, if this is an edit.

    Returns:
        Validated HabitScheduleData with no end_date.

    Raises:
        vol.Invalid: If the merged record does not satisfy SCHEDULE_SCHEMA.
    """
    record: dict[str, Any] = dict(existing) if existing else {}
    record.update(user_input)
    record[const.DATA_SCHEDULE_START_DATE] = start_date
    record.pop(const.DATA_SCHEDULE_END_DATE, None)

    # Edits keep the superseded record's anchor so interval cadence survives,
    # unless that anchor lies after this record starts (back-dated edits)
    anchor = dt_normalize_iso(record.get(const.DATA_SCHEDULE_ANCHOR))
    if anchor is None or anchor > start_date:
        record[const.DATA_SCHEDULE_ANCHOR] = start_date

    record.setdefault(
        const.DATA_SCHEDULE_GOAL, {const.DATA_GOAL_TYPE: const.GOAL_TYPE_CHECK}
    )
    record.setdefault(
        const.DATA_SCHEDULE_FREQUENCY,
        {const.DATA_FREQUENCY_TYPE: const.FREQUENCY_DAILY},
    )
    return cast("HabitScheduleData", SCHEDULE_SCHEMA(record))


def build_habit(
    user_input: Mapping[str, Any],
    target_date: str,
    habit_id: str | None = None,
) -> HabitData:
    """Build a new habit whose history starts on `target_date`.

    Raises:
        vol.Invalid: If the schedule fields are invalid.
    """
    schedule = build_schedule(user_input, target_date)
    return {
        const.DATA_HABIT_ID: habit_id or str(uuid.uuid4()),
        const.DATA_HABIT_CREATED_ON: target_date,
        const.DATA_HABIT_SCHEDULE_HISTORY: [schedule],
    }


def validate_schedule_history(history: Iterable[HabitScheduleData]) -> list[str]:
    """Check history ordering and window invariants.

    Returns:
        List of error strings (empty if valid): unsorted starts, closed
        windows that end on/before they start, overlapping windows, or an
        open-ended record that is not the last one.
    """
    errors: list[str] = []
    records = list(history)
    for index, record in enumerate(records):
        start = record[const.DATA_SCHEDULE_START_DATE]
        end = record.get(const.DATA_SCHEDULE_END_DATE)
        if end is not None and end <= start:
            errors.append(f"record {index}: end_date {end} not after start {start}")
        if index + 1 < len(records):
            next_start = records[index + 1][const.DATA_SCHEDULE_START_DATE]
            if next_start < start:
                errors.append(f"record {index + 1}: start_date out of order")
            if end is None:
                errors.append(f"record {index}: open-ended record is not the latest")
            elif end > next_start:
                errors.append(f"record {index}: window overlaps record {index + 1}")
    return errors


# ==============================================================================
# LOADERS
# ==============================================================================


def load_habits(raw_habits: Any) -> list[HabitData]:
    """Return the valid habits from raw store records.

    Histories are sorted by start_date. Records failing HABIT_SCHEMA, or whose
    history violates the window invariants, are skipped with a warning.
    """
    if not isinstance(raw_habits, list):
        const.LOGGER.warning("load_habits: expected a list, got %s", type(raw_habits))
        return []

    habits: list[HabitData] = []
    seen_ids: set[str] = set()
    for raw in raw_habits:
        try:
            habit = cast("HabitData", HABIT_SCHEMA(raw))
        except vol.Invalid as err:
            const.LOGGER.warning("Skipping invalid habit record: %s", err)
            continue

        habit_id = habit[const.DATA_HABIT_ID]
        if habit_id in seen_ids:
            const.LOGGER.warning("Skipping duplicate habit id %s", habit_id)
            continue

        habit[const.DATA_HABIT_SCHEDULE_HISTORY].sort(
            key=lambda s: s[const.DATA_SCHEDULE_START_DATE]
        )
        errors = validate_schedule_history(habit[const.DATA_HABIT_SCHEDULE_HISTORY])
        if errors:
            const.LOGGER.warning(
                "Skipping habit %s with invalid history: %s",
                habit_id,
                "; ".join(errors),
            )
            continue

        seen_ids.add(habit_id)
        habits.append(habit)
    return habits


def load_daily_info(raw_daily_info: Any) -> DailyInfoMap:
    """Return the valid override records from a raw {date: {habit_id: info}} map."""
    if not isinstance(raw_daily_info, Mapping):
        return {}

    daily_info: DailyInfoMap = {}
    for raw_date, per_habit in raw_daily_info.items():
        date_iso = dt_normalize_iso(raw_date)
        if date_iso is None or not isinstance(per_habit, Mapping):
            const.LOGGER.warning("Skipping daily info for invalid date %r", raw_date)
            continue
        for habit_id, raw_info in per_habit.items():
            try:
                info = cast("HabitDailyInfo", DAILY_INFO_SCHEMA(raw_info))
            except vol.Invalid as err:
                const.LOGGER.warning(
                    "Skipping daily info %s/%s: %s", date_iso, habit_id, err
                )
                continue
            daily_info.setdefault(date_iso, {})[str(habit_id)] = info
    return daily_info
