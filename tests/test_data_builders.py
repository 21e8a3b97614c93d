"""Tests for data_builders.py - schemas, builders and loaders."""

from __future__ import annotations

from typing import Any

import pytest
import voluptuous as vol

from habitcore import const
from habitcore.data_builders import (
    build_habit,
    build_schedule,
    coerce_packed_value,
    coerce_wide_value,
    load_daily_info,
    load_habits,
    make_entry_key,
    normalize_engine_config,
    parse_entry_key,
    validate_schedule_history,
)
from tests.helpers import interval, make_habit, make_schedule, weekdays

# =============================================================================
# Entry keys and packed values
# =============================================================================


class TestEntryKeys:
    """Per-day status entry keys."""

    def test_round_trip_with_underscored_id(self) -> None:
        """Only the trailing date is split off; ids may contain underscores."""
        key = make_entry_key("my_habit_1", "2024-01-31")
        assert key == "my_habit_1_2024-01-31"
        assert parse_entry_key(key) == ("my_habit_1", "2024-01-31")

    @pytest.mark.parametrize(
        "key", ["habit", "habit_2024-02-30", "_2024-01-01", "habit_2024-1-1", None]
    )
    def test_malformed_keys(self, key: Any) -> None:
        assert parse_entry_key(key) is None


class TestPackedValues:
    """Coercion of transported packed values."""

    @pytest.mark.parametrize(
        ("raw", "expected"), [(0, 0), (63, 63), ("21", 21), ("0x15", 21), (" 7 ", 7)]
    )
    def test_accepted_forms(self, raw: Any, expected: int) -> None:
        assert coerce_packed_value(raw) == expected

    @pytest.mark.parametrize("raw", [64, -1, "abc", True, 1.5, None])
    def test_rejected_forms(self, raw: Any) -> None:
        with pytest.raises(vol.Invalid):
            coerce_packed_value(raw)

    def test_wide_value_limit(self) -> None:
        """A month wide integer must fit the 24-byte buffer."""
        assert coerce_wide_value("0x" + "f" * 48) == (1 << 192) - 1
        with pytest.raises(vol.Invalid):
            coerce_wide_value(1 << 192)


# =============================================================================
# Config
# =============================================================================


class TestEngineConfig:
    """Engine config validation."""

    def test_defaults(self) -> None:
        config = normalize_engine_config(None)
        assert config[const.CONF_MAX_CACHE_ENTRIES] == 750
        assert config[const.CONF_MAX_ANCHOR_CACHE_ENTRIES] == 365
        assert config[const.CONF_STREAK_LOOKBACK_DAYS] == 730
        assert config[const.CONF_SMART_GOAL_LOOKBACK_DAYS] == 14
        assert config[const.CONF_TIME_ZONE] == "UTC"

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(vol.Invalid):
            normalize_engine_config({"max_cache": 10})

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(vol.Invalid):
            normalize_engine_config({const.CONF_STREAK_LOOKBACK_DAYS: 0})


# =============================================================================
# Builders
# =============================================================================


class TestBuildSchedule:
    """build_schedule() defaults and validation."""

    def test_defaults_applied(self) -> None:
        schedule = build_schedule(
            {const.DATA_SCHEDULE_TIMES: [const.TIME_EVENING]}, "2024-01-10"
        )
        assert schedule[const.DATA_SCHEDULE_START_DATE] == "2024-01-10"
        assert schedule[const.DATA_SCHEDULE_ANCHOR] == "2024-01-10"
        assert schedule[const.DATA_SCHEDULE_GOAL] == {
            const.DATA_GOAL_TYPE: const.GOAL_TYPE_CHECK
        }
        assert schedule[const.DATA_SCHEDULE_FREQUENCY] == {
            const.DATA_FREQUENCY_TYPE: const.FREQUENCY_DAILY
        }
        assert const.DATA_SCHEDULE_END_DATE not in schedule

    def test_edit_keeps_anchor_and_drops_end(self) -> None:
        existing = make_schedule(
            "2024-01-01",
            end_date="2024-02-01",
            frequency=interval(3),
            anchor="2024-01-01",
        )
        schedule = build_schedule(
            {const.DATA_SCHEDULE_TIMES: [const.TIME_AFTERNOON]}, "2024-01-15", existing
        )
        assert schedule[const.DATA_SCHEDULE_ANCHOR] == "2024-01-01"
        assert schedule[const.DATA_SCHEDULE_TIMES] == [const.TIME_AFTERNOON]
        assert const.DATA_SCHEDULE_END_DATE not in schedule
        # Superseded record untouched
        assert existing[const.DATA_SCHEDULE_END_DATE] == "2024-02-01"

    def test_back_dated_edit_re_anchors(self) -> None:
        """An inherited anchor later than the new start moves to the start."""
        following = make_schedule(
            "2024-01-10", frequency=interval(2), anchor="2024-01-10"
        )
        schedule = build_schedule({}, "2024-01-01", following)
        assert schedule[const.DATA_SCHEDULE_ANCHOR] == "2024-01-01"

    def test_weekday_days_sorted_and_deduplicated(self) -> None:
        schedule = build_schedule(
            {
                const.DATA_SCHEDULE_TIMES: [const.TIME_MORNING],
                const.DATA_SCHEDULE_FREQUENCY: weekdays(5, 1, 1),
            },
            "2024-01-01",
        )
        assert schedule[const.DATA_SCHEDULE_FREQUENCY][const.DATA_FREQUENCY_DAYS] == [
            1,
            5,
        ]

    @pytest.mark.parametrize(
        "changes",
        [
            {const.DATA_SCHEDULE_TIMES: []},
            {const.DATA_SCHEDULE_TIMES: ["Night"]},
            {
                const.DATA_SCHEDULE_TIMES: [const.TIME_MORNING],
                const.DATA_SCHEDULE_FREQUENCY: interval(0),
            },
            {
                const.DATA_SCHEDULE_TIMES: [const.TIME_MORNING],
                const.DATA_SCHEDULE_FREQUENCY: weekdays(7),
            },
        ],
    )
    def test_invalid_input(self, changes: dict[str, Any]) -> None:
        with pytest.raises(vol.Invalid):
            build_schedule(changes, "2024-01-01")

    def test_build_habit(self) -> None:
        habit = build_habit(
            {const.DATA_SCHEDULE_TIMES: [const.TIME_MORNING], "name": "Walk"},
            "2024-01-01",
        )
        assert habit[const.DATA_HABIT_ID]
        assert habit[const.DATA_HABIT_CREATED_ON] == "2024-01-01"
        assert len(habit[const.DATA_HABIT_SCHEDULE_HISTORY]) == 1


# =============================================================================
# History validation and loaders
# =============================================================================


class TestHistoryValidation:
    """validate_schedule_history() window invariants."""

    def test_valid_history(self) -> None:
        history = [
            make_schedule("2024-01-01", end_date="2024-02-01"),
            make_schedule("2024-02-01"),
        ]
        assert validate_schedule_history(history) == []

    def test_overlap_and_open_middle(self) -> None:
        history = [
            make_schedule("2024-01-01", end_date="2024-03-01"),
            make_schedule("2024-02-01"),
        ]
        assert any("overlaps" in e for e in validate_schedule_history(history))

        history = [make_schedule("2024-01-01"), make_schedule("2024-02-01")]
        assert any("open-ended" in e for e in validate_schedule_history(history))

    def test_empty_window(self) -> None:
        history = [make_schedule("2024-01-01", end_date="2024-01-01")]
        assert validate_schedule_history(history)


class TestLoaders:
    """load_habits() / load_daily_info() drop bad records only."""

    def test_load_habits_skips_invalid(self, caplog: pytest.LogCaptureFixture) -> None:
        good = make_habit("good")
        no_history = make_habit("empty")
        no_history[const.DATA_HABIT_SCHEDULE_HISTORY] = []
        duplicate = make_habit("good")
        overlapping = make_habit(
            "overlap",
            schedules=[make_schedule("2024-01-01"), make_schedule("2024-02-01")],
        )

        habits = load_habits([good, no_history, duplicate, overlapping, "junk"])

        assert [h[const.DATA_HABIT_ID] for h in habits] == ["good", "empty"]
        assert "Skipping" in caplog.text

    def test_load_habits_sorts_history(self) -> None:
        habit = make_habit(
            schedules=[
                make_schedule("2024-02-01"),
                make_schedule("2024-01-01", end_date="2024-02-01"),
            ]
        )
        loaded = load_habits([habit])
        starts = [
            s[const.DATA_SCHEDULE_START_DATE]
            for s in loaded[0][const.DATA_HABIT_SCHEDULE_HISTORY]
        ]
        assert starts == ["2024-01-01", "2024-02-01"]

    def test_load_habits_not_a_list(self) -> None:
        assert load_habits({"id": "x"}) == []

    def test_load_daily_info(self) -> None:
        raw = {
            "2024-01-05": {
                "habit-1": {
                    const.DATA_DAILY_INSTANCES: {
                        const.TIME_MORNING: {const.DATA_INSTANCE_GOAL_OVERRIDE: "12"}
                    }
                },
                "habit-2": {const.DATA_DAILY_INSTANCES: {"Night": {}}},
            },
            "not-a-date": {"habit-1": {}},
        }
        info = load_daily_info(raw)
        assert list(info) == ["2024-01-05"]
        assert list(info["2024-01-05"]) == ["habit-1"]
        instance = info["2024-01-05"]["habit-1"][const.DATA_DAILY_INSTANCES][
            const.TIME_MORNING
        ]
        assert instance[const.DATA_INSTANCE_GOAL_OVERRIDE] == 12
