"""Habit Manager - the mutation surface over a HabitEngine.

This manager handles every write to engine state:
- Habit lifecycle (add, effective-dated edits, end, graduate, delete)
- Slot edits (remove a time, move a time just today or from now on)
- Status actions (toggle, mark all, goal overrides, notes)
- Streak milestone queue (21 / 66 days)
- Snapshot load / export

ARCHITECTURE:
- HabitEngine = state owner + read-only queries (memoized)
- HabitManager = writes, then `engine.invalidate_all()` before returning

Schedule history is append-only: an edit closes the record effective on the
target date and appends a new one starting that day. A record that already
starts on the target date is edited in place.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from .. import const
from ..data_builders import build_habit, build_schedule
from ..engines.status_store import HabitStatus
from ..templates import template_to_schedule_input
from ..utils.dt_utils import dt_normalize_iso

if TYPE_CHECKING:
    from ..engines.habit_engine import HabitEngine
    from ..type_defs import (
        HabitDailyInfo,
        HabitData,
        HabitInstanceData,
        HabitScheduleData,
        PersistedState,
        PredefinedHabit,
    )

__all__ = [
    "HabitCoreError",
    "HabitManager",
    "HabitNotFoundError",
    "InvalidScheduleChangeError",
]

# Fields an edit copies from user input onto the new schedule record
SCHEDULE_EDIT_FIELDS: tuple[str, ...] = (
    const.DATA_SCHEDULE_ICON,
    const.DATA_SCHEDULE_COLOR,
    const.DATA_SCHEDULE_GOAL,
    const.DATA_SCHEDULE_NAME,
    const.DATA_SCHEDULE_SUBTITLE,
    const.DATA_SCHEDULE_NAME_KEY,
    const.DATA_SCHEDULE_SUBTITLE_KEY,
    const.DATA_SCHEDULE_TIMES,
    const.DATA_SCHEDULE_FREQUENCY,
)

# Toggle cycle: Pending -> Done -> Deferred -> Pending (DonePlus behaves as Done)
_NEXT_STATUS: dict[HabitStatus, HabitStatus] = {
    HabitStatus.PENDING: HabitStatus.DONE,
    HabitStatus.DONE: HabitStatus.DEFERRED,
    HabitStatus.DONE_PLUS: HabitStatus.DEFERRED,
    HabitStatus.DEFERRED: HabitStatus.PENDING,
}


class HabitCoreError(Exception):
    """Base class for mutation errors."""


class HabitNotFoundError(HabitCoreError):
    """Raised when an action names a habit id that does not exist.

    Attributes:
        habit_id: The unknown habit id
    """

    def __init__(self, habit_id: str) -> None:
        """Initialize HabitNotFoundError."""
        self.habit_id = habit_id
        super().__init__(f"Habit not found: {habit_id}")


class InvalidScheduleChangeError(HabitCoreError):
    """Raised when an action's date, slot or schedule fields are invalid."""


class HabitManager:
    """Manager for every habit, schedule, status and override mutation.

    Responsibilities:
    - Keep schedule histories sorted and non-overlapping
    - Keep the status store and override records consistent on delete/move
    - Invalidate every engine cache after each mutation

    NOT responsible for:
    - Persistence (callers store `export_state()`)
    - Merge/conflict resolution between devices
    """

    def __init__(self, engine: HabitEngine) -> None:
        """Initialize the HabitManager.

        Args:
            engine: The engine whose state this manager mutates
        """
        self.engine = engine
        self._pending_milestones: dict[int, list[str]] = {
            const.STREAK_SEMI_CONSOLIDATED: [],
            const.STREAK_CONSOLIDATED: [],
        }
        self._milestones_shown: set[str] = set()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_habit(self, habit_id: str) -> HabitData:
        habit = self.engine.get_habit(habit_id)
        if habit is None:
            raise HabitNotFoundError(habit_id)
        return habit

    @staticmethod
    def _require_date(date_iso: Any) -> str:
        normalized = dt_normalize_iso(date_iso)
        if normalized is None:
            raise InvalidScheduleChangeError(f"Invalid date: {date_iso!r}")
        return normalized

    @staticmethod
    def _require_time(time: str) -> str:
        if time not in const.TIMES_OF_DAY:
            raise InvalidScheduleChangeError(f"Invalid time of day: {time!r}")
        return time

    def _ensure_daily_info(self, date_iso: str, habit_id: str) -> HabitDailyInfo:
        per_habit = self.engine.daily_info.setdefault(date_iso, {})
        return per_habit.setdefault(habit_id, {const.DATA_DAILY_INSTANCES: {}})

    def _ensure_instance(
        self, date_iso: str, habit_id: str, time: str
    ) -> HabitInstanceData:
        day_info = self._ensure_daily_info(date_iso, habit_id)
        instances = day_info.setdefault(const.DATA_DAILY_INSTANCES, {})
        return instances.setdefault(time, {})

    def _clear_daily_schedule(self, date_iso: str, habit_id: str) -> None:
        day_info = self.engine.daily_info_for(date_iso, habit_id)
        if day_info:
            day_info.pop(const.DATA_DAILY_SCHEDULE, None)

    def _move_slot_data(
        self, habit_id: str, date_iso: str, from_time: str, to_time: str
    ) -> None:
        """Move a slot's status and override record to another slot."""
        store = self.engine.store
        status = store.get_status(habit_id, date_iso, from_time)
        if status != HabitStatus.PENDING:
            store.set_status(habit_id, date_iso, to_time, status)
            store.set_status(habit_id, date_iso, from_time, HabitStatus.PENDING)

        day_info = self.engine.daily_info_for(date_iso, habit_id)
        instances = (day_info or {}).get(const.DATA_DAILY_INSTANCES) or {}
        if from_time in instances:
            instances[to_time] = instances.pop(from_time)

    def _changed(self) -> None:
        self.engine.invalidate_all()

    # =========================================================================
    # Effective-dated schedule edits
    # =========================================================================

    def _request_schedule_change(
        self,
        habit: HabitData,
        target_date: str,
        update: Callable[[HabitScheduleData], Mapping[str, Any]],
    ) -> None:
        """Apply an edit effective from `target_date` onward.

        Args:
            habit: Habit whose history changes.
            target_date: First day the edit applies.
            update: Returns the schedule fields to change, given the record
                being superseded.

        Raises:
            InvalidScheduleChangeError: If the resulting record is invalid.
        """
        history = habit[const.DATA_HABIT_SCHEDULE_HISTORY]
        index = next(
            (
                i
                for i, record in enumerate(history)
                if record[const.DATA_SCHEDULE_START_DATE] <= target_date
                and (
                    not record.get(const.DATA_SCHEDULE_END_DATE)
                    or target_date < record[const.DATA_SCHEDULE_END_DATE]
                )
            ),
            None,
        )

        if index is not None:
            current = history[index]
            end_date = current.get(const.DATA_SCHEDULE_END_DATE)
            new_record = self._build_record(update(current), target_date, current)
            if end_date:
                new_record[const.DATA_SCHEDULE_END_DATE] = end_date
            if current[const.DATA_SCHEDULE_START_DATE] == target_date:
                history[index] = new_record
            else:
                current[const.DATA_SCHEDULE_END_DATE] = target_date
                history.append(new_record)
        else:
            # Target falls in a gap: before the first record or after an end.
            # The new record runs until the next record starts, if any.
            earlier = [
                r for r in history if r[const.DATA_SCHEDULE_START_DATE] < target_date
            ]
            following = next(
                (
                    r
                    for r in history
                    if r[const.DATA_SCHEDULE_START_DATE] > target_date
                ),
                None,
            )
            base = earlier[-1] if earlier else following
            if base is None:
                raise InvalidScheduleChangeError(
                    f"Habit {habit[const.DATA_HABIT_ID]} has no schedule history"
                )
            new_record = self._build_record(update(base), target_date, base)
            if following is not None:
                new_record[const.DATA_SCHEDULE_END_DATE] = following[
                    const.DATA_SCHEDULE_START_DATE
                ]
            history.append(new_record)

        history.sort(key=lambda s: s[const.DATA_SCHEDULE_START_DATE])
        habit.pop(const.DATA_HABIT_GRADUATED_ON, None)
        const.LOGGER.debug(
            "Schedule change for habit %s effective %s (%s records)",
            habit[const.DATA_HABIT_ID],
            target_date,
            len(history),
        )

    @staticmethod
    def _build_record(
        changes: Mapping[str, Any],
        target_date: str,
        existing: HabitScheduleData | None,
    ) -> HabitScheduleData:
        try:
            return build_schedule(changes, target_date, existing)
        except vol.Invalid as err:
            raise InvalidScheduleChangeError(f"Invalid schedule: {err}") from err

    # =========================================================================
    # Habit lifecycle
    # =========================================================================

    def add_habit(self, data: Mapping[str, Any], target_date: str) -> str:
        """Create a habit, or edit the active habit that has the same name.

        Args:
            data: Schedule fields (DATA_SCHEDULE_* keys); a name or name key
                is required.
            target_date: Creation date (or effective date of the edit).

        Returns:
            The id of the created or edited habit.
        """
        target_date = self._require_date(target_date)
        name = data.get(const.DATA_SCHEDULE_NAME_KEY) or (
            data.get(const.DATA_SCHEDULE_NAME) or const.SENTINEL_EMPTY
        )
        name = name.strip()
        if not name:
            raise InvalidScheduleChangeError("A habit needs a name or name key")

        existing = self._find_active_by_name(name, target_date)
        if existing is not None:
            changes = {k: data[k] for k in SCHEDULE_EDIT_FIELDS if k in data}
            self._request_schedule_change(existing, target_date, lambda _s: changes)
            self._changed()
            const.LOGGER.info(
                "Habit '%s' already active, edited %s",
                name,
                existing[const.DATA_HABIT_ID],
            )
            return existing[const.DATA_HABIT_ID]

        try:
            habit = build_habit(data, target_date)
        except vol.Invalid as err:
            raise InvalidScheduleChangeError(f"Invalid habit: {err}") from err
        self.engine.habits.append(habit)
        self._changed()
        const.LOGGER.info("Added habit %s (%s)", habit[const.DATA_HABIT_ID], name)
        return habit[const.DATA_HABIT_ID]

    def add_habit_from_template(
        self, template: PredefinedHabit, target_date: str
    ) -> str:
        """Create a habit from a predefined template."""
        return self.add_habit(template_to_schedule_input(template), target_date)

    def _find_active_by_name(self, name: str, target_date: str) -> HabitData | None:
        wanted = name.lower()
        for habit in self.engine.habits:
            history = habit[const.DATA_HABIT_SCHEDULE_HISTORY]
            last_end = (
                history[-1].get(const.DATA_SCHEDULE_END_DATE) if history else None
            )
            if (
                habit.get(const.DATA_HABIT_GRADUATED_ON)
                or habit.get(const.DATA_HABIT_DELETED_ON)
                or (last_end and target_date >= last_end)
            ):
                continue
            source = self.engine.resolver.properties_or_latest(habit, target_date) or {}
            habit_name = source.get(const.DATA_SCHEDULE_NAME_KEY) or (
                source.get(const.DATA_SCHEDULE_NAME) or const.SENTINEL_EMPTY
            )
            if habit_name.strip().lower() == wanted:
                return habit
        return None

    def change_schedule(
        self, habit_id: str, target_date: str, changes: Mapping[str, Any]
    ) -> None:
        """Edit a habit's schedule effective from `target_date`.

        Any single-day slot override on the target date is dropped, and a
        back-dated edit moves created_on back to the target date.
        """
        habit = self._get_habit(habit_id)
        target_date = self._require_date(target_date)
        self._clear_daily_schedule(target_date, habit_id)
        if target_date < habit[const.DATA_HABIT_CREATED_ON]:
            habit[const.DATA_HABIT_CREATED_ON] = target_date
        self._request_schedule_change(habit, target_date, lambda _s: dict(changes))
        self._changed()

    def end_habit(self, habit_id: str, target_date: str) -> None:
        """Stop a habit from `target_date` on; earlier history is kept.

        Raises:
            InvalidScheduleChangeError: If the habit would have no history
                left (use `delete_habit` instead).
        """
        habit = self._get_habit(habit_id)
        target_date = self._require_date(target_date)
        history = habit[const.DATA_HABIT_SCHEDULE_HISTORY]

        kept = [r for r in history if r[const.DATA_SCHEDULE_START_DATE] < target_date]
        if not kept:
            raise InvalidScheduleChangeError(
                f"Habit {habit_id} has no history before {target_date}"
            )
        last = kept[-1]
        last_end = last.get(const.DATA_SCHEDULE_END_DATE)
        if not last_end or last_end > target_date:
            last[const.DATA_SCHEDULE_END_DATE] = target_date
        history[:] = kept
        self._changed()
        const.LOGGER.info("Ended habit %s on %s", habit_id, target_date)

    def graduate_habit(self, habit_id: str, target_date: str) -> None:
        """Retire a habit; it no longer appears on any date."""
        habit = self._get_habit(habit_id)
        habit[const.DATA_HABIT_GRADUATED_ON] = self._require_date(target_date)
        self._changed()

    def delete_habit(self, habit_id: str) -> None:
        """Tombstone a habit from its creation date and prune its data."""
        habit = self._get_habit(habit_id)
        habit[const.DATA_HABIT_DELETED_ON] = habit[const.DATA_HABIT_CREATED_ON]
        pruned = self.engine.store.prune_habit(habit_id)

        daily_info = self.engine.daily_info
        for date_iso in list(daily_info):
            daily_info[date_iso].pop(habit_id, None)
            if not daily_info[date_iso]:
                del daily_info[date_iso]
        self._changed()
        const.LOGGER.info("Deleted habit %s (%s status days pruned)", habit_id, pruned)

    # =========================================================================
    # Slot edits
    # =========================================================================

    def remove_time(self, habit_id: str, target_date: str, time: str) -> None:
        """Remove a slot from the schedule from `target_date` on."""
        habit = self._get_habit(habit_id)
        target_date = self._require_date(target_date)
        time = self._require_time(time)
        self._clear_daily_schedule(target_date, habit_id)
        self._request_schedule_change(
            habit,
            target_date,
            lambda s: {
                const.DATA_SCHEDULE_TIMES: [
                    t for t in s.get(const.DATA_SCHEDULE_TIMES, []) if t != time
                ]
            },
        )
        self._changed()

    def move_time(
        self,
        habit_id: str,
        target_date: str,
        from_time: str,
        to_time: str,
        just_today: bool = True,
    ) -> None:
        """Move a slot, carrying its status and override record along.

        Args:
            habit_id: Habit to change.
            target_date: Day of the move.
            from_time: Slot being vacated.
            to_time: Destination slot.
            just_today: Only override that day's slots; otherwise edit the
                schedule from `target_date` on.
        """
        habit = self._get_habit(habit_id)
        target_date = self._require_date(target_date)
        from_time = self._require_time(from_time)
        to_time = self._require_time(to_time)

        def _moved(times: list[str]) -> list[str]:
            result = [t for t in times if t != from_time]
            if to_time not in result:
                result.append(to_time)
            return result

        if just_today:
            times = _moved(list(self.engine.effective_times(habit, target_date)))
            self._move_slot_data(habit_id, target_date, from_time, to_time)
            self._ensure_daily_info(target_date, habit_id)[
                const.DATA_DAILY_SCHEDULE
            ] = times
        else:
            self._clear_daily_schedule(target_date, habit_id)
            self._move_slot_data(habit_id, target_date, from_time, to_time)
            self._request_schedule_change(
                habit,
                target_date,
                lambda s: {
                    const.DATA_SCHEDULE_TIMES: _moved(
                        list(s.get(const.DATA_SCHEDULE_TIMES, []))
                    )
                },
            )
        self._changed()

    # =========================================================================
    # Status actions
    # =========================================================================

    def toggle_status(self, habit_id: str, date_iso: str, time: str) -> HabitStatus:
        """Advance a slot through Pending -> Done -> Deferred -> Pending.

        Returns:
            The new status.
        """
        habit = self._get_habit(habit_id)
        date_iso = self._require_date(date_iso)
        time = self._require_time(time)

        current = self.engine.get_status(habit_id, date_iso, time)
        next_status = _NEXT_STATUS[current]
        self.engine.store.set_status(habit_id, date_iso, time, next_status)
        self._changed()

        if next_status == HabitStatus.DONE:
            self._check_milestones(habit, date_iso)
        return next_status

    def mark_all(self, date_iso: str, action: str) -> bool:
        """Mark every due slot on a date completed or snoozed.

        Args:
            date_iso: Day to mark.
            action: MARK_ALL_COMPLETED or MARK_ALL_SNOOZED.

        Returns:
            True if any slot changed.
        """
        date_iso = self._require_date(date_iso)
        if action == const.MARK_ALL_COMPLETED:
            status = HabitStatus.DONE
        elif action == const.MARK_ALL_SNOOZED:
            status = HabitStatus.DEFERRED
        else:
            raise InvalidScheduleChangeError(f"Unknown mark-all action: {action!r}")

        changed_habits: list[HabitData] = []
        for item in self.engine.active_habits(date_iso):
            habit_id = item["habit"][const.DATA_HABIT_ID]
            changed = False
            for time in item["schedule"]:
                if self.engine.get_status(habit_id, date_iso, time) != status:
                    self.engine.store.set_status(habit_id, date_iso, time, status)
                    changed = True
            if changed:
                changed_habits.append(item["habit"])

        if not changed_habits:
            return False
        self._changed()
        if status == HabitStatus.DONE:
            for habit in changed_habits:
                self._check_milestones(habit, date_iso)
        return True

    def set_goal_override(
        self, habit_id: str, date_iso: str, time: str, value: int
    ) -> None:
        """Record the value achieved for a slot.

        A completed slot becomes DonePlus when the value beats the schedule's
        base total, and plain Done otherwise.
        """
        habit = self._get_habit(habit_id)
        date_iso = self._require_date(date_iso)
        time = self._require_time(time)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidScheduleChangeError(f"Invalid goal value: {value!r}")

        self._ensure_instance(date_iso, habit_id, time)[
            const.DATA_INSTANCE_GOAL_OVERRIDE
        ] = value

        store = self.engine.store
        current = store.get_status(habit_id, date_iso, time)
        if current.is_completed:
            schedule = self.engine.resolver.properties_or_latest(habit, date_iso) or {}
            total = (schedule.get(const.DATA_SCHEDULE_GOAL) or {}).get(
                const.DATA_GOAL_TOTAL
            )
            wanted = (
                HabitStatus.DONE_PLUS if total and value > total else HabitStatus.DONE
            )
            if wanted != current:
                store.set_status(habit_id, date_iso, time, wanted)
        self._changed()

    def set_note(
        self, habit_id: str, date_iso: str, time: str, note: str | None
    ) -> None:
        """Set (or clear, when blank) the note of a slot."""
        self._get_habit(habit_id)
        date_iso = self._require_date(date_iso)
        time = self._require_time(time)
        text = (note or const.SENTINEL_EMPTY).strip()
        self._ensure_instance(date_iso, habit_id, time)[const.DATA_INSTANCE_NOTE] = (
            text or None
        )
        self._changed()

    # =========================================================================
    # Milestones
    # =========================================================================

    def _check_milestones(self, habit: HabitData, date_iso: str) -> None:
        habit_id = habit[const.DATA_HABIT_ID]
        milestone = self.engine.streaks.milestone_for(
            self.engine.streak(habit, date_iso)
        )
        if milestone is None:
            return
        pending = self._pending_milestones[milestone]
        if f"{habit_id}-{milestone}" not in self._milestones_shown and (
            habit_id not in pending
        ):
            pending.append(habit_id)
            const.LOGGER.debug("Habit %s reached %s-day milestone", habit_id, milestone)

    def consume_milestones(self) -> dict[int, list[str]]:
        """Return and clear queued milestones ({21: [ids], 66: [ids]}).

        Each (habit, milestone) pair is reported at most once per manager.
        """
        result: dict[int, list[str]] = {}
        for milestone, habit_ids in self._pending_milestones.items():
            if habit_ids:
                result[milestone] = list(habit_ids)
                self._milestones_shown.update(f"{h}-{milestone}" for h in habit_ids)
                habit_ids.clear()
        return result

    # =========================================================================
    # Snapshot load / export
    # =========================================================================

    def load_state(self, payload: Mapping[str, Any]) -> None:
        """Replace all engine state from a raw snapshot (boot or import)."""
        self.engine.load_state(payload)
        for habit_ids in self._pending_milestones.values():
            habit_ids.clear()

    def export_state(self) -> PersistedState:
        """Return a snapshot of the engine state."""
        return self.engine.export_state()
