"""Predefined habit templates.

Templates are display-only records offered when creating a habit. They carry
translation keys rather than names; `template_to_schedule_input()` turns one
into the user-input mapping accepted by `build_schedule()`.
"""

from __future__ import annotations

from typing import Any

from . import const
from .type_defs import PredefinedHabit

_GOAL_CHECK = {
    const.DATA_GOAL_TYPE: const.GOAL_TYPE_CHECK,
    const.DATA_GOAL_UNIT_KEY: "unitCheck",
}
_FREQ_DAILY = {const.DATA_FREQUENCY_TYPE: const.FREQUENCY_DAILY}


def _measurable(goal_type: str, total: int, unit_key: str) -> dict[str, Any]:
    return {
        const.DATA_GOAL_TYPE: goal_type,
        const.DATA_GOAL_TOTAL: total,
        const.DATA_GOAL_UNIT_KEY: unit_key,
    }


def _template(
    key: str,
    icon: str,
    color: str,
    times: list[str],
    goal: dict[str, Any] | None = None,
    is_default: bool = False,
) -> PredefinedHabit:
    template: PredefinedHabit = {
        "name_key": f"predefinedHabit{key}Name",
        "subtitle_key": f"predefinedHabit{key}Subtitle",
        "icon": icon,
        "color": color,
        "times": times,
        "goal": goal or dict(_GOAL_CHECK),  # type: ignore[typeddict-item]
        "frequency": dict(_FREQ_DAILY),  # type: ignore[typeddict-item]
    }
    if is_default:
        template["is_default"] = True
    return template


PREDEFINED_HABITS: tuple[PredefinedHabit, ...] = (
    _template(
        "Sustenance", "sustenance", "#3498DB", [const.TIME_MORNING], is_default=True
    ),
    _template("Movement", "movement", "#E67E22", [const.TIME_AFTERNOON]),
    _template(
        "Exercise",
        "exercise",
        "#2ECC71",
        [const.TIME_AFTERNOON],
        _measurable(const.GOAL_TYPE_MINUTES, 30, "unitMin"),
    ),
    _template(
        "Read",
        "book",
        "#e74c3c",
        [const.TIME_EVENING],
        _measurable(const.GOAL_TYPE_PAGES, 10, "unitPage"),
    ),
    _template(
        "Meditate",
        "meditate",
        "#BB8FCE",
        [const.TIME_MORNING],
        _measurable(const.GOAL_TYPE_MINUTES, 10, "unitMin"),
    ),
    _template("Journal", "journal", "#A1887F", [const.TIME_EVENING]),
)


def get_default_templates() -> list[PredefinedHabit]:
    """Return the templates pre-selected on first run."""
    return [t for t in PREDEFINED_HABITS if t.get("is_default")]


def template_to_schedule_input(template: PredefinedHabit) -> dict[str, Any]:
    """Return schedule user input (DATA_SCHEDULE_* keys) for a template."""
    return {
        const.DATA_SCHEDULE_NAME_KEY: template["name_key"],
        const.DATA_SCHEDULE_SUBTITLE_KEY: template["subtitle_key"],
        const.DATA_SCHEDULE_ICON: template["icon"],
        const.DATA_SCHEDULE_COLOR: template["color"],
        const.DATA_SCHEDULE_TIMES: list(template["times"]),
        const.DATA_SCHEDULE_GOAL: dict(template["goal"]),
        const.DATA_SCHEDULE_FREQUENCY: dict(template["frequency"]),
    }
