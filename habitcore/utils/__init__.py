# File: utils/__init__.py
"""Pure Python utilities for habitcore.

This module contains pure functions with no engine state. All functions here
can be unit tested without building a HabitEngine.

Submodules:
    - dt_utils: ISO date parsing, day arithmetic, month keys

Usage:
    from . import dt_utils
    from .dt_utils import dt_add_days
"""

from . import dt_utils

__all__ = ["dt_utils"]
