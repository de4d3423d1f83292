# File: utils/__init__.py
"""Pure Python utilities for MissionBoard.

Submodules:
    - dt_utils: Calendar-date parsing, formatting and arithmetic

Usage:
    from .utils import dt_utils
    from .utils.dt_utils import dt_parse_date
"""

from . import dt_utils

__all__ = ["dt_utils"]
