"""
Working precision for the numerical core.

Samples stay IEEE doubles; Simpson sums and limit means are accumulated
with mpmath at this many decimal places. The REPL (or tests) may call
set_dps(value) to switch presets. Engines read the value once, at
construction, through get_dps() and apply it with mp.workdps(), so
mpmath's own global precision is never touched.
"""
from typing import List

_PRESETS: List[int] = [15, 30, 50, 100]  # default + 3 larger ones
_DEFAULT = 30
_CURRENT = _DEFAULT


def get_dps() -> int:
    """Return the active decimal-places setting."""
    return _CURRENT


def set_dps(value: int) -> None:
    """Set the precision if value is one of the approved presets."""
    global _CURRENT
    if value not in _PRESETS:
        raise ValueError(f"dps {value} not allowed; choose one of {_PRESETS}")
    _CURRENT = value


def reset_dps() -> None:
    global _CURRENT
    _CURRENT = _DEFAULT


def presets() -> List[int]:
    return _PRESETS.copy()
