"""Integer fixed-point helpers shared by the accrual kernel and its shell.

Everything here operates on plain Python ints. Division is always floor
(`//`) so rounding favors the ledger: a participant can be under-credited by
at most one base unit per checkpoint, never over-credited.
"""

from __future__ import annotations

from typing import Any

# Scale of `reward_per_unit_stored` (1e18, same as an 18-decimal token unit).
SCALE: int = 10**18
UNIT: int = 10**18

SECONDS_PER_DAY: int = 86_400
DEFAULT_REWARDS_DURATION: int = 7 * SECONDS_PER_DAY


def is_int(value: Any) -> bool:
    """True for real ints (bools are rejected)."""
    return isinstance(value, int) and not isinstance(value, bool)


def require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not is_int(value):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    return int(value)


def require_positive_int(value: Any, *, name: str) -> int:
    v = require_int(value, name=name)
    if v == 0:
        raise ValueError(f"{name} must be positive")
    return v


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """``floor(a * b / denominator)`` for non-negative operands."""
    if a < 0 or b < 0:
        raise ValueError(f"mul_div_floor operands must be non-negative: {a}, {b}")
    if denominator <= 0:
        raise ValueError(f"denominator must be positive: {denominator}")
    return (a * b) // denominator


def to_units(whole: int, *, unit: int = UNIT) -> int:
    """Whole tokens -> base units (``to_units(5) == 5 * 10**18``)."""
    return require_int(whole, name="whole") * unit
