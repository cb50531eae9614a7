"""
debenture_node/runtime/fixed_point.py
-------------------------------------

Integer arithmetic shared by the vault and governance runtimes.

All ledger quantities are unsigned Python ints. Ratios are returned as
fixed-point values scaled by WAD (10**18). Division always floors, which
favours the pool over the individual account.
"""

from __future__ import annotations

from typing import Any, Type

WAD: int = 10**18


def is_uint(value: Any) -> bool:
    # bool is an int subclass; a True/False amount is always a caller bug
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def require_uint(value: Any, exc: Type[Exception]) -> int:
    if not is_uint(value):
        raise exc(f"expected unsigned integer, got {value!r}")
    return int(value)


def require_positive(value: Any, exc: Type[Exception]) -> int:
    value = require_uint(value, exc)
    if value == 0:
        raise exc("value must be greater than zero")
    return value


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) without any float rounding."""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    return (a * b) // denominator


def wad_ratio(numerator: int, denominator: int) -> int:
    """numerator / denominator as a WAD-scaled fixed-point value (floored)."""
    return mul_div(numerator, WAD, denominator)
