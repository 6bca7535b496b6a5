"""Checked unsigned-integer arithmetic for accrual amounts.

All accrual math is integer-only and bounded to [0, U256_MAX] (or a lower
configured ceiling). Results outside the range raise ArithmeticOverflow;
nothing wraps and nothing is silently clamped.
"""

from __future__ import annotations

from typing import Optional

from ubi.errors import ArithmeticOverflow

U256_MAX = 2**256 - 1


def require_uint(value: int, ceiling: int = U256_MAX) -> int:
    """Return value if it is an int in [0, ceiling], else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int, got {type(value).__name__}")
    if value < 0 or value > ceiling:
        raise ArithmeticOverflow(f"Value {value} outside [0, {ceiling}]")
    return value


def checked_add(x: int, y: int, ceiling: Optional[int] = None) -> int:
    """x + y, raising on overflow."""
    limit = U256_MAX if ceiling is None else ceiling
    require_uint(x, limit)
    require_uint(y, limit)
    total = x + y
    if total > limit:
        raise ArithmeticOverflow(f"Addition overflow: {x} + {y} > {limit}")
    return total


def checked_sub(x: int, y: int) -> int:
    """x - y, raising on underflow (y > x)."""
    require_uint(x)
    require_uint(y)
    if y > x:
        raise ArithmeticOverflow(f"Subtraction underflow: {x} - {y} < 0")
    return x - y


def checked_mul(x: int, y: int, ceiling: Optional[int] = None) -> int:
    """x * y, raising on overflow."""
    limit = U256_MAX if ceiling is None else ceiling
    require_uint(x)
    require_uint(y)
    product = x * y
    if product > limit:
        raise ArithmeticOverflow(f"Multiplication overflow: {x} * {y} > {limit}")
    return product
