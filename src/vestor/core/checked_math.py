"""
Checked unsigned 64-bit arithmetic.

Every helper raises ArithmeticFaultError instead of wrapping, going negative
or dividing by zero. Results are never clamped.
"""

from __future__ import annotations

from vestor.core.constants import U64_MAX
from vestor.core.vesting_exceptions import ArithmeticFaultError


def require_u64(value: int, name: str = "value") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticFaultError(
            f"{name} must be an integer, got {type(value).__name__}",
            details={"field": name},
        )
    if value < 0 or value > U64_MAX:
        raise ArithmeticFaultError(
            f"{name} out of u64 range: {value}",
            details={"field": name, "value": value},
        )
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise ArithmeticFaultError(
            f"Addition overflow: {a} + {b}", details={"op": "add", "a": a, "b": b}
        )
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticFaultError(
            f"Subtraction underflow: {a} - {b}", details={"op": "sub", "a": a, "b": b}
        )
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U64_MAX:
        raise ArithmeticFaultError(
            f"Multiplication overflow: {a} * {b}", details={"op": "mul", "a": a, "b": b}
        )
    return result


def checked_div(a: int, b: int) -> int:
    """Floor division that refuses a zero divisor."""
    if b == 0:
        raise ArithmeticFaultError(
            f"Division by zero: {a} / 0", details={"op": "div", "a": a, "b": b}
        )
    return a // b
