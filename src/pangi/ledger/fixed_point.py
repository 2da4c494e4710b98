# src/pangi/ledger/fixed_point.py
from __future__ import annotations

"""Integer basis-point arithmetic.

Every percentage in the engine (transfer tax, vault split, vesting, staking
rewards, early-unlock penalty) goes through these helpers so that one
rounding policy applies everywhere: truncate toward zero, never collect a
fractional base unit, never exceed the exact percentage.

Python ints do not overflow, so the "widened intermediate" of the on-chain
u128 arithmetic is implicit. Results are still range-checked against u64 so
the engine agrees with the runtime that commits them.
"""

from pangi.ledger.constants import BPS_DENOM, U32_MAX, U64_MAX
from pangi.runtime.errors import EngineError


def _require_uint(v: object, *, name: str, upper: int = U64_MAX) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(v, bool) or not isinstance(v, int):
        raise EngineError("InvalidArgument", "not_an_integer", {"field": name, "type": type(v).__name__})
    if v < 0:
        raise EngineError("InvalidArgument", "negative_value", {"field": name, "value": v})
    if v > upper:
        raise EngineError("Overflow", "value_out_of_range", {"field": name, "value": v, "max": upper})
    return v


def _fit_u64(v: int) -> int:
    if v > U64_MAX:
        raise EngineError("Overflow", "result_exceeds_u64", {"value": v})
    return v


def basis_points(amount: int, rate_bps: int) -> int:
    """Return floor(amount * rate_bps / 10000)."""
    a = _require_uint(amount, name="amount")
    r = _require_uint(rate_bps, name="rate_bps", upper=U32_MAX)
    return _fit_u64((a * r) // BPS_DENOM)


def mul_div_floor(a: int, b: int, denom: int) -> int:
    """Return floor(a * b / denom) for non-negative integers."""
    x = _require_uint(a, name="a")
    y = _require_uint(b, name="b")
    d = _require_uint(denom, name="denom")
    if d == 0:
        raise EngineError("DivisionByZero", "zero_denominator", {"a": x, "b": y})
    return _fit_u64((x * y) // d)


def pow_ratio_floor(base: int, num: int, den: int, n: int) -> int:
    """Return floor(base * (num/den)**n) without leaving integer arithmetic."""
    b = _require_uint(base, name="base")
    p = _require_uint(num, name="num")
    q = _require_uint(den, name="den")
    k = _require_uint(n, name="n", upper=U32_MAX)
    if q == 0:
        raise EngineError("DivisionByZero", "zero_denominator", {"num": p})
    return _fit_u64((b * p**k) // q**k)


def checked_add(a: int, b: int) -> int:
    return _fit_u64(_require_uint(a, name="a") + _require_uint(b, name="b"))


def checked_sub(a: int, b: int) -> int:
    x = _require_uint(a, name="a")
    y = _require_uint(b, name="b")
    if y > x:
        raise EngineError("Underflow", "subtraction_below_zero", {"a": x, "b": y})
    return x - y


__all__ = ["basis_points", "checked_add", "checked_sub", "mul_div_floor", "pow_ratio_floor"]
