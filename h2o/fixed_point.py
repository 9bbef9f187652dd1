"""
fixed_point.py - Deterministic fixed-point arithmetic

Every amount, price and rate in the protocol is an int holding a value with
18 fractional decimal digits (SCALE = 10**18). Operations are exact integer
arithmetic: multiplication and division truncate toward zero, and every
result is checked against the 256-bit domain of its operation.

Signed operations (add, sub, mul, div, mul_div, smin, smax) use the int256 range.
Unsigned operations (uadd, usub, umul, udiv, umin, umax) use the uint256
range and reject negative results.

Decimal is the human-facing representation: from_decimal() and to_decimal()
convert between the two without going through float.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Union

from .core import (
    SCALE, DECIMALS, INT256_MIN, INT256_MAX, UINT256_MAX,
    DivisionByZero, FixedPointOverflow, FixedPointUnderflow,
)


Numeric = Union[Decimal, int, str, float]

# Enough digits for any uint256 value plus the 18 fractional digits.
_CONVERSION_PRECISION = 100


# ============================================================================
# RANGE CHECKS
# ============================================================================

def _require_int(*values: int) -> None:
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"fixed-point operand must be int, got {type(value).__name__}")


def _signed(value: int, op: str) -> int:
    if value < INT256_MIN or value > INT256_MAX:
        raise FixedPointOverflow(f"{op}: result {value} outside int256")
    return value


def _unsigned(value: int, op: str) -> int:
    if value < 0:
        raise FixedPointUnderflow(f"{op}: result {value} below zero")
    if value > UINT256_MAX:
        raise FixedPointOverflow(f"{op}: result {value} outside uint256")
    return value


def _truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero (Python's // floors)."""
    if denominator == 0:
        raise DivisionByZero("division by zero")
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


# ============================================================================
# SIGNED OPERATIONS
# ============================================================================

def add(a: int, b: int) -> int:
    _require_int(a, b)
    return _signed(a + b, "add")


def sub(a: int, b: int) -> int:
    _require_int(a, b)
    return _signed(a - b, "sub")


def mul(a: int, b: int) -> int:
    """a * b / SCALE, truncated toward zero."""
    _require_int(a, b)
    return _signed(_truncating_div(a * b, SCALE), "mul")


def div(a: int, b: int) -> int:
    """a * SCALE / b, truncated toward zero. Raises DivisionByZero if b == 0."""
    _require_int(a, b)
    return _signed(_truncating_div(a * SCALE, b), "div")


def mul_div(a: int, b: int, c: int) -> int:
    """a * b / c with a single truncation toward zero; the product is never rounded."""
    _require_int(a, b, c)
    return _signed(_truncating_div(a * b, c), "mul_div")


def smin(a: int, b: int) -> int:
    _require_int(a, b)
    return a if a <= b else b


def smax(a: int, b: int) -> int:
    _require_int(a, b)
    return a if a >= b else b


# ============================================================================
# UNSIGNED OPERATIONS
# ============================================================================

def uadd(a: int, b: int) -> int:
    _require_int(a, b)
    return _unsigned(_unsigned(a, "uadd") + _unsigned(b, "uadd"), "uadd")


def usub(a: int, b: int) -> int:
    _require_int(a, b)
    return _unsigned(_unsigned(a, "usub") - _unsigned(b, "usub"), "usub")


def umul(a: int, b: int) -> int:
    _require_int(a, b)
    return _unsigned(_unsigned(a, "umul") * _unsigned(b, "umul") // SCALE, "umul")


def udiv(a: int, b: int) -> int:
    _require_int(a, b)
    if b == 0:
        raise DivisionByZero("division by zero")
    return _unsigned(_unsigned(a, "udiv") * SCALE // _unsigned(b, "udiv"), "udiv")


def umin(a: int, b: int) -> int:
    _require_int(a, b)
    _unsigned(a, "umin")
    _unsigned(b, "umin")
    return a if a <= b else b


def umax(a: int, b: int) -> int:
    _require_int(a, b)
    _unsigned(a, "umax")
    _unsigned(b, "umax")
    return a if a >= b else b


# ============================================================================
# SCALE CONVERSIONS
# ============================================================================

def to_fixed(value: int) -> int:
    """Whole number -> fixed-point."""
    _require_int(value)
    return _signed(value * SCALE, "to_fixed")


def to_int(value: int) -> int:
    """Fixed-point -> whole number, truncated toward zero."""
    _require_int(value)
    return _truncating_div(value, SCALE)


def from_decimal(value: Numeric) -> int:
    """
    Convert a human value to fixed-point, truncating digits beyond the 18th.

    Floats are converted through their string form, never their binary value.

    Raises:
        ValueError: If the value is NaN or infinite
        FixedPointOverflow: If the result is outside int256
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, float):
        value = str(value)
    if not isinstance(value, Decimal):
        value = Decimal(value)
    if not value.is_finite():
        raise ValueError(f"amount must be finite, got {value}")
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        scaled = value.scaleb(DECIMALS).to_integral_value(rounding=ROUND_DOWN)
    return _signed(int(scaled), "from_decimal")


def to_decimal(value: int) -> Decimal:
    """Convert fixed-point to an exact Decimal."""
    _require_int(value)
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        return Decimal(value).scaleb(-DECIMALS)


def format_amount(value: int, places: int = 4) -> str:
    """Render a fixed-point value for display, rounded down to `places` digits."""
    quantizer = Decimal(10) ** -places
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        return f"{to_decimal(value).quantize(quantizer, rounding=ROUND_DOWN):,}"
