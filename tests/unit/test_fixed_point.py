"""
Tests for fixed_point.py - Deterministic fixed-point arithmetic

Tests:
- mul / div / mul_div truncate toward zero
- Division by zero and range violations raise FixedPointError subclasses
- Scale conversions (to_fixed, to_int, from_decimal, to_decimal)
- Signed and unsigned min/max
"""

import pytest
from decimal import Decimal
from hypothesis import given, settings
from hypothesis import strategies as st

from h2o import (
    SCALE,
    DivisionByZero, FixedPointError, FixedPointOverflow, FixedPointUnderflow,
)
from h2o import fixed_point as fp
from h2o.core import INT256_MAX, INT256_MIN, UINT256_MAX


# Values well inside int128 so products stay in range.
amounts = st.integers(min_value=-(10 ** 36), max_value=10 ** 36)
nonzero_amounts = amounts.filter(lambda v: v != 0)


class TestMulDiv:
    """Tests for mul, div and mul_div."""

    def test_mul_whole_numbers(self):
        assert fp.mul(fp.to_fixed(2), fp.to_fixed(3)) == fp.to_fixed(6)

    def test_mul_fractions(self):
        half = SCALE // 2
        assert fp.mul(half, half) == SCALE // 4

    def test_mul_truncates_toward_zero(self):
        assert fp.mul(3, SCALE // 2) == 1
        assert fp.mul(-3, SCALE // 2) == -1

    def test_div_whole_numbers(self):
        assert fp.div(fp.to_fixed(10), fp.to_fixed(4)) == fp.from_decimal("2.5")

    def test_div_truncates_toward_zero(self):
        assert fp.div(fp.to_fixed(1), fp.to_fixed(3)) == 333333333333333333
        assert fp.div(-fp.to_fixed(1), fp.to_fixed(3)) == -333333333333333333
        assert fp.div(fp.to_fixed(1), -fp.to_fixed(3)) == -333333333333333333

    def test_div_by_zero_raises(self):
        with pytest.raises(DivisionByZero):
            fp.div(fp.to_fixed(1), 0)

    def test_div_by_zero_is_an_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            fp.div(1, 0)
        with pytest.raises(ZeroDivisionError):
            fp.udiv(1, 0)

    def test_mul_div_single_rounding(self):
        assert fp.mul_div(fp.to_fixed(10), 3, 7) == 4285714285714285714
        assert fp.mul_div(-fp.to_fixed(10), 3, 7) == -4285714285714285714

    def test_mul_div_exact_when_ratio_is_one(self):
        assert fp.mul_div(123456789, 3600, 3600) == 123456789

    def test_rejects_non_int_operands(self):
        with pytest.raises(TypeError):
            fp.mul(1.5, SCALE)
        with pytest.raises(TypeError):
            fp.add(True, 1)

    @given(amounts)
    @settings(max_examples=200)
    def test_mul_by_one_is_identity(self, a):
        assert fp.mul(a, SCALE) == a

    @given(amounts)
    @settings(max_examples=200)
    def test_div_by_one_is_identity(self, a):
        assert fp.div(a, SCALE) == a

    @given(amounts, amounts)
    @settings(max_examples=200)
    def test_mul_magnitude_is_truncated_product(self, a, b):
        result = fp.mul(a, b)
        assert abs(result) == abs(a * b) // SCALE
        assert result == 0 or (result > 0) == ((a > 0) == (b > 0))

    @given(amounts, nonzero_amounts)
    @settings(max_examples=200)
    def test_div_magnitude_is_truncated_quotient(self, a, b):
        assert abs(fp.div(a, b)) == abs(a) * SCALE // abs(b)


class TestRangeChecks:
    """Overflow and underflow detection."""

    def test_add_overflow(self):
        with pytest.raises(FixedPointOverflow):
            fp.add(INT256_MAX, 1)

    def test_sub_overflow(self):
        with pytest.raises(FixedPointOverflow):
            fp.sub(INT256_MIN, 1)

    def test_mul_overflow(self):
        with pytest.raises(FixedPointOverflow):
            fp.mul(INT256_MAX, fp.to_fixed(2))

    def test_to_fixed_overflow(self):
        with pytest.raises(FixedPointOverflow):
            fp.to_fixed(INT256_MAX)

    def test_unsigned_underflow(self):
        with pytest.raises(FixedPointUnderflow):
            fp.usub(1, 2)

    def test_unsigned_overflow(self):
        with pytest.raises(FixedPointOverflow):
            fp.uadd(UINT256_MAX, 1)

    def test_unsigned_rejects_negative_operand(self):
        with pytest.raises(FixedPointUnderflow):
            fp.umul(-1, SCALE)

    def test_all_range_errors_share_a_base(self):
        for exc in (DivisionByZero, FixedPointOverflow, FixedPointUnderflow):
            assert issubclass(exc, FixedPointError)
            assert issubclass(exc, ArithmeticError)

    def test_unsigned_range_exceeds_signed_range(self):
        assert fp.uadd(INT256_MAX, INT256_MAX) == 2 * INT256_MAX


class TestMinMax:
    """Signed and unsigned min/max."""

    def test_signed(self):
        assert fp.smin(-5, 3) == -5
        assert fp.smax(-5, 3) == 3
        assert fp.smin(4, 4) == 4

    def test_unsigned(self):
        assert fp.umin(7, 3) == 3
        assert fp.umax(7, 3) == 7

    def test_unsigned_rejects_negative(self):
        with pytest.raises(FixedPointUnderflow):
            fp.umin(-1, 2)


class TestConversions:
    """Scale conversions between whole numbers, Decimal and fixed-point."""

    def test_to_fixed_and_back(self):
        assert fp.to_fixed(7) == 7 * SCALE
        assert fp.to_int(fp.to_fixed(7)) == 7

    def test_to_int_truncates(self):
        assert fp.to_int(fp.to_fixed(7) + SCALE - 1) == 7
        assert fp.to_int(-(fp.to_fixed(7) + SCALE - 1)) == -7

    def test_from_decimal(self):
        assert fp.from_decimal("0.04") == 4 * 10 ** 16
        assert fp.from_decimal(Decimal("25")) == 25 * SCALE
        assert fp.from_decimal(-3) == -3 * SCALE

    def test_from_decimal_float_goes_through_string(self):
        assert fp.from_decimal(0.1) == 10 ** 17

    def test_from_decimal_truncates_beyond_18_digits(self):
        assert fp.from_decimal("1e-19") == 0
        assert fp.from_decimal("1.0000000000000000019") == SCALE + 1

    def test_from_decimal_large_value_is_exact(self):
        assert fp.from_decimal("123456789012345678901.123456789012345678") == \
            123456789012345678901123456789012345678

    def test_from_decimal_rejects_non_finite(self):
        with pytest.raises(ValueError):
            fp.from_decimal(Decimal("NaN"))
        with pytest.raises(ValueError):
            fp.from_decimal(Decimal("Infinity"))

    def test_to_decimal(self):
        assert fp.to_decimal(fp.to_fixed(25)) == Decimal(25)
        assert fp.to_decimal(1) == Decimal("1E-18")
        assert fp.to_decimal(-SCALE // 2) == Decimal("-0.5")

    def test_format_amount(self):
        assert fp.format_amount(fp.from_decimal("1234.56789")) == "1,234.5678"
        assert fp.format_amount(fp.to_fixed(25), 2) == "25.00"

    @given(st.integers(min_value=-(10 ** 40), max_value=10 ** 40))
    @settings(max_examples=200)
    def test_decimal_round_trip_is_exact(self, value):
        assert fp.from_decimal(fp.to_decimal(value)) == value
