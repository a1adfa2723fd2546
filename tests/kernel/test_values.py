"""
Tests for the Decimal rounding helpers (payroll_kernel/domain/values.py).

Covers:
- to_decimal conversions and float rejection
- Quantization to hours, rates and money with ROUND_HALF_UP
- Minute-to-hour conversion
"""

from decimal import Decimal

import pytest

from payroll_kernel.domain.values import (
    ZERO,
    minutes_to_hours,
    quantize_hours,
    quantize_money,
    quantize_rate,
    to_decimal,
)


class TestToDecimal:

    def test_none_is_zero(self):
        assert to_decimal(None) == ZERO

    def test_int_and_string(self):
        assert to_decimal(1300000) == Decimal("1300000")
        assert to_decimal(" 7.3 ") == Decimal("7.3")

    def test_decimal_passthrough(self):
        value = Decimal("0.0833")
        assert to_decimal(value) is value

    def test_float_rejected(self):
        with pytest.raises(TypeError, match="float"):
            to_decimal(0.1)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_malformed_string(self):
        with pytest.raises(ValueError, match="Not a decimal literal"):
            to_decimal("12,5")

    def test_unsupported_type(self):
        with pytest.raises(TypeError, match="Unsupported"):
            to_decimal([1])


class TestQuantization:

    def test_money_rounds_half_up(self):
        assert quantize_money(Decimal("10.005")) == Decimal("10.01")
        assert quantize_money(Decimal("10.004")) == Decimal("10.00")

    def test_rate_four_places(self):
        assert quantize_rate(Decimal("1300000") / Decimal("192")) == Decimal("6770.8333")

    def test_hours_two_places(self):
        assert quantize_hours(Decimal("1.005")) == Decimal("1.01")

    def test_minutes_to_hours(self):
        assert minutes_to_hours(450) == Decimal("7.50")
        assert minutes_to_hours(20) == Decimal("0.33")
        assert minutes_to_hours(0) == Decimal("0.00")
