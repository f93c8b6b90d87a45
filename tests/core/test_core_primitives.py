"""CASA money primitive tests."""

from decimal import Decimal

import pytest


class TestToDecimal:
    def test_int_str_and_float_coerced_exactly(self):
        from core.primitives.money import to_decimal

        assert to_decimal(5) == Decimal("5")
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(0.1) == Decimal("0.1")

    def test_blank_is_zero(self):
        from core.primitives.money import ZERO, optional_decimal, to_decimal

        assert to_decimal(None) == ZERO
        assert to_decimal("") == ZERO
        assert optional_decimal("") is None

    def test_garbage_rejected(self):
        from core.primitives.money import to_decimal

        with pytest.raises(ValueError, match="length must be numeric"):
            to_decimal("ten", field_name="length")
        with pytest.raises(ValueError, match="bool"):
            to_decimal(True)
        with pytest.raises(ValueError, match="finite"):
            to_decimal("NaN")


class TestRounding:
    def test_currency_rounds_half_up(self):
        from core.primitives.money import round_currency

        assert round_currency(Decimal("10.005")) == Decimal("10.01")
        assert round_currency(Decimal("10.004")) == Decimal("10.00")

    def test_rate_rounds_to_whole_unit(self):
        from core.primitives.money import round_rate

        assert round_rate(Decimal("1299.5")) == Decimal("1300")
        assert round_rate(Decimal("1299.49")) == Decimal("1299")

    def test_minor_units(self):
        from core.primitives.money import from_minor_units, to_minor_units

        assert to_minor_units(Decimal("159300")) == 15930000
        assert to_minor_units(Decimal("0.015")) == 2
        assert from_minor_units(15930000) == Decimal("159300.00")
        with pytest.raises(TypeError):
            from_minor_units("100")


class TestFormatting:
    def test_indian_grouping(self):
        from core.primitives.money import format_inr

        assert format_inr(Decimal("1234567.891")) == "₹12,34,567.89"
        assert format_inr(Decimal("999")) == "₹999.00"
        assert format_inr(Decimal("-150000")) == "-₹1,50,000.00"
