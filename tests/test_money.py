"""
Tests for monetary amount helpers
"""

import pytest
from decimal import Decimal

from neobank.errors import ValidationError
from neobank.money import MAX_AMOUNT, ZERO, format_amount, positive_amount, to_amount


class TestToAmount:

    def test_quantizes_to_cents_half_up(self):
        assert to_amount("10.005") == Decimal("10.01")
        assert to_amount("10.004") == Decimal("10.00")
        assert to_amount(Decimal("3")) == Decimal("3.00")
        assert to_amount(7) == Decimal("7.00")

    def test_rejects_float(self):
        with pytest.raises(ValidationError, match="float"):
            to_amount(10.5)

    def test_rejects_bool(self):
        with pytest.raises(ValidationError):
            to_amount(True)

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Cannot convert"):
            to_amount("ten reais")

    def test_rejects_non_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            to_amount("Infinity")
        with pytest.raises(ValidationError, match="finite"):
            to_amount(Decimal("NaN"))

    def test_accepts_largest_amount(self):
        assert to_amount(MAX_AMOUNT) == Decimal("9999999999999999.99")
        assert to_amount(-MAX_AMOUNT) == -MAX_AMOUNT

    @pytest.mark.parametrize("value", [
        "1e30",
        "90000000000000000000000000",
        "10000000000000000.00",
        "-10000000000000000.00",
        Decimal("1E+50"),
    ])
    def test_rejects_amounts_past_maximum(self, value):
        with pytest.raises(ValidationError, match="exceeds the maximum"):
            to_amount(value)


class TestPositiveAmount:

    def test_accepts_positive(self):
        assert positive_amount("0.01") == Decimal("0.01")

    @pytest.mark.parametrize("value", ["0", "0.00", "-5", "0.004"])
    def test_rejects_zero_and_negative(self, value):
        with pytest.raises(ValidationError, match="must be positive"):
            positive_amount(value)


def test_format_amount():
    assert format_amount(Decimal("1234567.5")) == "1,234,567.50"
    assert format_amount(ZERO) == "0.00"
