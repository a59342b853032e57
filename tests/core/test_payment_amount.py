"""Money amount parsing tests -- fixed-point Decimal, 15 digits / 4 places"""

from decimal import Decimal

import pytest
from fieldops.core.exceptions import ValidationError
from fieldops.core.models import parse_amount, parse_currency


class TestParseAmount:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("150000", Decimal("150000.0000")),
            (150000, Decimal("150000.0000")),
            ("0.0001", Decimal("0.0001")),
            ("12.5", Decimal("12.5000")),
            (Decimal("99999999999.9999"), Decimal("99999999999.9999")),
        ],
    )
    def test_valid_amounts(self, value, expected):
        amount = parse_amount(value)
        assert amount == expected
        assert amount.as_tuple().exponent == -4

    def test_canonical_string(self):
        assert str(parse_amount("150000")) == "150000.0000"

    @pytest.mark.parametrize("value", ["0", "-1", "-0.5", "abc", "", "NaN", "Infinity"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount(value)
        assert exc_info.value.field == "amount"

    def test_rejects_float(self):
        with pytest.raises(ValidationError):
            parse_amount(0.1)

    def test_rejects_too_many_places(self):
        with pytest.raises(ValidationError, match="decimal places"):
            parse_amount("1.00001")

    def test_rejects_too_many_digits(self):
        with pytest.raises(ValidationError, match="too large"):
            parse_amount("100000000000")

    def test_max_amount(self):
        with pytest.raises(ValidationError, match="maximum"):
            parse_amount("1000.0001", max_amount=Decimal("1000"))
        assert parse_amount("1000", max_amount=Decimal("1000")) == Decimal("1000")


class TestParseCurrency:
    @pytest.mark.parametrize("value,expected", [("VND", "VND"), ("usd", "USD"), (" eur ", "EUR")])
    def test_normalizes(self, value, expected):
        assert parse_currency(value) == expected

    @pytest.mark.parametrize("value", ["", "US", "DOLLAR", "V1D"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_currency(value)
        assert exc_info.value.field == "currency"
