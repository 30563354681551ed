import itertools

import pytest

from spendtrack.config import CURRENCIES
from spendtrack.currency import convert, format_amount, normalize_currency


def test_identity_conversion():
    assert convert(42.5, "EUR", "EUR") == 42.5


def test_convert_uses_usd_rates():
    assert convert(100, "EUR", "USD") == pytest.approx(108.0)
    assert convert(1, "USD", "MKD") == pytest.approx(1 / 0.0176)


@pytest.mark.parametrize("a,b", list(itertools.permutations(CURRENCIES, 2)))
def test_round_trip(a, b):
    x = 123.45
    assert convert(convert(x, a, b), b, a) == pytest.approx(x)


def test_unknown_currency_falls_back_to_default():
    assert normalize_currency("GBP") == "MKD"
    assert normalize_currency(None) == "MKD"
    assert convert(10, "GBP", "MKD") == 10


def test_missing_rate_in_custom_table_leaves_amount():
    assert convert(10, "EUR", "USD", rates={"USD": 1.0}) == 10


def test_format_amount():
    assert format_amount(3.14159, "EUR") == "3.14 EUR"
