import pytest

from app.utils.money import format_amount, from_cents, to_cents


@pytest.mark.parametrize("amount,cents", [
    ("12.34", 1234), (0.105, 11), ("-0.005", -1), (100, 10000), ("0", 0),
])
def test_to_cents_rounds_half_up(amount, cents):
    assert to_cents(amount) == cents


def test_from_cents():
    assert from_cents(123456) == 1234.56


@pytest.mark.parametrize("cents,currency,text", [
    (123456, "EUR", "1\u202f234,56 EUR"),
    (5, "MAD", "0,05 MAD"),
    (-100000000, "USD", "-1\u202f000\u202f000,00 USD"),
])
def test_format_amount(cents, currency, text):
    assert format_amount(cents, currency) == text
