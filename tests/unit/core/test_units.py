"""Tests for decimal amount conversions."""

import pytest

from aggregator.errors import InvalidRequestError
from aggregator.units import default_amount_for_decimals, format_amount_from_units, parse_amount_to_units


@pytest.mark.parametrize(
    "amount,decimals,expected",
    [
        ("1", 18, 10**18),
        ("1.5", 6, 1_500_000),
        (" 0.000001 ", 6, 1),
        ("1e3", 0, 1000),
        ("123456789.123456789123456789", 18, 123456789123456789123456789),
        ("0", 18, 0),
    ],
)
def test_parse_amount_to_units(amount, decimals, expected):
    assert parse_amount_to_units(amount, decimals) == expected


@pytest.mark.parametrize("amount", ["", "abc", "-1", "NaN", "Infinity", "1.0000001"])
def test_parse_rejects(amount):
    with pytest.raises(InvalidRequestError):
        parse_amount_to_units(amount, 6)


@pytest.mark.parametrize(
    "units,decimals,expected",
    [
        (10**18, 18, "1"),
        (1_500_000, 6, "1.5"),
        (1, 6, "0.000001"),
        (0, 6, "0"),
        (42, 0, "42"),
        (-1_500_000, 6, "-1.5"),
    ],
)
def test_format_amount_from_units(units, decimals, expected):
    assert format_amount_from_units(units, decimals) == expected


def test_default_amount_is_one_whole_token():
    assert default_amount_for_decimals(6) == 10**6
    assert default_amount_for_decimals(0) == 1
