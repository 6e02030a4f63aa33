"""Conversions between human-readable decimal amounts and raw token units."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from aggregator.errors import InvalidRequestError


def default_amount_for_decimals(decimals: int) -> int:
    """One whole token in raw units."""
    return 10**decimals


def parse_amount_to_units(amount: str, decimals: int) -> int:
    """Parse a decimal string (e.g. "1.5") into raw token units.

    Raises:
        InvalidRequestError: If the amount is malformed, negative, or has
            more fractional digits than the token supports
    """
    text = amount.strip()
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise InvalidRequestError(f"Invalid amount: '{amount}'") from e
    if not value.is_finite():
        raise InvalidRequestError(f"Invalid amount: '{amount}'")
    if value < 0:
        raise InvalidRequestError(f"Amount cannot be negative: '{amount}'")

    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > decimals:
        raise InvalidRequestError(
            f"Amount '{amount}' has more than {decimals} fractional digits"
        )
    with localcontext() as ctx:
        ctx.prec = 100
        return int(value.scaleb(decimals))


def format_amount_from_units(units: int, decimals: int) -> str:
    """Format raw units as a decimal string without trailing zeros."""
    sign = "-" if units < 0 else ""
    whole, fraction = divmod(abs(units), 10**decimals)
    if decimals == 0 or fraction == 0:
        return f"{sign}{whole}"
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{fraction_text}"


__all__ = [
    "default_amount_for_decimals",
    "parse_amount_to_units",
    "format_amount_from_units",
]
