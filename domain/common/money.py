"""
Money helpers.

All amounts are integers in minor currency units. Fractional intermediates are
computed with Decimal and rounded once with ROUND_HALF_UP before they are
returned or summed.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

# Decimal places per ISO-4217 code; anything missing uses 2
CURRENCY_DECIMALS: dict[str, int] = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "ARS": 2,
    "BRL": 2,
    "MXN": 2,
    "CLP": 0,
    "COP": 2,
    "PEN": 2,
    "UYU": 2,
}

_HUNDRED = Decimal(100)


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount: Number, rate_percent: Number) -> int:
    """`round(amount * rate_percent / 100)` using the single rounding rule."""
    return round_half_up(to_decimal(amount) * to_decimal(rate_percent) / _HUNDRED)


def prorate(amount: Number, numerator: Number, denominator: Number) -> int:
    """`round(amount * numerator / denominator)`."""
    return round_half_up(to_decimal(amount) * to_decimal(numerator) / to_decimal(denominator))


def is_integral(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, Decimal):
        return value.is_finite() and value == value.to_integral_value()
    return False


def get_currency_decimals(currency: str) -> int:
    return CURRENCY_DECIMALS.get((currency or "").upper(), 2)


def to_minor_units(amount: Number, currency: str) -> int:
    """Convert a major-unit amount (e.g. 12.34 USD) to minor units (1234)."""
    exponent = get_currency_decimals(currency)
    return round_half_up(to_decimal(amount) * (Decimal(10) ** exponent))


def from_minor_units(amount: int, currency: str) -> Decimal:
    """Convert minor units back to a Decimal major-unit amount."""
    exponent = get_currency_decimals(currency)
    return Decimal(amount) / (Decimal(10) ** exponent)
