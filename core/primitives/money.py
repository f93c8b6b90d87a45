"""
CASA Money Primitive — Decimal Currency Helpers
=================================================
All quotation arithmetic runs on Decimal, never float.

RULES (NON-NEGOTIABLE):
- Line and partition amounts are rounded half-up to 2 places
- Unit rates are rounded half-up to whole currency units
- Agreement amounts are integer minor units (paise)
- Unparseable input is a validation error, never silently zero
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
UNIT = Decimal("1")


def to_decimal(value: Any, *, field_name: str = "value") -> Decimal:
    """
    Coerce int / str / Decimal input to Decimal.

    Floats go through str() so 0.1 stays 0.1. None and "" are zero,
    matching blank form fields in the line-item tables.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool.")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"{field_name} must be numeric, got '{value}'.") from exc
    else:
        raise ValueError(
            f"{field_name} must be numeric, got {type(value).__name__}."
        )
    if not result.is_finite():
        raise ValueError(f"{field_name} must be a finite number.")
    return result


def optional_decimal(value: Any, *, field_name: str = "value") -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value, field_name=field_name)


def round_currency(value: Decimal) -> Decimal:
    """Round to 2 decimal places (rupees and paise)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round a unit rate to the nearest whole currency unit."""
    return value.quantize(UNIT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return round_currency(amount * percent / HUNDRED)


def sum_amounts(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return round_currency(total)


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to integer minor units (1 rupee = 100 paise)."""
    return int((amount * HUNDRED).quantize(UNIT, rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> Decimal:
    if not isinstance(amount_minor, int):
        raise TypeError("amount_minor must be int.")
    return round_currency(Decimal(amount_minor) / HUNDRED)


def format_inr(amount: Decimal) -> str:
    """
    Indian number grouping: last three digits, then pairs.
    1234567.89 → ₹12,34,567.89
    """
    rounded = round_currency(amount)
    sign = "-" if rounded < 0 else ""
    integer, _, fraction = f"{abs(rounded):.2f}".partition(".")
    last_three = integer[-3:]
    rest = integer[:-3]
    groups = []
    while len(rest) > 2:
        groups.insert(0, rest[-2:])
        rest = rest[:-2]
    if rest:
        groups.insert(0, rest)
    grouped = ",".join(groups + [last_three]) if groups else last_three
    return f"{sign}₹{grouped}.{fraction}"
