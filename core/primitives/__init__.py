"""
CASA Core Primitives — Shared Building Blocks
===============================================
Pure Python, immutable, deterministic helpers consumed by every engine.

Primitives:
    money — Decimal currency rounding and minor-unit conversion
"""

from core.primitives.money import (
    CENT,
    HUNDRED,
    ZERO,
    format_inr,
    from_minor_units,
    optional_decimal,
    percent_of,
    round_currency,
    round_rate,
    sum_amounts,
    to_decimal,
    to_minor_units,
)

__all__ = [
    "CENT",
    "HUNDRED",
    "ZERO",
    "format_inr",
    "from_minor_units",
    "optional_decimal",
    "percent_of",
    "round_currency",
    "round_rate",
    "sum_amounts",
    "to_decimal",
    "to_minor_units",
]
