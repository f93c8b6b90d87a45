"""
CASA Pricing — Rate Resolver
==============================
Turns (build type, core, finish, hardware) into a unit rate and
prices line items from it.

    rate = base_rate[build_type] + adder(core) + adder(finish) + adder(hardware)

rounded half-up to a whole currency unit.

Unknown brands fail open: they contribute a zero adder and are
reported on the resolution as misses, never raised.

Items that bypass the resolver take their auto rate straight from
the direct monetary entry:
- LSUM items
- COUNT items whose catalog entry locks the unit
- False-ceiling items (unit price per sq ft entered by hand)
- Other items (painting, lights, fan hooks)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from core.primitives.money import (
    ZERO,
    round_currency,
    round_rate,
    to_decimal,
)
from engines.pricing.catalog import BrandType, PricingCatalog
from engines.pricing.items import BuildType, CalcMode, ItemKind, LineItem

logger = logging.getLogger("casa.pricing")

ALWAYS_HANDMADE_MARKERS = (
    "custom wall highlight",
    "custom wall paneling",
    "wall highlights",
    "wall paneling",
)


@dataclass(frozen=True)
class BrandMiss:
    brand_type: BrandType
    name: str

    def to_dict(self) -> dict:
        return {"brand_type": self.brand_type.value, "name": self.name}


@dataclass(frozen=True)
class RateResolution:
    rate: Decimal
    base_rate: Decimal
    build_type: BuildType
    adders: Tuple[Tuple[BrandType, Decimal], ...] = ()
    misses: Tuple[BrandMiss, ...] = ()

    @property
    def has_misses(self) -> bool:
        return bool(self.misses)


# ══════════════════════════════════════════════════════════════
# RATE RESOLUTION
# ══════════════════════════════════════════════════════════════

def resolve_rate(
    build_type: BuildType | str,
    core: Optional[str],
    finish: Optional[str],
    hardware: Optional[str],
    *,
    catalog: PricingCatalog,
    item_key: Optional[str] = None,
) -> RateResolution:
    if not isinstance(build_type, BuildType):
        build_type = BuildType(build_type)

    entry = catalog.get_entry(item_key) if item_key else None
    if entry is not None:
        base_rate = entry.base_rate(build_type)
    else:
        base_rate = catalog.base_rates()[build_type]

    adders = []
    misses = []
    for brand_type, name in (
        (BrandType.CORE, core),
        (BrandType.FINISH, finish),
        (BrandType.HARDWARE, hardware),
    ):
        if not name:
            adders.append((brand_type, ZERO))
            continue
        brand = catalog.get_brand(brand_type, name)
        if brand is None:
            logger.warning(
                f"Unknown {brand_type.value} brand '{name}', using zero adder"
            )
            misses.append(BrandMiss(brand_type=brand_type, name=name))
            adders.append((brand_type, ZERO))
        else:
            adders.append((brand_type, brand.adder_per_sft))

    rate = round_rate(base_rate + sum((amount for _, amount in adders), ZERO))
    return RateResolution(
        rate=rate,
        base_rate=base_rate,
        build_type=build_type,
        adders=tuple(adders),
        misses=tuple(misses),
    )


def is_always_handmade(description: Optional[str]) -> bool:
    """Wall highlights and paneling are hand-built whatever the quote says."""
    text = (description or "").lower()
    return any(marker in text for marker in ALWAYS_HANDMADE_MARKERS)


def effective_build_type(item: LineItem, default_build_type: BuildType) -> BuildType:
    if is_always_handmade(item.description):
        return BuildType.HANDMADE
    return item.build_type or default_build_type


def bypasses_resolver(item: LineItem, catalog: PricingCatalog) -> bool:
    if item.kind in (ItemKind.FALSE_CEILING, ItemKind.OTHER):
        return True
    if item.calc is CalcMode.LSUM:
        return True
    if item.calc is CalcMode.COUNT and item.item_key:
        entry = catalog.get_entry(item.item_key)
        return entry is not None and entry.locked_unit is not None
    return False


# ══════════════════════════════════════════════════════════════
# LINE ITEM PRICING
# ══════════════════════════════════════════════════════════════

def _positive(value: Optional[Decimal]) -> Decimal:
    return value if value is not None and value > 0 else ZERO


def compute_quantity(item: LineItem) -> Decimal:
    """Area, count, or 1 depending on calc mode."""
    if item.calc is CalcMode.LSUM:
        return Decimal("1")
    if item.calc is CalcMode.COUNT:
        return item.quantity or ZERO
    if item.kind is ItemKind.FALSE_CEILING:
        length, width = _positive(item.length), _positive(item.width)
        if length == ZERO or width == ZERO:
            return ZERO
        return length * width
    return _positive(item.length) * _positive(item.height)


def resolve_line_item(
    item: LineItem,
    catalog: PricingCatalog,
    default_build_type: BuildType,
) -> Optional[RateResolution]:
    """Resolution for a catalog-priced item; None when the item bypasses."""
    if bypasses_resolver(item, catalog):
        return None
    return resolve_rate(
        effective_build_type(item, default_build_type),
        item.material,
        item.finish,
        item.hardware,
        catalog=catalog,
        item_key=item.item_key,
    )


def _with_totals(item: LineItem, rate_auto: Decimal) -> LineItem:
    unit_price = item.rate_override if item.is_rate_overridden else rate_auto
    return item.with_changes(
        rate_auto=rate_auto,
        unit_price=unit_price,
        total_price=round_currency(unit_price * compute_quantity(item)),
    )


def price_line_item(
    item: LineItem,
    catalog: PricingCatalog,
    default_build_type: BuildType,
    resolution: Optional[RateResolution] = None,
) -> LineItem:
    """Return the item with rate_auto, unit_price and total_price recomputed."""
    if bypasses_resolver(item, catalog):
        rate_auto = round_currency(item.direct_price or ZERO)
    else:
        if resolution is None:
            resolution = resolve_line_item(item, catalog, default_build_type)
        rate_auto = resolution.rate
    return _with_totals(item, rate_auto)


def apply_rate_override(item: LineItem, rate: Decimal | int | str) -> LineItem:
    """Store a manual rate; rate_auto is kept so the override can be reverted."""
    override = round_currency(to_decimal(rate, field_name="rate_override"))
    if override < 0:
        raise ValueError("rate_override cannot be negative.")
    overridden = item.with_changes(rate_override=override, is_rate_overridden=True)
    return _with_totals(overridden, item.rate_auto)


def clear_rate_override(item: LineItem) -> LineItem:
    cleared = item.with_changes(rate_override=None, is_rate_overridden=False)
    return _with_totals(cleared, item.rate_auto)
