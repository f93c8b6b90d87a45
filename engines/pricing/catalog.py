"""
CASA Pricing — Rate & Brand Catalog
=====================================
Read-only lookup of keyed rate entries and brand adders.

The core never mutates the catalog. Admin edits happen elsewhere
and show up on the next live recomputation; approved quotations
read their frozen snapshot instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from core.primitives.money import ZERO, to_decimal
from engines.pricing.items import BuildType, CalcMode


class Unit(Enum):
    SFT = "SFT"
    COUNT = "COUNT"
    LSUM = "LSUM"

    @property
    def calc_mode(self) -> CalcMode:
        return CalcMode.SQFT if self is Unit.SFT else CalcMode(self.value)


class BrandType(Enum):
    CORE = "core"
    FINISH = "finish"
    HARDWARE = "hardware"


DEFAULT_BASE_RATES: Dict[BuildType, Decimal] = {
    BuildType.HANDMADE: Decimal("1300"),
    BuildType.FACTORY: Decimal("1500"),
}


class CatalogUnavailableError(Exception):
    """Raised by a catalog provider that cannot serve lookups."""


# ══════════════════════════════════════════════════════════════
# CATALOG ENTRIES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RateCatalogEntry:
    """
    Keyed item definition.

    `locked_unit` pins the calc mode of every line item carrying this
    key (e.g. termite_treatment is always LSUM); None leaves it free.
    """

    item_key: str
    display_name: str
    unit: Unit
    category: str
    base_rate_handmade: Decimal
    base_rate_factory: Decimal
    locked_unit: Optional[Unit] = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.item_key or not isinstance(self.item_key, str):
            raise ValueError("item_key must be a non-empty string.")
        if not isinstance(self.unit, Unit):
            raise ValueError("unit must be Unit.")
        if self.locked_unit is not None and not isinstance(self.locked_unit, Unit):
            raise ValueError("locked_unit must be Unit or None.")
        for name in ("base_rate_handmade", "base_rate_factory"):
            value = to_decimal(getattr(self, name), field_name=name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative.")
            object.__setattr__(self, name, value)

    def base_rate(self, build_type: BuildType) -> Decimal:
        if build_type is BuildType.FACTORY:
            return self.base_rate_factory
        return self.base_rate_handmade

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_key": self.item_key,
            "display_name": self.display_name,
            "unit": self.unit.value,
            "category": self.category,
            "base_rate_handmade": str(self.base_rate_handmade),
            "base_rate_factory": str(self.base_rate_factory),
            "locked_unit": self.locked_unit.value if self.locked_unit else None,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class BrandAdjustment:
    """Flat per-unit adder for a named brand of a given type."""

    brand_type: BrandType
    name: str
    adder_per_sft: Decimal
    is_default: bool = False
    is_active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.brand_type, BrandType):
            raise ValueError("brand_type must be BrandType.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("Brand name must be a non-empty string.")
        value = to_decimal(self.adder_per_sft, field_name="adder_per_sft")
        if value < 0:
            raise ValueError("adder_per_sft cannot be negative.")
        object.__setattr__(self, "adder_per_sft", value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brand_type": self.brand_type.value,
            "name": self.name,
            "adder_per_sft": str(self.adder_per_sft),
            "is_default": self.is_default,
        }


# ══════════════════════════════════════════════════════════════
# CATALOG PROTOCOL
# ══════════════════════════════════════════════════════════════

class PricingCatalog(Protocol):
    """
    Read-only access to active rate entries and brand adjustments.

    Implementations raise CatalogUnavailableError when the backing
    store cannot be reached.
    """

    def base_rates(self) -> Dict[BuildType, Decimal]:
        ...  # pragma: no cover

    def get_entry(self, item_key: str) -> Optional[RateCatalogEntry]:
        ...  # pragma: no cover

    def get_brand(self, brand_type: BrandType, name: str) -> Optional[BrandAdjustment]:
        ...  # pragma: no cover

    def active_entries(self) -> Tuple[RateCatalogEntry, ...]:
        ...  # pragma: no cover

    def active_brands(self) -> Tuple[BrandAdjustment, ...]:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IN-MEMORY CATALOG (for testing / bootstrap)
# ══════════════════════════════════════════════════════════════

class InMemoryPricingCatalog:
    """
    Dictionary-backed catalog. Inactive entries and brands are
    invisible to lookups.
    """

    def __init__(
        self,
        entries: Iterable[RateCatalogEntry] = (),
        brands: Iterable[BrandAdjustment] = (),
        base_rates: Optional[Dict[BuildType, Decimal]] = None,
    ) -> None:
        self._entries: Dict[str, RateCatalogEntry] = {}
        self._brands: Dict[Tuple[BrandType, str], BrandAdjustment] = {}
        self._base_rates = dict(base_rates or DEFAULT_BASE_RATES)
        for entry in entries:
            self.add_entry(entry)
        for brand in brands:
            self.add_brand(brand)

    def add_entry(self, entry: RateCatalogEntry) -> None:
        self._entries[entry.item_key] = entry

    def add_brand(self, brand: BrandAdjustment) -> None:
        self._brands[(brand.brand_type, brand.name)] = brand

    def set_base_rate(self, build_type: BuildType, rate: Decimal) -> None:
        self._base_rates[build_type] = to_decimal(rate, field_name="rate")

    def base_rates(self) -> Dict[BuildType, Decimal]:
        return dict(self._base_rates)

    def get_entry(self, item_key: str) -> Optional[RateCatalogEntry]:
        entry = self._entries.get(item_key)
        if entry is None or not entry.is_active:
            return None
        return entry

    def get_brand(self, brand_type: BrandType, name: str) -> Optional[BrandAdjustment]:
        brand = self._brands.get((brand_type, name))
        if brand is None or not brand.is_active:
            return None
        return brand

    def active_entries(self) -> Tuple[RateCatalogEntry, ...]:
        return tuple(
            entry for _, entry in sorted(self._entries.items()) if entry.is_active
        )

    def active_brands(self) -> Tuple[BrandAdjustment, ...]:
        return tuple(
            brand
            for _, brand in sorted(
                self._brands.items(), key=lambda kv: (kv[0][0].value, kv[0][1])
            )
            if brand.is_active
        )


# ══════════════════════════════════════════════════════════════
# DEFAULT SEED
# ══════════════════════════════════════════════════════════════

_SFT_ENTRIES = (
    ("base_unit", "Base Unit", "Kitchen"),
    ("wall_unit", "Wall Unit", "Kitchen"),
    ("loft_unit", "Loft Unit", "Kitchen"),
    ("tall_unit", "Tall Unit", "Kitchen"),
    ("tv_base_unit", "TV Base Unit", "Living Room"),
    ("tv_tall_unit_closed", "TV Tall Unit Closed", "Living Room"),
    ("crockery_bar_unit", "Crockery Bar Unit", "Living Room"),
    ("wall_panel_highlight", "Wall Panel Highlight", "Living Room"),
    ("crockery_base", "Crockery Base", "Dining"),
    ("puja_base_unit", "Puja Base Unit", "Dining"),
    ("wardrobe_swing", "Wardrobe Swing", "Master Bedroom"),
    ("wardrobe_loft", "Wardrobe Loft", "Master Bedroom"),
    ("dresser_unit", "Dresser Unit", "Master Bedroom"),
    ("study_table", "Study Table", "Bedroom 2"),
    ("vanity_unit", "Vanity Unit", "Others"),
    ("shoe_rack", "Shoe Rack", "Others"),
    ("foyer_console", "Foyer Console", "Others"),
    ("fc_room", "FC Room", "FC"),
)

_LOCKED_ENTRIES = (
    ("termite_treatment", "Termite Treatment", "Others", Unit.LSUM),
    ("floor_matting", "Floor Matting", "Others", Unit.LSUM),
    ("transportation_handling", "Transportation Handling", "Others", Unit.LSUM),
    ("fc_paint", "FC Paint", "FC", Unit.LSUM),
    ("fc_lights", "FC Lights", "FC", Unit.COUNT),
    ("fc_fan_hook", "FC Fan Hook", "FC", Unit.COUNT),
    ("fc_cove_led", "FC Cove LED", "FC", Unit.COUNT),
)

_BRANDS = (
    (BrandType.CORE, "Generic Ply", "0", True),
    (BrandType.CORE, "Century Ply", "100", False),
    (BrandType.CORE, "Greenply", "100", False),
    (BrandType.FINISH, "Generic Laminate", "0", True),
    (BrandType.FINISH, "Generic Laminate (Nimmi)", "0", False),
    (BrandType.FINISH, "Merino", "100", False),
    (BrandType.FINISH, "Greenlam", "100", False),
    (BrandType.FINISH, "Acrylic", "200", False),
    (BrandType.HARDWARE, "Generic", "0", True),
    (BrandType.HARDWARE, "Nimmi", "0", False),
    (BrandType.HARDWARE, "Hettich", "100", False),
    (BrandType.HARDWARE, "Häfele", "100", False),
    (BrandType.HARDWARE, "Ebco", "100", False),
    (BrandType.HARDWARE, "Sleek", "100", False),
    (BrandType.HARDWARE, "Blum", "200", False),
)


def build_default_catalog() -> InMemoryPricingCatalog:
    """Seeded catalog mirroring the studio's standard rate card."""
    entries = [
        RateCatalogEntry(
            item_key=key,
            display_name=name,
            unit=Unit.SFT,
            category=category,
            base_rate_handmade=DEFAULT_BASE_RATES[BuildType.HANDMADE],
            base_rate_factory=DEFAULT_BASE_RATES[BuildType.FACTORY],
        )
        for key, name, category in _SFT_ENTRIES
    ]
    entries.extend(
        RateCatalogEntry(
            item_key=key,
            display_name=name,
            unit=unit,
            category=category,
            base_rate_handmade=ZERO,
            base_rate_factory=ZERO,
            locked_unit=unit,
        )
        for key, name, category, unit in _LOCKED_ENTRIES
    )
    brands = [
        BrandAdjustment(
            brand_type=brand_type,
            name=name,
            adder_per_sft=Decimal(adder),
            is_default=is_default,
        )
        for brand_type, name, adder, is_default in _BRANDS
    ]
    return InMemoryPricingCatalog(entries=entries, brands=brands)


GENERIC_BRAND_NAMES = frozenset({
    "Generic",
    "Generic Ply",
    "Generic Laminate",
    "Generic Laminate (Nimmi)",
    "Nimmi",
})


def is_generic_brand(name: Optional[str]) -> bool:
    return not name or name in GENERIC_BRAND_NAMES
