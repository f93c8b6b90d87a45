"""
CASA Pricing Engine
====================
Rate catalog, brand adders, the rate resolver and line-item pricing.
"""

from engines.pricing.catalog import (
    DEFAULT_BASE_RATES,
    GENERIC_BRAND_NAMES,
    BrandAdjustment,
    BrandType,
    CatalogUnavailableError,
    InMemoryPricingCatalog,
    PricingCatalog,
    RateCatalogEntry,
    Unit,
    build_default_catalog,
    is_generic_brand,
)
from engines.pricing.items import (
    BuildType,
    CalcMode,
    ChangeType,
    ItemKind,
    LineItem,
)
from engines.pricing.resolver import (
    BrandMiss,
    RateResolution,
    apply_rate_override,
    bypasses_resolver,
    clear_rate_override,
    compute_quantity,
    effective_build_type,
    is_always_handmade,
    price_line_item,
    resolve_line_item,
    resolve_rate,
)

__all__ = [
    "DEFAULT_BASE_RATES",
    "GENERIC_BRAND_NAMES",
    "BrandAdjustment",
    "BrandMiss",
    "BrandType",
    "BuildType",
    "CalcMode",
    "CatalogUnavailableError",
    "ChangeType",
    "InMemoryPricingCatalog",
    "ItemKind",
    "LineItem",
    "PricingCatalog",
    "RateCatalogEntry",
    "RateResolution",
    "Unit",
    "apply_rate_override",
    "build_default_catalog",
    "bypasses_resolver",
    "clear_rate_override",
    "compute_quantity",
    "effective_build_type",
    "is_generic_brand",
    "is_always_handmade",
    "price_line_item",
    "resolve_line_item",
    "resolve_rate",
]
