"""
CASA Core Config — Admin-Configurable Global Rules
=====================================================
Doctrine: No hardcoded tax percents in engine logic.
Tax percent, default build type, payment schedule and regional
factors come from an admin-configured rules object, injected
read-only into every computation that needs them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, Tuple

from core.primitives.money import HUNDRED, to_decimal

BUILD_TYPES = frozenset({"handmade", "factory"})

ZERO_PERCENT = Decimal("0")
MAX_TAX_PERCENT = Decimal("28")
MAX_PER_BEDROOM_DELTA = Decimal("0.25")


# ══════════════════════════════════════════════════════════════
# RULE PARTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PaymentMilestone:
    """One stage of the client payment schedule."""

    label: str
    percent: Decimal

    def __post_init__(self) -> None:
        if not self.label or not isinstance(self.label, str):
            raise ValueError("Milestone label must be a non-empty string.")
        if not isinstance(self.percent, Decimal):
            object.__setattr__(
                self, "percent", to_decimal(self.percent, field_name="percent")
            )
        if not ZERO_PERCENT <= self.percent <= HUNDRED:
            raise ValueError(
                f"Milestone percent must be between 0 and 100, got {self.percent}."
            )

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "percent": str(self.percent)}


@dataclass(frozen=True)
class CityFactor:
    """Regional price multiplier (consumed by presentation layers)."""

    city: str
    factor: Decimal

    def __post_init__(self) -> None:
        if not self.city or not isinstance(self.city, str):
            raise ValueError("city must be a non-empty string.")
        if not isinstance(self.factor, Decimal):
            object.__setattr__(
                self, "factor", to_decimal(self.factor, field_name="factor")
            )
        if self.factor <= 0:
            raise ValueError(f"City factor must be positive, got {self.factor}.")

    def to_dict(self) -> Dict[str, Any]:
        return {"city": self.city, "factor": str(self.factor)}


DEFAULT_PAYMENT_SCHEDULE: Tuple[PaymentMilestone, ...] = (
    PaymentMilestone(label="Booking", percent=Decimal("10")),
    PaymentMilestone(label="Site Measurement", percent=Decimal("50")),
    PaymentMilestone(label="On Delivery", percent=Decimal("35")),
    PaymentMilestone(label="After Installation", percent=Decimal("5")),
)

DEFAULT_CITY_FACTORS: Tuple[CityFactor, ...] = (
    CityFactor(city="Hyderabad", factor=Decimal("1.00")),
)

DEFAULT_FOOTER_LINES: Tuple[str, ...] = (
    "TRECASA Design Studio | Luxury Interiors | Architecture | Build",
    "www.trecasadesignstudio.com | +91-XXXXXXXXXX",
)


# ══════════════════════════════════════════════════════════════
# GLOBAL RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GlobalRules:
    """
    Single application-wide configuration object.

    Bedroom scaling and city factors are carried for presentation
    layers only; the pricing core reads tax percent, default build
    type and the payment schedule.
    """

    tax_percent: Decimal = Decimal("18")
    build_type_default: str = "handmade"
    validity_days: int = 15
    bedroom_factor_base: int = 3
    per_bedroom_delta: Decimal = Decimal("0.10")
    city_factors: Tuple[CityFactor, ...] = DEFAULT_CITY_FACTORS
    payment_schedule: Tuple[PaymentMilestone, ...] = DEFAULT_PAYMENT_SCHEDULE
    footer_lines: Tuple[str, ...] = DEFAULT_FOOTER_LINES

    def __post_init__(self) -> None:
        if not isinstance(self.tax_percent, Decimal):
            object.__setattr__(
                self, "tax_percent",
                to_decimal(self.tax_percent, field_name="tax_percent"),
            )
        if not isinstance(self.per_bedroom_delta, Decimal):
            object.__setattr__(
                self, "per_bedroom_delta",
                to_decimal(self.per_bedroom_delta, field_name="per_bedroom_delta"),
            )
        object.__setattr__(self, "city_factors", tuple(self.city_factors))
        object.__setattr__(self, "payment_schedule", tuple(self.payment_schedule))
        object.__setattr__(self, "footer_lines", tuple(self.footer_lines))

        if not ZERO_PERCENT <= self.tax_percent <= MAX_TAX_PERCENT:
            raise ValueError(
                f"tax_percent must be between 0 and 28, got {self.tax_percent}."
            )
        if self.build_type_default not in BUILD_TYPES:
            raise ValueError(
                f"build_type_default '{self.build_type_default}' not in "
                f"{sorted(BUILD_TYPES)}."
            )
        if not isinstance(self.validity_days, int) or not 1 <= self.validity_days <= 90:
            raise ValueError(
                f"validity_days must be an integer 1-90, got {self.validity_days}."
            )
        if (
            not isinstance(self.bedroom_factor_base, int)
            or not 1 <= self.bedroom_factor_base <= 5
        ):
            raise ValueError(
                "bedroom_factor_base must be an integer 1-5, "
                f"got {self.bedroom_factor_base}."
            )
        if not ZERO_PERCENT <= self.per_bedroom_delta <= MAX_PER_BEDROOM_DELTA:
            raise ValueError(
                "per_bedroom_delta must be between 0 and 0.25, "
                f"got {self.per_bedroom_delta}."
            )
        for milestone in self.payment_schedule:
            if not isinstance(milestone, PaymentMilestone):
                raise TypeError("payment_schedule entries must be PaymentMilestone.")
        if self.payment_schedule:
            total = sum((m.percent for m in self.payment_schedule), ZERO_PERCENT)
            if total != HUNDRED:
                raise ValueError(
                    f"payment_schedule percents must sum to 100, got {total}."
                )
        for factor in self.city_factors:
            if not isinstance(factor, CityFactor):
                raise TypeError("city_factors entries must be CityFactor.")

    def city_factor(self, city: str) -> Decimal:
        """Multiplier for a city; unknown cities are neutral (1)."""
        for factor in self.city_factors:
            if factor.city.lower() == (city or "").lower():
                return factor.factor
        return Decimal("1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tax_percent": str(self.tax_percent),
            "build_type_default": self.build_type_default,
            "validity_days": self.validity_days,
            "bedroom_factor_base": self.bedroom_factor_base,
            "per_bedroom_delta": str(self.per_bedroom_delta),
            "city_factors": [c.to_dict() for c in self.city_factors],
            "payment_schedule": [m.to_dict() for m in self.payment_schedule],
            "footer_lines": list(self.footer_lines),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GlobalRules:
        return cls(
            tax_percent=to_decimal(data.get("tax_percent", "18")),
            build_type_default=data.get("build_type_default", "handmade"),
            validity_days=int(data.get("validity_days", 15)),
            bedroom_factor_base=int(data.get("bedroom_factor_base", 3)),
            per_bedroom_delta=to_decimal(data.get("per_bedroom_delta", "0.10")),
            city_factors=tuple(
                CityFactor(city=c["city"], factor=to_decimal(c["factor"]))
                for c in data.get("city_factors", ())
            ),
            payment_schedule=tuple(
                PaymentMilestone(label=m["label"], percent=to_decimal(m["percent"]))
                for m in data.get("payment_schedule", ())
            ),
            footer_lines=tuple(data.get("footer_lines", DEFAULT_FOOTER_LINES)),
        )


# ══════════════════════════════════════════════════════════════
# RULES PROVIDER PROTOCOL
# ══════════════════════════════════════════════════════════════

class RulesProvider(Protocol):
    """
    Read-only access to the current global rules.

    Implementations may back this with a database row, a file,
    or an in-memory object.
    """

    def get_global_rules(self) -> GlobalRules:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IN-MEMORY RULES PROVIDER (for testing / bootstrap)
# ══════════════════════════════════════════════════════════════

class InMemoryRulesProvider:
    """Simple in-memory rules provider for testing and bootstrap."""

    def __init__(self, rules: Optional[GlobalRules] = None) -> None:
        self._rules = rules or GlobalRules()

    def get_global_rules(self) -> GlobalRules:
        return self._rules

    def update(self, **changes: Any) -> GlobalRules:
        """Replace fields on the live rules (admin edit)."""
        self._rules = replace(self._rules, **changes)
        return self._rules
