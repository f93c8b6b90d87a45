"""
CASA Pricing — Line Item Model
================================
A single priced row on a quotation or change order.

Three variants share one shape, distinguished by `kind`:
- INTERIOR       — joinery priced per square foot from the rate catalog
- FALSE_CEILING  — ceiling area (L × W) at a directly entered unit price
- OTHER          — painting, lights, fan hooks: lump sum or count

RULES (NON-NEGOTIABLE):
- total_price = unit_price × quantity (area, count, or 1)
- is_rate_overridden ⇒ unit_price = rate_override, else unit_price = rate_auto
- Dimensions, quantities and prices are never negative
- Change-order items carry a change_type that signs their total
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from core.primitives.money import ZERO, optional_decimal, to_decimal


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class ItemKind(Enum):
    INTERIOR = "interior"
    FALSE_CEILING = "false_ceiling"
    OTHER = "other"


class CalcMode(Enum):
    SQFT = "SQFT"    # Area: L×H (interior) or L×W (false ceiling)
    COUNT = "COUNT"  # Unit count
    LSUM = "LSUM"    # Lump sum, quantity is always 1


class BuildType(Enum):
    HANDMADE = "handmade"
    FACTORY = "factory"


class ChangeType(Enum):
    ADDITION = "addition"
    CREDIT = "credit"


def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValueError(
            f"{field_name} '{value}' is not a valid {enum_cls.__name__}."
        ) from exc


_DECIMAL_FIELDS = (
    "length", "height", "width", "quantity", "direct_price", "rate_override",
)


# ══════════════════════════════════════════════════════════════
# LINE ITEM
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LineItem:
    """
    Immutable line item. Pricing fields (rate_auto, unit_price,
    total_price) are derived by the rate resolver; use
    engines.pricing.resolver.price_line_item to refresh them.
    """

    item_id: uuid.UUID
    owner_id: uuid.UUID
    kind: ItemKind
    room_type: Optional[str] = None
    description: str = ""
    calc: CalcMode = CalcMode.SQFT
    item_key: Optional[str] = None
    length: Optional[Decimal] = None
    height: Optional[Decimal] = None
    width: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    direct_price: Optional[Decimal] = None
    build_type: Optional[BuildType] = None
    material: Optional[str] = None
    finish: Optional[str] = None
    hardware: Optional[str] = None
    item_type: Optional[str] = None
    rate_auto: Decimal = ZERO
    rate_override: Optional[Decimal] = None
    is_rate_overridden: bool = False
    unit_price: Decimal = ZERO
    total_price: Decimal = ZERO
    change_type: Optional[ChangeType] = None
    sort_order: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.item_id, uuid.UUID):
            raise ValueError("item_id must be UUID.")
        if not isinstance(self.owner_id, uuid.UUID):
            raise ValueError("owner_id must be UUID.")

        object.__setattr__(self, "kind", _coerce_enum(ItemKind, self.kind, "kind"))
        if self.kind is None:
            raise ValueError("kind is required.")
        calc = _coerce_enum(CalcMode, self.calc, "calc")
        if calc is None:
            raise ValueError("calc is required.")
        object.__setattr__(self, "calc", calc)
        object.__setattr__(
            self, "build_type",
            _coerce_enum(BuildType, self.build_type, "build_type"),
        )
        object.__setattr__(
            self, "change_type",
            _coerce_enum(ChangeType, self.change_type, "change_type"),
        )

        for name in _DECIMAL_FIELDS:
            value = optional_decimal(getattr(self, name), field_name=name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}.")
            object.__setattr__(self, name, value)
        for name in ("rate_auto", "unit_price", "total_price"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), field_name=name))

        if self.room_type is not None and not isinstance(self.room_type, str):
            raise ValueError("room_type must be a string or None.")
        if not isinstance(self.is_rate_overridden, bool):
            raise ValueError("is_rate_overridden must be bool.")
        if self.is_rate_overridden and self.rate_override is None:
            raise ValueError("is_rate_overridden requires rate_override.")

    # ── derived ──────────────────────────────────────────────

    @property
    def is_credit(self) -> bool:
        return self.change_type is ChangeType.CREDIT

    @property
    def signed_total(self) -> Decimal:
        """Total as it folds into a subtotal: credits are negative."""
        return -self.total_price if self.is_credit else self.total_price

    @property
    def room_label(self) -> str:
        """Room bucket label; an unset room belongs to 'Other'."""
        room = (self.room_type or "").strip()
        return room or "Other"

    def with_changes(self, **changes: Any) -> LineItem:
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        def _dec(value: Optional[Decimal]) -> Optional[str]:
            return None if value is None else str(value)

        return {
            "item_id": str(self.item_id),
            "owner_id": str(self.owner_id),
            "kind": self.kind.value,
            "room_type": self.room_type,
            "description": self.description,
            "calc": self.calc.value,
            "item_key": self.item_key,
            "length": _dec(self.length),
            "height": _dec(self.height),
            "width": _dec(self.width),
            "quantity": _dec(self.quantity),
            "direct_price": _dec(self.direct_price),
            "build_type": self.build_type.value if self.build_type else None,
            "material": self.material,
            "finish": self.finish,
            "hardware": self.hardware,
            "item_type": self.item_type,
            "rate_auto": str(self.rate_auto),
            "rate_override": _dec(self.rate_override),
            "is_rate_overridden": self.is_rate_overridden,
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
            "change_type": self.change_type.value if self.change_type else None,
            "sort_order": self.sort_order,
        }
