"""CASA Quotation Engine - request dataclasses.

Requests validate in __post_init__ and raise CommandRejectedError
(a ValueError) carrying the reason code, so a malformed request is
refused before any state is read or written.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from core.commands.rejection import ReasonCode, reject
from core.primitives.money import HUNDRED, optional_decimal, to_decimal
from engines.pricing.items import BuildType, CalcMode, ChangeType, ItemKind
from engines.quotation.allocator import DiscountType
from engines.quotation.models import QuotationStatus

VALID_SIGNATURE_PARTIES = frozenset({"client", "company"})
VALID_TERMS_SECTIONS = frozenset({"interiors", "false_ceiling"})

DIMENSION_FIELDS = ("length", "height", "width", "quantity", "direct_price")
TEXT_FIELDS = (
    "room_type", "description", "item_key", "material", "finish",
    "hardware", "item_type",
)
EDITABLE_ITEM_FIELDS = frozenset(
    DIMENSION_FIELDS + TEXT_FIELDS + ("calc", "build_type", "sort_order")
)
# Only change-order items carry an addition/credit sign.
CHANGE_ORDER_ITEM_FIELDS = EDITABLE_ITEM_FIELDS | {"change_type"}


def _enum(enum_cls, value, code: str, field_name: str, policy: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise reject(code, f"{field_name} '{value}' is not valid.", policy) from None


def _dimension(value, field_name: str, policy: str) -> Optional[Decimal]:
    try:
        result = optional_decimal(value, field_name=field_name)
    except ValueError as exc:
        raise reject(ReasonCode.INVALID_DIMENSIONS, str(exc), policy) from None
    if result is not None and result < 0:
        raise reject(
            ReasonCode.INVALID_DIMENSIONS,
            f"{field_name} cannot be negative, got {result}.",
            policy,
        )
    return result


def normalize_item_fields(
    values: Mapping[str, Any],
    policy: str,
    allowed: frozenset = EDITABLE_ITEM_FIELDS,
) -> Dict[str, Any]:
    """Validate and coerce editable line-item fields."""
    unknown = set(values) - allowed
    if unknown:
        raise reject(
            ReasonCode.INVALID_REQUEST,
            f"Fields not editable: {sorted(unknown)}.",
            policy,
        )
    normalized: Dict[str, Any] = {}
    for name, value in values.items():
        if name in DIMENSION_FIELDS:
            normalized[name] = _dimension(value, name, policy)
        elif name == "calc":
            calc = _enum(CalcMode, value, ReasonCode.INVALID_CALC_MODE, "calc", policy)
            if calc is None:
                raise reject(ReasonCode.INVALID_CALC_MODE, "calc is required.", policy)
            normalized[name] = calc
        elif name == "build_type":
            normalized[name] = _enum(
                BuildType, value, ReasonCode.INVALID_REQUEST, "build_type", policy
            )
        elif name == "change_type":
            normalized[name] = _enum(
                ChangeType, value, ReasonCode.INVALID_REQUEST, "change_type", policy
            )
        elif name == "sort_order":
            if not isinstance(value, int) or isinstance(value, bool):
                raise reject(ReasonCode.INVALID_REQUEST, "sort_order must be int.", policy)
            normalized[name] = value
        else:
            if value is not None and not isinstance(value, str):
                raise reject(ReasonCode.INVALID_REQUEST, f"{name} must be text.", policy)
            normalized[name] = value
    return normalized


# ══════════════════════════════════════════════════════════════
# QUOTATION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateQuotationRequest:
    project_name: str
    client_name: str
    project_type: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    project_address: Optional[str] = None
    build_type: Optional[BuildType] = None

    def __post_init__(self):
        if not self.project_name or not self.project_name.strip():
            raise reject(
                ReasonCode.INVALID_REQUEST, "project_name must be non-empty.",
                "CreateQuotationRequest",
            )
        if not self.client_name or not self.client_name.strip():
            raise reject(
                ReasonCode.INVALID_REQUEST, "client_name must be non-empty.",
                "CreateQuotationRequest",
            )
        object.__setattr__(
            self, "build_type",
            _enum(BuildType, self.build_type, ReasonCode.INVALID_REQUEST,
                  "build_type", "CreateQuotationRequest"),
        )


@dataclass(frozen=True)
class AddItemRequest:
    kind: ItemKind
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        kind = _enum(ItemKind, self.kind, ReasonCode.INVALID_REQUEST, "kind",
                     "AddItemRequest")
        if kind is None:
            raise reject(ReasonCode.INVALID_REQUEST, "kind is required.", "AddItemRequest")
        object.__setattr__(self, "kind", kind)
        normalized = normalize_item_fields(self.fields, "AddItemRequest")
        normalized.setdefault("calc", CalcMode.SQFT)
        object.__setattr__(self, "fields", normalized)


@dataclass(frozen=True)
class UpdateItemRequest:
    item_id: uuid.UUID
    changes: Mapping[str, Any]

    def __post_init__(self):
        if not isinstance(self.item_id, uuid.UUID):
            raise reject(ReasonCode.INVALID_REQUEST, "item_id must be UUID.",
                         "UpdateItemRequest")
        if not self.changes:
            raise reject(ReasonCode.INVALID_REQUEST, "changes must be non-empty.",
                         "UpdateItemRequest")
        object.__setattr__(
            self, "changes", normalize_item_fields(self.changes, "UpdateItemRequest")
        )


@dataclass(frozen=True)
class RateOverrideRequest:
    item_id: uuid.UUID
    rate: Decimal

    def __post_init__(self):
        if not isinstance(self.item_id, uuid.UUID):
            raise reject(ReasonCode.INVALID_REQUEST, "item_id must be UUID.",
                         "RateOverrideRequest")
        try:
            rate = to_decimal(self.rate, field_name="rate")
        except ValueError as exc:
            raise reject(ReasonCode.INVALID_REQUEST, str(exc), "RateOverrideRequest") from None
        if rate < 0:
            raise reject(ReasonCode.INVALID_REQUEST, "rate cannot be negative.",
                         "RateOverrideRequest")
        object.__setattr__(self, "rate", rate)


@dataclass(frozen=True)
class SetDiscountRequest:
    discount_type: DiscountType
    discount_value: Decimal

    def __post_init__(self):
        discount_type = _enum(DiscountType, self.discount_type,
                              ReasonCode.INVALID_DISCOUNT, "discount_type",
                              "SetDiscountRequest")
        if discount_type is None:
            raise reject(ReasonCode.INVALID_DISCOUNT, "discount_type is required.",
                         "SetDiscountRequest")
        try:
            value = to_decimal(self.discount_value, field_name="discount_value")
        except ValueError as exc:
            raise reject(ReasonCode.INVALID_DISCOUNT, str(exc), "SetDiscountRequest") from None
        if value < 0:
            raise reject(ReasonCode.INVALID_DISCOUNT, "discount_value cannot be negative.",
                         "SetDiscountRequest")
        if discount_type is DiscountType.PERCENT and value > HUNDRED:
            raise reject(ReasonCode.INVALID_DISCOUNT, "percent discount cannot exceed 100.",
                         "SetDiscountRequest")
        object.__setattr__(self, "discount_type", discount_type)
        object.__setattr__(self, "discount_value", value)


@dataclass(frozen=True)
class StatusTransitionRequest:
    target_status: QuotationStatus

    def __post_init__(self):
        status = _enum(QuotationStatus, self.target_status, ReasonCode.INVALID_REQUEST,
                       "target_status", "StatusTransitionRequest")
        if status is None:
            raise reject(ReasonCode.INVALID_REQUEST, "target_status is required.",
                         "StatusTransitionRequest")
        object.__setattr__(self, "target_status", status)


@dataclass(frozen=True)
class SignatureRequest:
    party: str
    name: str
    signature: str
    title: str = ""

    def __post_init__(self):
        if self.party not in VALID_SIGNATURE_PARTIES:
            raise reject(ReasonCode.INVALID_SIGNATURE, f"party '{self.party}' is not valid.",
                         "SignatureRequest")
        if not self.name or not self.name.strip():
            raise reject(ReasonCode.INVALID_SIGNATURE, "name must be non-empty.",
                         "SignatureRequest")
        if not self.signature or not self.signature.strip():
            raise reject(ReasonCode.INVALID_SIGNATURE, "signature must be non-empty.",
                         "SignatureRequest")


@dataclass(frozen=True)
class UpdateTermsRequest:
    section: str
    use_default: bool = True
    custom_text: str = ""
    valid_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_schedule: Optional[str] = None

    def __post_init__(self):
        if self.section not in VALID_TERMS_SECTIONS:
            raise reject(ReasonCode.INVALID_REQUEST, f"section '{self.section}' is not valid.",
                         "UpdateTermsRequest")
        if not self.use_default and not (self.custom_text or "").strip():
            raise reject(ReasonCode.INVALID_REQUEST,
                         "custom_text is required when use_default is False.",
                         "UpdateTermsRequest")
        if self.valid_days is not None and (
            not isinstance(self.valid_days, int) or not 1 <= self.valid_days <= 90
        ):
            raise reject(ReasonCode.INVALID_REQUEST, "valid_days must be integer 1-90.",
                         "UpdateTermsRequest")
        if self.warranty_months is not None and (
            not isinstance(self.warranty_months, int) or self.warranty_months < 0
        ):
            raise reject(ReasonCode.INVALID_REQUEST, "warranty_months must be integer >= 0.",
                         "UpdateTermsRequest")
