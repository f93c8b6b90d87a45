"""
CASA Quotation — Domain Models
================================
Quotation, totals, signoff, approval snapshot and agreement.

All models are frozen. Services replace whole values; nothing is
patched in place.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from core.primitives.money import ZERO, to_decimal
from engines.pricing.items import BuildType
from engines.quotation.allocator import Allocation, DiscountType
from engines.quotation.terms import Terms

QUOTE_NUMBER_PREFIX = "TRE_QT"
DEFAULT_COMPANY_NAME = "TRECASA DESIGN STUDIO"


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class QuotationStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class TemplateState(Enum):
    IDLE = "idle"
    REPLACE_PENDING = "replace_pending"


class PricingView(Enum):
    LIVE = "live"      # derived from current rules and catalog
    FROZEN = "frozen"  # derived from the approval snapshot


ALLOWED_TRANSITIONS: Dict[QuotationStatus, frozenset] = {
    QuotationStatus.DRAFT: frozenset({
        QuotationStatus.SENT,
        QuotationStatus.APPROVED,
        QuotationStatus.CANCELLED,
    }),
    QuotationStatus.SENT: frozenset({
        QuotationStatus.ACCEPTED,
        QuotationStatus.APPROVED,
        QuotationStatus.REJECTED,
        QuotationStatus.CANCELLED,
    }),
    QuotationStatus.ACCEPTED: frozenset({
        QuotationStatus.APPROVED,
        QuotationStatus.CANCELLED,
    }),
    QuotationStatus.APPROVED: frozenset(),
    QuotationStatus.REJECTED: frozenset(),
    QuotationStatus.CANCELLED: frozenset(),
}

APPROVABLE_STATUSES = frozenset({
    QuotationStatus.DRAFT,
    QuotationStatus.SENT,
    QuotationStatus.ACCEPTED,
})


def generate_document_number(prefix: str, issued_at: datetime, token: uuid.UUID) -> str:
    """PREFIX_YYMMDD_XXXX, e.g. TRE_QT_250113_A1B2."""
    return f"{prefix}_{issued_at.strftime('%y%m%d')}_{token.hex[:4].upper()}"


# ══════════════════════════════════════════════════════════════
# TOTALS / SIGNOFF
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class QuoteTotals:
    interiors_subtotal: Decimal = ZERO
    fc_subtotal: Decimal = ZERO
    grand_subtotal: Decimal = ZERO
    updated_at: int = 0  # epoch millis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interiors_subtotal": str(self.interiors_subtotal),
            "fc_subtotal": str(self.fc_subtotal),
            "grand_subtotal": str(self.grand_subtotal),
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> QuoteTotals:
        return cls(
            interiors_subtotal=to_decimal(data["interiors_subtotal"]),
            fc_subtotal=to_decimal(data["fc_subtotal"]),
            grand_subtotal=to_decimal(data["grand_subtotal"]),
            updated_at=int(data.get("updated_at", 0)),
        )

    def same_amounts(self, other: QuoteTotals) -> bool:
        return (
            self.interiors_subtotal == other.interiors_subtotal
            and self.fc_subtotal == other.fc_subtotal
            and self.grand_subtotal == other.grand_subtotal
        )


@dataclass(frozen=True)
class Signature:
    name: str = ""
    title: str = ""
    signature: str = ""
    signed_at: Optional[datetime] = None

    @property
    def is_signed(self) -> bool:
        return bool(self.signature) and self.signed_at is not None


@dataclass(frozen=True)
class Signoff:
    client: Signature = field(default_factory=Signature)
    company: Signature = field(
        default_factory=lambda: Signature(name=DEFAULT_COMPANY_NAME)
    )
    accepted: bool = False
    accepted_at: Optional[datetime] = None


# ══════════════════════════════════════════════════════════════
# APPROVAL SNAPSHOT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ApprovalSnapshot:
    """
    Pricing configuration and totals frozen at approval.

    Later edits to the catalog, brand adders or tax percent never
    touch an approved quotation; frozen reads come from here.
    """

    global_rules: Dict[str, Any]
    brands_selected: Dict[str, Tuple[Dict[str, Any], ...]]
    rates_by_item_key: Dict[str, Dict[str, Any]]
    base_rates: Dict[str, str]
    allocation: Allocation
    totals: QuoteTotals
    fingerprint: str
    captured_at: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.allocation, Allocation):
            raise TypeError("allocation must be Allocation.")
        if not isinstance(self.fingerprint, str) or len(self.fingerprint) != 64:
            raise ValueError("fingerprint must be a 64-character hex digest.")
        if self.captured_at.tzinfo is None:
            raise ValueError("captured_at must be timezone-aware.")

    @property
    def tax_percent(self) -> Decimal:
        return self.allocation.tax_percent

    @property
    def grand_total(self) -> Decimal:
        return self.allocation.grand.total

    def payload(self) -> Dict[str, Any]:
        """Hashable content (everything except the fingerprint itself)."""
        return {
            "global_rules": self.global_rules,
            "brands_selected": {k: list(v) for k, v in self.brands_selected.items()},
            "rates_by_item_key": self.rates_by_item_key,
            "base_rates": self.base_rates,
            "allocation": self.allocation.to_dict(),
            "totals": self.totals.to_dict(),
        }


# ══════════════════════════════════════════════════════════════
# QUOTATION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Quotation:
    quotation_id: uuid.UUID
    quote_number: str
    project_name: str
    client_name: str
    created_at: datetime
    project_type: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    project_address: Optional[str] = None
    build_type: BuildType = BuildType.HANDMADE
    status: QuotationStatus = QuotationStatus.DRAFT
    totals: QuoteTotals = field(default_factory=QuoteTotals)
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: Decimal = ZERO
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    snapshot: Optional[ApprovalSnapshot] = None
    signoff: Signoff = field(default_factory=Signoff)
    terms: Terms = field(default_factory=Terms)
    template_state: TemplateState = TemplateState.IDLE

    def __post_init__(self) -> None:
        if not isinstance(self.quotation_id, uuid.UUID):
            raise ValueError("quotation_id must be UUID.")
        if not self.project_name or not self.project_name.strip():
            raise ValueError("project_name must be non-empty.")
        if not self.client_name or not self.client_name.strip():
            raise ValueError("client_name must be non-empty.")
        if not isinstance(self.build_type, BuildType):
            raise ValueError("build_type must be BuildType.")
        if not isinstance(self.status, QuotationStatus):
            raise ValueError("status must be QuotationStatus.")
        if not isinstance(self.discount_type, DiscountType):
            raise ValueError("discount_type must be DiscountType.")
        if self.status is QuotationStatus.APPROVED and self.snapshot is None:
            raise ValueError("An approved quotation must carry a snapshot.")

    @property
    def is_locked(self) -> bool:
        return self.status is QuotationStatus.APPROVED

    def with_changes(self, **changes: Any) -> Quotation:
        return replace(self, **changes)

    def summary(self) -> Dict[str, Any]:
        """Compact before/after view for audit entries."""
        return {
            "quote_number": self.quote_number,
            "status": self.status.value,
            "discount_type": self.discount_type.value,
            "discount_value": str(self.discount_value),
            "totals": self.totals.to_dict(),
        }


# ══════════════════════════════════════════════════════════════
# AGREEMENT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ScheduledPayment:
    label: str
    percent: Decimal
    amount_minor: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "percent": str(self.percent),
            "amount_minor": self.amount_minor,
        }


@dataclass(frozen=True)
class Agreement:
    """Point-in-time financial record generated once at approval."""

    agreement_id: uuid.UUID
    quotation_id: uuid.UUID
    quote_number: str
    client_name: str
    project_name: str
    site_address: Optional[str]
    amount_before_tax: int
    tax_percent: Decimal
    tax_amount: int
    grand_total: int
    payment_schedule: Tuple[ScheduledPayment, ...]
    terms: Tuple[str, ...]
    materials: Tuple[str, ...]
    document_hash: str
    generated_at: datetime
    signed_by_client: bool = False
    signed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("amount_before_tax", "tax_amount", "grand_total"):
            if not isinstance(getattr(self, name), int):
                raise ValueError(f"{name} must be integer minor units.")
        if self.amount_before_tax + self.tax_amount != self.grand_total:
            raise ValueError("grand_total must equal amount_before_tax + tax_amount.")
        if self.payment_schedule and (
            sum(p.amount_minor for p in self.payment_schedule) != self.grand_total
        ):
            raise ValueError("Payment schedule must sum to grand_total.")

    def payload(self) -> Dict[str, Any]:
        return {
            "quotation_id": str(self.quotation_id),
            "quote_number": self.quote_number,
            "client_name": self.client_name,
            "project_name": self.project_name,
            "site_address": self.site_address,
            "amount_before_tax": self.amount_before_tax,
            "tax_percent": str(self.tax_percent),
            "tax_amount": self.tax_amount,
            "grand_total": self.grand_total,
            "payment_schedule": [p.to_dict() for p in self.payment_schedule],
            "terms": list(self.terms),
            "materials": list(self.materials),
        }
