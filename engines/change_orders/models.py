"""
CASA Change Orders — Domain Models
====================================
A change order revises an issued quotation without touching it.

It carries its own items (each an addition or a credit), its own
discount, and its own totals priced with the parent's tax percent.
Once approved it is immutable and contributes its grand total to the
quotation's revised total.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from core.primitives.money import ZERO
from engines.quotation.allocator import Allocation, DiscountType
from engines.quotation.models import QuotationStatus, QuoteTotals

CHANGE_ORDER_NUMBER_PREFIX = "TRE_CO"
MAX_TITLE_LENGTH = 200


class ChangeOrderStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


CHANGE_ORDER_TRANSITIONS: Dict[ChangeOrderStatus, frozenset] = {
    ChangeOrderStatus.DRAFT: frozenset({
        ChangeOrderStatus.SENT,
        ChangeOrderStatus.APPROVED,
    }),
    ChangeOrderStatus.SENT: frozenset({
        ChangeOrderStatus.APPROVED,
        ChangeOrderStatus.REJECTED,
    }),
    ChangeOrderStatus.APPROVED: frozenset(),
    ChangeOrderStatus.REJECTED: frozenset(),
}

# Parent quotation statuses that accept new change orders.
REVISABLE_QUOTATION_STATUSES = frozenset({
    QuotationStatus.SENT,
    QuotationStatus.ACCEPTED,
    QuotationStatus.APPROVED,
})


@dataclass(frozen=True)
class ChangeOrder:
    change_order_id: uuid.UUID
    quotation_id: uuid.UUID
    change_order_number: str
    title: str
    created_at: datetime
    description: Optional[str] = None
    status: ChangeOrderStatus = ChangeOrderStatus.DRAFT
    totals: QuoteTotals = field(default_factory=QuoteTotals)
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: Decimal = ZERO
    allocation: Optional[Allocation] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    revised_total: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if not isinstance(self.change_order_id, uuid.UUID):
            raise ValueError("change_order_id must be UUID.")
        if not isinstance(self.quotation_id, uuid.UUID):
            raise ValueError("quotation_id must be UUID.")
        if not self.title or not self.title.strip():
            raise ValueError("title must be non-empty.")
        if len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"title cannot exceed {MAX_TITLE_LENGTH} characters.")
        if not isinstance(self.status, ChangeOrderStatus):
            raise ValueError("status must be ChangeOrderStatus.")
        if not isinstance(self.discount_type, DiscountType):
            raise ValueError("discount_type must be DiscountType.")
        if self.status is ChangeOrderStatus.APPROVED and self.approved_at is None:
            raise ValueError("An approved change order must carry approved_at.")

    @property
    def is_locked(self) -> bool:
        return self.status is ChangeOrderStatus.APPROVED

    @property
    def grand_total(self) -> Decimal:
        return self.allocation.grand.total if self.allocation is not None else ZERO

    def with_changes(self, **changes: Any) -> ChangeOrder:
        return replace(self, **changes)

    def summary(self) -> Dict[str, Any]:
        return {
            "change_order_number": self.change_order_number,
            "status": self.status.value,
            "discount_type": self.discount_type.value,
            "discount_value": str(self.discount_value),
            "totals": self.totals.to_dict(),
            "grand_total": str(self.grand_total),
            "revised_total": (
                str(self.revised_total) if self.revised_total is not None else None
            ),
        }
