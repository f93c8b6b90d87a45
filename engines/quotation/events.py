"""CASA Quotation Engine - audit actions and entry builders."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from core.audit import AuditEntry, create_audit_entry
from engines.pricing.items import LineItem
from engines.pricing.resolver import BrandMiss
from engines.quotation.models import Quotation

SECTION_QUOTES = "Quotes"
SECTION_RATES = "Rates"
SECTION_AGREEMENT = "Agreement"

QUOTATION_CREATED = "QUOTATION_CREATED"
ITEM_ADDED = "ITEM_ADDED"
ITEM_UPDATED = "ITEM_UPDATED"
ITEM_DELETED = "ITEM_DELETED"
RATE_OVERRIDE_APPLIED = "RATE_OVERRIDE_APPLIED"
RATE_OVERRIDE_CLEARED = "RATE_OVERRIDE_CLEARED"
DISCOUNT_CHANGED = "DISCOUNT_CHANGED"
BRAND_FALLBACK = "BRAND_FALLBACK"
STATUS_CHANGED = "STATUS_CHANGED"
QUOTATION_APPROVED = "QUOTATION_APPROVED"
APPROVAL_ABORTED = "APPROVAL_ABORTED"
AGREEMENT_RENDER_FAILED = "AGREEMENT_RENDER_FAILED"
SIGNATURE_RECORDED = "SIGNATURE_RECORDED"
TERMS_UPDATED = "TERMS_UPDATED"


def _item_view(item: Optional[LineItem]) -> Optional[dict]:
    if item is None:
        return None
    return {
        "room_type": item.room_label,
        "description": item.description,
        "calc": item.calc,
        "rate_auto": item.rate_auto,
        "rate_override": item.rate_override,
        "is_rate_overridden": item.is_rate_overridden,
        "unit_price": item.unit_price,
        "total_price": item.total_price,
    }


def build_quotation_entry(
    *,
    actor_id: str,
    action: str,
    quotation: Quotation,
    summary: str,
    occurred_at: datetime,
    before: Optional[Quotation] = None,
    metadata: Optional[dict] = None,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_QUOTES,
        action=action,
        target_id=str(quotation.quotation_id),
        summary=summary,
        occurred_at=occurred_at,
        before=before.summary() if before is not None else None,
        after=quotation.summary(),
        metadata=metadata,
    )


def build_item_entry(
    *,
    actor_id: str,
    action: str,
    quotation: Quotation,
    occurred_at: datetime,
    before: Optional[LineItem] = None,
    after: Optional[LineItem] = None,
) -> AuditEntry:
    item = after or before
    section = SECTION_RATES if action in (
        RATE_OVERRIDE_APPLIED, RATE_OVERRIDE_CLEARED,
    ) else SECTION_QUOTES
    return create_audit_entry(
        actor_id=actor_id,
        section=section,
        action=action,
        target_id=str(quotation.quotation_id),
        summary=(
            f"{action.replace('_', ' ').capitalize()}: "
            f"{item.description or item.kind.value} in {item.room_label} "
            f"({quotation.quote_number})"
        ),
        occurred_at=occurred_at,
        before=_item_view(before),
        after=_item_view(after),
        metadata={"item_id": str(item.item_id), "kind": item.kind},
    )


def build_discount_changed_entry(
    *,
    actor_id: str,
    before: Quotation,
    after: Quotation,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_QUOTES,
        action=DISCOUNT_CHANGED,
        target_id=str(after.quotation_id),
        summary=(
            f"Discount changed on {after.quote_number}: "
            f"{before.discount_value} {before.discount_type.value} → "
            f"{after.discount_value} {after.discount_type.value}"
        ),
        occurred_at=occurred_at,
        before={
            "discount_type": before.discount_type,
            "discount_value": before.discount_value,
        },
        after={
            "discount_type": after.discount_type,
            "discount_value": after.discount_value,
        },
    )


def build_brand_fallback_entry(
    *,
    actor_id: str,
    target_id: str,
    item: LineItem,
    misses: Iterable[BrandMiss],
    occurred_at: datetime,
) -> AuditEntry:
    misses = tuple(misses)
    names = ", ".join(f"{m.brand_type.value}:{m.name}" for m in misses)
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_RATES,
        action=BRAND_FALLBACK,
        target_id=target_id,
        summary=f"Unknown brand(s) priced at zero adder: {names}",
        occurred_at=occurred_at,
        metadata={
            "item_id": str(item.item_id),
            "misses": [m.to_dict() for m in misses],
        },
    )


def build_approval_aborted_entry(
    *,
    actor_id: str,
    quotation: Quotation,
    error: str,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_QUOTES,
        action=APPROVAL_ABORTED,
        target_id=str(quotation.quotation_id),
        summary=f"Approval of {quotation.quote_number} aborted: snapshot incomplete",
        occurred_at=occurred_at,
        status="ERROR",
        before=quotation.summary(),
        metadata={"error": error},
    )


def build_render_failed_entry(
    *,
    actor_id: str,
    quotation: Quotation,
    agreement_id: str,
    error: str,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_AGREEMENT,
        action=AGREEMENT_RENDER_FAILED,
        target_id=str(quotation.quotation_id),
        summary=f"Agreement for {quotation.quote_number} was not rendered",
        occurred_at=occurred_at,
        status="ERROR",
        metadata={"agreement_id": agreement_id, "error": error},
    )


def build_signature_entry(
    *,
    actor_id: str,
    quotation: Quotation,
    party: str,
    name: str,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_AGREEMENT,
        action=SIGNATURE_RECORDED,
        target_id=str(quotation.quotation_id),
        summary=f"{party.capitalize()} signature by {name} on {quotation.quote_number}",
        occurred_at=occurred_at,
        after={"party": party, "name": name, "accepted": quotation.signoff.accepted},
    )
