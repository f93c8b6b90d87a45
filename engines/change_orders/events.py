"""CASA Change Orders - audit actions and entry builders."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.audit import AuditEntry, create_audit_entry
from engines.change_orders.models import ChangeOrder

SECTION_CHANGE_ORDERS = "ChangeOrders"

CHANGE_ORDER_CREATED = "CHANGE_ORDER_CREATED"
CHANGE_ORDER_ITEM_ADDED = "CHANGE_ORDER_ITEM_ADDED"
CHANGE_ORDER_ITEM_UPDATED = "CHANGE_ORDER_ITEM_UPDATED"
CHANGE_ORDER_ITEM_DELETED = "CHANGE_ORDER_ITEM_DELETED"
CHANGE_ORDER_DISCOUNT_CHANGED = "CHANGE_ORDER_DISCOUNT_CHANGED"
CHANGE_ORDER_STATUS_CHANGED = "CHANGE_ORDER_STATUS_CHANGED"
CHANGE_ORDER_APPROVED = "CHANGE_ORDER_APPROVED"
CHANGE_ORDER_DELETED = "CHANGE_ORDER_DELETED"


def build_change_order_entry(
    *,
    actor_id: str,
    action: str,
    change_order: ChangeOrder,
    summary: str,
    occurred_at: datetime,
    before: Optional[ChangeOrder] = None,
    after: Optional[ChangeOrder] = None,
    metadata: Optional[dict] = None,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_CHANGE_ORDERS,
        action=action,
        target_id=str(change_order.change_order_id),
        summary=summary,
        occurred_at=occurred_at,
        before=before.summary() if before is not None else None,
        after=after.summary() if after is not None else None,
        metadata={"quotation_id": str(change_order.quotation_id), **(metadata or {})},
    )
