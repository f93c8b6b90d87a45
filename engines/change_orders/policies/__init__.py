"""CASA Change Orders - policies."""

from __future__ import annotations

import uuid
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from engines.change_orders.models import (
    CHANGE_ORDER_TRANSITIONS,
    REVISABLE_QUOTATION_STATUSES,
    ChangeOrder,
    ChangeOrderStatus,
)
from engines.quotation.models import Quotation


def change_order_must_exist_policy(
    change_order: Optional[ChangeOrder], change_order_id: uuid.UUID
) -> RejectionReason | None:
    if change_order is None:
        return RejectionReason(
            code=ReasonCode.CHANGE_ORDER_NOT_FOUND,
            message=f"Change order '{change_order_id}' not found.",
            policy_name="change_order_must_exist_policy",
        )
    return None


def change_order_must_not_be_locked_policy(change_order: ChangeOrder) -> RejectionReason | None:
    if change_order.is_locked:
        return RejectionReason(
            code=ReasonCode.CHANGE_ORDER_LOCKED,
            message=f"Change order {change_order.change_order_number} is approved.",
            policy_name="change_order_must_not_be_locked_policy",
        )
    return None


def quotation_must_accept_change_orders_policy(quotation: Quotation) -> RejectionReason | None:
    if quotation.status not in REVISABLE_QUOTATION_STATUSES:
        return RejectionReason(
            code=ReasonCode.QUOTATION_NOT_APPROVABLE,
            message=(
                f"Quotation {quotation.quote_number} is '{quotation.status.value}'; "
                "change orders need a sent, accepted or approved quotation."
            ),
            policy_name="quotation_must_accept_change_orders_policy",
        )
    return None


def change_order_transition_must_be_allowed_policy(
    change_order: ChangeOrder, target: ChangeOrderStatus
) -> RejectionReason | None:
    if target not in CHANGE_ORDER_TRANSITIONS[change_order.status]:
        return RejectionReason(
            code=ReasonCode.INVALID_STATUS_TRANSITION,
            message=(
                f"Cannot move {change_order.change_order_number} from "
                f"'{change_order.status.value}' to '{target.value}'."
            ),
            policy_name="change_order_transition_must_be_allowed_policy",
        )
    return None
