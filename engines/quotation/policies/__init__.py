"""CASA Quotation Engine - policies."""

from __future__ import annotations

import uuid
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.config.rules import GlobalRules
from engines.pricing.items import LineItem
from engines.quotation.models import (
    ALLOWED_TRANSITIONS,
    APPROVABLE_STATUSES,
    Quotation,
    QuotationStatus,
    TemplateState,
)


def quotation_must_exist_policy(
    quotation: Optional[Quotation], quotation_id: uuid.UUID
) -> RejectionReason | None:
    if quotation is None:
        return RejectionReason(
            code=ReasonCode.QUOTATION_NOT_FOUND,
            message=f"Quotation '{quotation_id}' not found.",
            policy_name="quotation_must_exist_policy",
        )
    return None


def quotation_must_not_be_locked_policy(quotation: Quotation) -> RejectionReason | None:
    if quotation.is_locked:
        return RejectionReason(
            code=ReasonCode.QUOTATION_LOCKED,
            message=(
                f"Quotation {quotation.quote_number} is approved; "
                "raise a change order instead."
            ),
            policy_name="quotation_must_not_be_locked_policy",
        )
    return None


def status_transition_must_be_allowed_policy(
    quotation: Quotation, target: QuotationStatus
) -> RejectionReason | None:
    if target not in ALLOWED_TRANSITIONS[quotation.status]:
        return RejectionReason(
            code=ReasonCode.INVALID_STATUS_TRANSITION,
            message=(
                f"Cannot move {quotation.quote_number} from "
                f"'{quotation.status.value}' to '{target.value}'."
            ),
            policy_name="status_transition_must_be_allowed_policy",
        )
    return None


def quotation_must_be_approvable_policy(quotation: Quotation) -> RejectionReason | None:
    if quotation.status not in APPROVABLE_STATUSES:
        return RejectionReason(
            code=ReasonCode.QUOTATION_NOT_APPROVABLE,
            message=(
                f"Quotation {quotation.quote_number} in status "
                f"'{quotation.status.value}' cannot be approved."
            ),
            policy_name="quotation_must_be_approvable_policy",
        )
    return None


def quotation_must_be_approved_policy(quotation: Quotation) -> RejectionReason | None:
    if quotation.snapshot is None:
        return RejectionReason(
            code=ReasonCode.QUOTATION_NOT_APPROVED,
            message=f"Quotation {quotation.quote_number} has no approval snapshot.",
            policy_name="quotation_must_be_approved_policy",
        )
    return None


def replace_must_not_be_pending_policy(quotation: Quotation) -> RejectionReason | None:
    if quotation.template_state is TemplateState.REPLACE_PENDING:
        return RejectionReason(
            code=ReasonCode.REPLACE_INCOMPLETE,
            message=(
                f"A template replace on {quotation.quote_number} did not finish; "
                "re-run replace to completion."
            ),
            policy_name="replace_must_not_be_pending_policy",
        )
    return None


def item_must_belong_to_owner_policy(
    item: Optional[LineItem], item_id: uuid.UUID, owner_id: uuid.UUID
) -> RejectionReason | None:
    if item is None or item.owner_id != owner_id:
        return RejectionReason(
            code=ReasonCode.ITEM_NOT_FOUND,
            message=f"Line item '{item_id}' not found on '{owner_id}'.",
            policy_name="item_must_belong_to_owner_policy",
        )
    return None


def payment_schedule_must_be_configured_policy(rules: GlobalRules) -> RejectionReason | None:
    if not rules.payment_schedule:
        return RejectionReason(
            code=ReasonCode.INVALID_PAYMENT_SCHEDULE,
            message="No payment milestones are configured; an agreement cannot be issued.",
            policy_name="payment_schedule_must_be_configured_policy",
        )
    return None
