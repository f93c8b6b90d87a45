"""CASA Templates - audit actions and entry builders."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.audit import AuditEntry, create_audit_entry
from engines.quotation.models import Quotation

SECTION_TEMPLATES = "Templates"

TEMPLATE_APPLIED = "TEMPLATE_APPLIED"
TEMPLATE_FALLBACK = "TEMPLATE_FALLBACK"


def build_template_applied_entry(
    *,
    actor_id: str,
    before: Quotation,
    after: Quotation,
    template_id: str,
    mode: str,
    created: int,
    deleted: int,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_TEMPLATES,
        action=TEMPLATE_APPLIED,
        target_id=str(after.quotation_id),
        summary=(
            f"Applied template {template_id} ({mode}) to {after.quote_number}: "
            f"{created} created, {deleted} removed"
        ),
        occurred_at=occurred_at,
        before=before.summary(),
        after=after.summary(),
        metadata={
            "template_id": template_id,
            "mode": mode,
            "created": created,
            "deleted": deleted,
        },
    )


def build_template_fallback_entry(
    *,
    actor_id: str,
    quotation: Quotation,
    requested: Optional[str],
    template_id: str,
    occurred_at: datetime,
) -> AuditEntry:
    return create_audit_entry(
        actor_id=actor_id,
        section=SECTION_TEMPLATES,
        action=TEMPLATE_FALLBACK,
        target_id=str(quotation.quotation_id),
        summary=f"No template for category '{requested}', used {template_id}",
        occurred_at=occurred_at,
        metadata={"requested": requested, "template_id": template_id},
    )
