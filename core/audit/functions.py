"""
CASA Core Audit — Pure Audit Functions
========================================
Factory functions for creating audit entries.
All functions are pure — they return new frozen objects, never mutate.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from core.audit.models import AuditEntry


def _plain(value: Any) -> Any:
    """Reduce a summary value to JSON-friendly primitives."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


def create_audit_entry(
    actor_id: str,
    section: str,
    action: str,
    target_id: str,
    summary: str,
    occurred_at: datetime,
    status: str = "EXECUTED",
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    metadata: Optional[dict] = None,
) -> AuditEntry:
    """Create an immutable audit entry with normalized summaries."""
    return AuditEntry(
        entry_id=uuid.uuid4(),
        actor_id=actor_id,
        section=section,
        action=action,
        target_id=target_id,
        summary=summary,
        status=status,
        occurred_at=occurred_at,
        before=_plain(before) if before is not None else None,
        after=_plain(after) if after is not None else None,
        metadata=_plain(metadata or {}),
    )
