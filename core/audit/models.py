"""
CASA Core Audit — Immutable Audit Models
==========================================
Append-only before/after summaries of mutating quotation operations.
These are frozen dataclasses — once created, never modified.
Persisting them is the job of an external audit log.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol


VALID_AUDIT_STATUSES = frozenset({"EXECUTED", "REJECTED", "ERROR"})

VALID_AUDIT_SECTIONS = frozenset({
    "Quotes",
    "ChangeOrders",
    "Templates",
    "Agreement",
    "Rates",
})


# ══════════════════════════════════════════════════════════════
# AUDIT LOG ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable record of an action taken against a quotation.

    `before` and `after` are plain JSON-like summaries of the
    affected state; either may be None (create / delete).
    """

    entry_id: uuid.UUID
    actor_id: str
    section: str
    action: str
    target_id: str
    summary: str
    status: str  # EXECUTED | REJECTED | ERROR
    occurred_at: datetime
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.status not in VALID_AUDIT_STATUSES:
            raise ValueError(
                f"AuditEntry status must be EXECUTED|REJECTED|ERROR, got '{self.status}'."
            )
        if self.section not in VALID_AUDIT_SECTIONS:
            raise ValueError(
                f"AuditEntry section '{self.section}' not valid. "
                f"Must be one of: {sorted(VALID_AUDIT_SECTIONS)}"
            )
        if not self.action or not isinstance(self.action, str):
            raise ValueError("action must be a non-empty string.")
        if not self.summary:
            raise ValueError("summary must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "entry_id": str(self.entry_id),
            "actor_id": self.actor_id,
            "section": self.section,
            "action": self.action,
            "target_id": self.target_id,
            "summary": self.summary,
            "status": self.status,
            "occurred_at": self.occurred_at.isoformat(),
            "before": self.before,
            "after": self.after,
            "metadata": dict(self.metadata),
        }


# ══════════════════════════════════════════════════════════════
# AUDIT SINK
# ══════════════════════════════════════════════════════════════

class AuditSink(Protocol):
    """Transport-agnostic receiver of audit entries."""

    def record(self, entry: AuditEntry) -> None:
        ...  # pragma: no cover


class InMemoryAuditSink:
    """Append-only in-memory sink for tests and bootstrap."""

    def __init__(self) -> None:
        self._entries: List[AuditEntry] = []

    def record(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        return tuple(self._entries)

    def by_action(self, action: str) -> tuple[AuditEntry, ...]:
        return tuple(e for e in self._entries if e.action == action)

    def for_target(self, target_id: str) -> tuple[AuditEntry, ...]:
        return tuple(e for e in self._entries if e.target_id == target_id)
