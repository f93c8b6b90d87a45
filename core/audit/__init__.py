"""
CASA Core Audit — Public API
==============================
Immutable audit entries and the sink they are emitted to.
"""

from core.audit.models import AuditEntry, AuditSink, InMemoryAuditSink
from core.audit.functions import create_audit_entry

__all__ = [
    "AuditEntry",
    "AuditSink",
    "InMemoryAuditSink",
    "create_audit_entry",
]
