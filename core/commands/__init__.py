"""
CASA Command Layer — Rejections
=================================
Every denied operation carries a structured, auditable reason.
"""

from core.commands.rejection import (
    CommandRejectedError,
    ReasonCode,
    RejectionReason,
    reject,
)

__all__ = [
    "CommandRejectedError",
    "ReasonCode",
    "RejectionReason",
    "reject",
]
