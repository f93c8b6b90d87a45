"""
CASA Command Layer — Rejection Model
======================================
Structured rejection reasons for denied quotation operations.

Every rejection must be:
- Deterministic (same input → same rejection)
- Auditable (code + message + policy)
- Machine-readable (reason_code)
- Human-readable (message)

A rejected operation writes no partial state. Callers recover by
choosing the correct workflow (e.g. a Change Order instead of a
direct edit on an approved quotation).
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for an operation rejection.

    Fields:
        code:        Machine-readable rejection code (e.g. 'QUOTATION_LOCKED').
        message:     Human-readable explanation.
        policy_name: Name of the policy that caused rejection.

    This is serializable into audit metadata.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        """Serialize for audit metadata."""
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


class CommandRejectedError(ValueError):
    """
    Raised by services when a policy rejects an operation.

    Subclasses ValueError so request-level validation and policy
    rejections can be caught uniformly by callers.
    """

    def __init__(self, reason: RejectionReason):
        self.reason = reason
        super().__init__(f"[{reason.code}] {reason.message}")

    @property
    def code(self) -> str:
        return self.reason.code


def reject(code: str, message: str, policy_name: str) -> CommandRejectedError:
    """Build a CommandRejectedError in one call (for `raise reject(...)`)."""
    return CommandRejectedError(
        RejectionReason(code=code, message=message, policy_name=policy_name)
    )


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes. Extensible by engines.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Validation ────────────────────────────────────────────
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_DISCOUNT = "INVALID_DISCOUNT"
    INVALID_DIMENSIONS = "INVALID_DIMENSIONS"
    INVALID_CALC_MODE = "INVALID_CALC_MODE"
    UNIT_LOCKED = "UNIT_LOCKED"
    INVALID_PAYMENT_SCHEDULE = "INVALID_PAYMENT_SCHEDULE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    # ── Lookup ────────────────────────────────────────────────
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    CHANGE_ORDER_NOT_FOUND = "CHANGE_ORDER_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"

    # ── State conflict ────────────────────────────────────────
    QUOTATION_LOCKED = "QUOTATION_LOCKED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    REPLACE_NOT_CONFIRMED = "REPLACE_NOT_CONFIRMED"
    REPLACE_INCOMPLETE = "REPLACE_INCOMPLETE"
    INVALID_WIZARD_STEP = "INVALID_WIZARD_STEP"
    QUOTATION_NOT_APPROVABLE = "QUOTATION_NOT_APPROVABLE"
    QUOTATION_NOT_APPROVED = "QUOTATION_NOT_APPROVED"
    CHANGE_ORDER_LOCKED = "CHANGE_ORDER_LOCKED"
