"""
CASA Documents - Content Hash
==============================
Computes a deterministic SHA-256 hash over a snapshot or agreement payload.

Doctrine:
- Same payload → same hash (deterministic).
- Hash is computed over canonical JSON (sorted keys, no whitespace).
- Decimals hash by their exact string form, never via float.
- Used to fingerprint approval snapshots and detect tampering of agreements.
- This module ONLY computes. It does not persist or dispatch.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from decimal import Decimal
from enum import Enum
from typing import Any


def _canonical_value(value: Any) -> Any:
    """Recursively normalise a value for canonical JSON serialisation."""
    if value is None:
        return None
    if isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return _canonical_value(value.value)
    if isinstance(value, float):
        raise ValueError("Floats are not hashable payload values; use Decimal.")
    if isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _canonical_value(v) for k, v in sorted(value.items())}
    return str(value)


def canonical_json(value: Any) -> str:
    """
    Produce a canonical (sorted-keys, no-whitespace) JSON string.

    Raises ValueError for values that cannot be serialised.
    """
    normalised = _canonical_value(value)
    return json.dumps(normalised, separators=(",", ":"), ensure_ascii=True)


def compute_document_hash(payload: dict) -> str:
    """
    SHA-256 hex digest over the canonical JSON of payload.

    Returns: lowercase hex string, 64 characters.
    """
    if not isinstance(payload, dict):
        raise ValueError("payload must be a dict.")
    canonical = canonical_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def verify_document_hash(payload: dict, expected_hash: str) -> bool:
    """Constant-time comparison of a payload against a stored hash."""
    if not isinstance(expected_hash, str) or len(expected_hash) != 64:
        return False
    actual = compute_document_hash(payload)
    return hmac.compare_digest(actual.lower(), expected_hash.lower())
