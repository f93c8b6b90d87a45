"""
CASA Documents - Public API
===========================
"""

from core.documents.hashing import (
    canonical_json,
    compute_document_hash,
    verify_document_hash,
)
from core.documents.provider import (
    DocumentRenderer,
    InMemoryDocumentRenderer,
)

DOCUMENT_AGREEMENT = "AGREEMENT"

__all__ = [
    "DOCUMENT_AGREEMENT",
    "DocumentRenderer",
    "InMemoryDocumentRenderer",
    "canonical_json",
    "compute_document_hash",
    "verify_document_hash",
]
