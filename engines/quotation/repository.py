"""
CASA Quotation — Repositories
===============================
Persistence contracts for quotations and agreements, with
in-memory implementations for tests and bootstrap.
"""

from __future__ import annotations

import uuid
from typing import Dict, Optional, Protocol, Tuple

from engines.quotation.models import Agreement, Quotation


class QuotationRepository(Protocol):
    def get(self, quotation_id: uuid.UUID) -> Optional[Quotation]:
        ...  # pragma: no cover

    def save(self, quotation: Quotation) -> None:
        ...  # pragma: no cover

    def list_all(self) -> Tuple[Quotation, ...]:
        ...  # pragma: no cover


class AgreementRepository(Protocol):
    def get_for_quotation(self, quotation_id: uuid.UUID) -> Optional[Agreement]:
        ...  # pragma: no cover

    def save(self, agreement: Agreement) -> None:
        ...  # pragma: no cover


class InMemoryQuotationRepository:
    def __init__(self) -> None:
        self._quotations: Dict[uuid.UUID, Quotation] = {}

    def get(self, quotation_id: uuid.UUID) -> Optional[Quotation]:
        return self._quotations.get(quotation_id)

    def save(self, quotation: Quotation) -> None:
        self._quotations[quotation.quotation_id] = quotation

    def list_all(self) -> Tuple[Quotation, ...]:
        return tuple(
            sorted(self._quotations.values(), key=lambda q: q.created_at)
        )


class InMemoryAgreementRepository:
    """One agreement per quotation; a second save for the same quotation is refused."""

    def __init__(self) -> None:
        self._agreements: Dict[uuid.UUID, Agreement] = {}

    def get_for_quotation(self, quotation_id: uuid.UUID) -> Optional[Agreement]:
        return self._agreements.get(quotation_id)

    def save(self, agreement: Agreement) -> None:
        existing = self._agreements.get(agreement.quotation_id)
        if existing is not None and existing.agreement_id != agreement.agreement_id:
            raise ValueError(
                f"Agreement already exists for quotation '{agreement.quotation_id}'."
            )
        self._agreements[agreement.quotation_id] = agreement
