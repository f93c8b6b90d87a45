"""
CASA Quotation — Approval Snapshot & Agreement
================================================
Freezes the pricing configuration and computed totals at approval
and derives the Agreement from them.

Snapshot contents:
- global rules in effect
- brands selected on the quotation's interior items, with adders
- active rate entries keyed by item_key, and the default base rates
- the final allocation and totals
- a SHA-256 fingerprint over all of the above

Catalog loss while capturing is fatal: SnapshotIncompleteError is
raised and nothing is written.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from core.config.rules import GlobalRules, PaymentMilestone
from core.documents.hashing import compute_document_hash
from core.primitives.money import HUNDRED, round_rate, to_minor_units
from engines.pricing.catalog import (
    BrandType,
    CatalogUnavailableError,
    PricingCatalog,
    is_generic_brand,
)
from engines.pricing.items import ItemKind, LineItem
from engines.quotation.allocator import Allocation
from engines.quotation.models import (
    Agreement,
    ApprovalSnapshot,
    Quotation,
    QuoteTotals,
    ScheduledPayment,
)
from engines.quotation.terms import render_section

logger = logging.getLogger("casa.approval")


class SnapshotIncompleteError(Exception):
    """Approval aborted: the snapshot could not be captured in full."""

    def __init__(self, quotation_id: uuid.UUID, message: str):
        self.quotation_id = quotation_id
        super().__init__(f"Approval of {quotation_id} aborted: {message}")


_BRAND_FIELDS = (
    (BrandType.CORE, "material"),
    (BrandType.FINISH, "finish"),
    (BrandType.HARDWARE, "hardware"),
)


def _brand_names(items: Iterable[LineItem]) -> Dict[BrandType, List[str]]:
    names: Dict[BrandType, set] = {brand_type: set() for brand_type, _ in _BRAND_FIELDS}
    for item in items:
        if item.kind is not ItemKind.INTERIOR:
            continue
        for brand_type, attr in _BRAND_FIELDS:
            value = getattr(item, attr)
            if value:
                names[brand_type].add(value)
    return {brand_type: sorted(values) for brand_type, values in names.items()}


def brands_selected(
    items: Iterable[LineItem],
    catalog: PricingCatalog,
) -> Dict[str, Tuple[Dict[str, str], ...]]:
    selected = {}
    for brand_type, names in _brand_names(items).items():
        rows = []
        for name in names:
            brand = catalog.get_brand(brand_type, name)
            rows.append({
                "name": name,
                "adder_per_sft": str(brand.adder_per_sft) if brand else "0",
            })
        selected[brand_type.value] = tuple(rows)
    return selected


def materials_in_use(items: Iterable[LineItem]) -> Tuple[str, ...]:
    """Non-generic brands named on interior items, core → finish → hardware."""
    names = _brand_names(items)
    materials: List[str] = []
    for brand_type, _ in _BRAND_FIELDS:
        for name in names[brand_type]:
            if not is_generic_brand(name) and name not in materials:
                materials.append(name)
    return tuple(materials)


def capture_snapshot(
    *,
    quotation: Quotation,
    items: Tuple[LineItem, ...],
    allocation: Allocation,
    totals: QuoteTotals,
    rules: GlobalRules,
    catalog: PricingCatalog,
    captured_at: datetime,
) -> ApprovalSnapshot:
    try:
        base_rates = {
            build_type.value: str(rate)
            for build_type, rate in sorted(
                catalog.base_rates().items(), key=lambda kv: kv[0].value
            )
        }
        rates_by_item_key = {
            entry.item_key: entry.to_dict() for entry in catalog.active_entries()
        }
        selected = brands_selected(items, catalog)
    except CatalogUnavailableError as exc:
        raise SnapshotIncompleteError(quotation.quotation_id, str(exc)) from exc

    payload = {
        "global_rules": rules.to_dict(),
        "brands_selected": {k: list(v) for k, v in selected.items()},
        "rates_by_item_key": rates_by_item_key,
        "base_rates": base_rates,
        "allocation": allocation.to_dict(),
        "totals": totals.to_dict(),
    }
    snapshot = ApprovalSnapshot(
        global_rules=payload["global_rules"],
        brands_selected=selected,
        rates_by_item_key=rates_by_item_key,
        base_rates=base_rates,
        allocation=allocation,
        totals=totals,
        fingerprint=compute_document_hash(payload),
        captured_at=captured_at,
    )
    logger.debug(
        f"Captured snapshot for {quotation.quote_number}: "
        f"{len(rates_by_item_key)} rates, fingerprint {snapshot.fingerprint[:12]}"
    )
    return snapshot


# ══════════════════════════════════════════════════════════════
# AGREEMENT
# ══════════════════════════════════════════════════════════════

def compute_payment_schedule(
    grand_total_minor: int,
    milestones: Tuple[PaymentMilestone, ...],
) -> Tuple[ScheduledPayment, ...]:
    """
    Per-milestone amounts in minor units. Each is rounded on its own;
    the last milestone absorbs the remainder so the schedule sums
    exactly to the grand total.
    """
    if not milestones:
        return ()
    scheduled: List[ScheduledPayment] = []
    allocated = 0
    for index, milestone in enumerate(milestones):
        if index == len(milestones) - 1:
            amount = grand_total_minor - allocated
        else:
            amount = int(
                round_rate(Decimal(grand_total_minor) * milestone.percent / HUNDRED)
            )
        allocated += amount
        scheduled.append(
            ScheduledPayment(
                label=milestone.label,
                percent=milestone.percent,
                amount_minor=amount,
            )
        )
    return tuple(scheduled)


def render_quotation_terms(quotation: Quotation) -> Tuple[str, ...]:
    context = {
        "client_name": quotation.client_name,
        "project_name": quotation.project_name,
        "quote_id": quotation.quote_number,
    }
    return (
        render_section(quotation.terms.interiors, **context)
        + render_section(quotation.terms.false_ceiling, **context)
    )


def build_agreement(
    *,
    quotation: Quotation,
    snapshot: ApprovalSnapshot,
    items: Tuple[LineItem, ...],
    rules: GlobalRules,
    generated_at: datetime,
    agreement_id: Optional[uuid.UUID] = None,
) -> Agreement:
    grand = snapshot.allocation.grand
    amount_before_tax = to_minor_units(grand.discounted)
    tax_amount = to_minor_units(grand.tax)
    grand_total = amount_before_tax + tax_amount
    schedule = compute_payment_schedule(grand_total, rules.payment_schedule)

    draft = dict(
        agreement_id=agreement_id or uuid.uuid4(),
        quotation_id=quotation.quotation_id,
        quote_number=quotation.quote_number,
        client_name=quotation.client_name,
        project_name=quotation.project_name,
        site_address=quotation.project_address,
        amount_before_tax=amount_before_tax,
        tax_percent=snapshot.tax_percent,
        tax_amount=tax_amount,
        grand_total=grand_total,
        payment_schedule=schedule,
        terms=render_quotation_terms(quotation),
        materials=materials_in_use(items),
        generated_at=generated_at,
    )
    unsigned = Agreement(document_hash="0" * 64, **draft)
    return Agreement(document_hash=compute_document_hash(unsigned.payload()), **draft)
