"""CASA Quotation Engine - application service.

Orchestrates the pricing pipeline for a single quotation:

    line items → rate resolver → aggregator → allocator → snapshot

Every mutation recomputes totals from the full current item set,
never by patching a stored total, so a recompute after a conflicting
write is always safe to re-run.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from core.audit import AuditSink
from core.commands.rejection import (
    CommandRejectedError,
    ReasonCode,
    RejectionReason,
    reject,
)
from core.config.rules import RulesProvider
from core.documents import DOCUMENT_AGREEMENT, DocumentRenderer
from core.time import Clock, epoch_millis
from engines.pricing.catalog import CatalogUnavailableError, PricingCatalog
from engines.pricing.items import BuildType, LineItem
from engines.pricing.resolver import (
    apply_rate_override,
    clear_rate_override,
    price_line_item,
    resolve_line_item,
)
from engines.quotation.aggregator import Aggregation, aggregate, split_by_kind
from engines.quotation.allocator import Allocation, allocate
from engines.quotation.approval import (
    SnapshotIncompleteError,
    build_agreement,
    capture_snapshot,
)
from engines.quotation.commands import (
    AddItemRequest,
    CreateQuotationRequest,
    RateOverrideRequest,
    SetDiscountRequest,
    SignatureRequest,
    StatusTransitionRequest,
    UpdateItemRequest,
    UpdateTermsRequest,
)
from engines.quotation.events import (
    DISCOUNT_CHANGED,
    ITEM_ADDED,
    ITEM_DELETED,
    ITEM_UPDATED,
    QUOTATION_APPROVED,
    QUOTATION_CREATED,
    RATE_OVERRIDE_APPLIED,
    RATE_OVERRIDE_CLEARED,
    STATUS_CHANGED,
    TERMS_UPDATED,
    build_approval_aborted_entry,
    build_brand_fallback_entry,
    build_discount_changed_entry,
    build_item_entry,
    build_quotation_entry,
    build_render_failed_entry,
    build_signature_entry,
)
from engines.quotation.models import (
    QUOTE_NUMBER_PREFIX,
    Agreement,
    PricingView,
    Quotation,
    QuotationStatus,
    QuoteTotals,
    Signature,
    TemplateState,
    generate_document_number,
)
from engines.quotation.policies import (
    item_must_belong_to_owner_policy,
    payment_schedule_must_be_configured_policy,
    quotation_must_be_approvable_policy,
    quotation_must_be_approved_policy,
    quotation_must_exist_policy,
    quotation_must_not_be_locked_policy,
    replace_must_not_be_pending_policy,
    status_transition_must_be_allowed_policy,
)
from engines.quotation.repository import AgreementRepository, QuotationRepository
from engines.quotation.rooms import RoomOrder
from engines.quotation.store import LineItemStore
from engines.quotation.terms import TermsVars, default_terms

logger = logging.getLogger("casa.quotation")

SYSTEM_ACTOR = "system"


def _raise_if(rejection: RejectionReason | None) -> None:
    if rejection is not None:
        raise CommandRejectedError(rejection)


def compute_totals(
    items: Tuple[LineItem, ...],
    room_order: Optional[RoomOrder] = None,
) -> Aggregation:
    interior, fc, other = split_by_kind(items)
    return aggregate(interior, fc, other, room_order)


@dataclass(frozen=True)
class QuoteSummary:
    """Totals as read through an explicitly chosen pricing view."""

    view: PricingView
    totals: QuoteTotals
    allocation: Allocation

    @property
    def grand_total(self):
        return self.allocation.grand.total


class QuotationService:
    def __init__(
        self,
        *,
        quotations: QuotationRepository,
        items: LineItemStore,
        agreements: AgreementRepository,
        catalog: PricingCatalog,
        rules: RulesProvider,
        audit: AuditSink,
        clock: Clock,
        renderer: Optional[DocumentRenderer] = None,
        room_order: Optional[RoomOrder] = None,
    ):
        self._quotations = quotations
        self._items = items
        self._agreements = agreements
        self._catalog = catalog
        self._rules = rules
        self._audit = audit
        self._clock = clock
        self._renderer = renderer
        self._room_order = room_order

    # ── lookups ──────────────────────────────────────────────

    def get_quotation(self, quotation_id: uuid.UUID) -> Quotation:
        quotation = self._quotations.get(quotation_id)
        _raise_if(quotation_must_exist_policy(quotation, quotation_id))
        return quotation

    def list_items(self, quotation_id: uuid.UUID) -> Tuple[LineItem, ...]:
        self.get_quotation(quotation_id)
        return self._items.list_for_owner(quotation_id)

    def get_agreement(self, quotation_id: uuid.UUID) -> Optional[Agreement]:
        return self._agreements.get_for_quotation(quotation_id)

    def _require_item(self, quotation: Quotation, item_id: uuid.UUID) -> LineItem:
        item = self._items.get(item_id)
        _raise_if(item_must_belong_to_owner_policy(item, item_id, quotation.quotation_id))
        return item

    def _require_editable(self, quotation_id: uuid.UUID) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        _raise_if(quotation_must_not_be_locked_policy(quotation))
        return quotation

    # ── creation ─────────────────────────────────────────────

    def create_quotation(
        self,
        request: CreateQuotationRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        now = self._clock.now_utc()
        rules = self._rules.get_global_rules()
        quotation_id = uuid.uuid4()
        quotation = Quotation(
            quotation_id=quotation_id,
            quote_number=generate_document_number(QUOTE_NUMBER_PREFIX, now, quotation_id),
            project_name=request.project_name.strip(),
            client_name=request.client_name.strip(),
            created_at=now,
            project_type=request.project_type,
            client_email=request.client_email,
            client_phone=request.client_phone,
            project_address=request.project_address,
            build_type=request.build_type or BuildType(rules.build_type_default),
            totals=QuoteTotals(updated_at=epoch_millis(now)),
            terms=default_terms(rules.validity_days),
        )
        self._quotations.save(quotation)
        self._audit.record(build_quotation_entry(
            actor_id=actor_id,
            action=QUOTATION_CREATED,
            quotation=quotation,
            summary=f"Created {quotation.quote_number} for {quotation.client_name}",
            occurred_at=now,
        ))
        logger.info(f"Quotation {quotation.quote_number} created")
        return quotation

    # ── pricing ──────────────────────────────────────────────

    def price_item(
        self,
        quotation: Quotation,
        item: LineItem,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        """Reprice an item from the live catalog; brand misses are audited."""
        resolution = resolve_line_item(item, self._catalog, quotation.build_type)
        if resolution is not None and resolution.has_misses:
            self._audit.record(build_brand_fallback_entry(
                actor_id=actor_id,
                target_id=str(quotation.quotation_id),
                item=item,
                misses=resolution.misses,
                occurred_at=self._clock.now_utc(),
            ))
        return price_line_item(item, self._catalog, quotation.build_type, resolution)

    def _reprice_all(self, quotation: Quotation) -> Tuple[LineItem, ...]:
        """Reprice every item in memory without writing anything."""
        return tuple(
            price_line_item(item, self._catalog, quotation.build_type)
            for item in self._items.list_for_owner(quotation.quotation_id)
        )

    def _store_totals(self, quotation: Quotation, aggregation: Aggregation) -> Quotation:
        totals = QuoteTotals(
            interiors_subtotal=aggregation.interiors_subtotal,
            fc_subtotal=aggregation.fc_subtotal,
            grand_subtotal=aggregation.grand_subtotal,
            updated_at=epoch_millis(self._clock.now_utc()),
        )
        if totals.same_amounts(quotation.totals):
            return quotation
        updated = quotation.with_changes(totals=totals)
        self._quotations.save(updated)
        logger.debug(
            f"Totals for {quotation.quote_number}: grand subtotal "
            f"{quotation.totals.grand_subtotal} → {totals.grand_subtotal}"
        )
        return updated

    def recompute_totals(self, quotation_id: uuid.UUID) -> Quotation:
        """
        Reprice all items and rebuild totals from scratch. Approved
        quotations are returned untouched.
        """
        quotation = self.get_quotation(quotation_id)
        if quotation.is_locked:
            logger.debug(f"Skipping recompute of locked {quotation.quote_number}")
            return quotation
        current = self._items.list_for_owner(quotation_id)
        repriced = self._reprice_all(quotation)
        for before, after in zip(current, repriced):
            if before != after:
                self._items.update(after)
        return self._store_totals(quotation, compute_totals(repriced, self._room_order))

    def _refresh_totals(self, quotation: Quotation) -> Quotation:
        items = self._items.list_for_owner(quotation.quotation_id)
        return self._store_totals(quotation, compute_totals(items, self._room_order))

    def room_breakdown(self, quotation_id: uuid.UUID) -> Aggregation:
        return compute_totals(self.list_items(quotation_id), self._room_order)

    def live_allocation(self, quotation: Quotation) -> Allocation:
        rules = self._rules.get_global_rules()
        return allocate(
            quotation.totals.interiors_subtotal,
            quotation.totals.fc_subtotal,
            quotation.discount_type,
            quotation.discount_value,
            rules.tax_percent,
        )

    def read_summary(self, quotation_id: uuid.UUID, view: PricingView) -> QuoteSummary:
        """Totals through the caller's chosen view; there is no default."""
        if not isinstance(view, PricingView):
            raise reject(
                ReasonCode.INVALID_REQUEST,
                "view must be PricingView.LIVE or PricingView.FROZEN.",
                "read_summary",
            )
        quotation = self.get_quotation(quotation_id)
        if view is PricingView.FROZEN:
            _raise_if(quotation_must_be_approved_policy(quotation))
            return QuoteSummary(
                view=view,
                totals=quotation.snapshot.totals,
                allocation=quotation.snapshot.allocation,
            )
        aggregation = compute_totals(
            self._items.list_for_owner(quotation_id), self._room_order
        )
        live = quotation.with_changes(totals=QuoteTotals(
            interiors_subtotal=aggregation.interiors_subtotal,
            fc_subtotal=aggregation.fc_subtotal,
            grand_subtotal=aggregation.grand_subtotal,
            updated_at=quotation.totals.updated_at,
        ))
        return QuoteSummary(
            view=view, totals=live.totals, allocation=self.live_allocation(live)
        )

    # ── line items ───────────────────────────────────────────

    def add_item(
        self,
        quotation_id: uuid.UUID,
        request: AddItemRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        quotation = self._require_editable(quotation_id)
        item = LineItem(
            item_id=uuid.uuid4(),
            owner_id=quotation_id,
            kind=request.kind,
            **request.fields,
        )
        item = self.price_item(quotation, item, actor_id=actor_id)
        self._items.add(item)
        quotation = self._refresh_totals(quotation)
        self._audit.record(build_item_entry(
            actor_id=actor_id,
            action=ITEM_ADDED,
            quotation=quotation,
            after=item,
            occurred_at=self._clock.now_utc(),
        ))
        return item

    def update_item(
        self,
        quotation_id: uuid.UUID,
        request: UpdateItemRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        quotation = self._require_editable(quotation_id)
        before = self._require_item(quotation, request.item_id)
        after = self.price_item(
            quotation, before.with_changes(**request.changes), actor_id=actor_id
        )
        self._items.update(after)
        quotation = self._refresh_totals(quotation)
        self._audit.record(build_item_entry(
            actor_id=actor_id,
            action=ITEM_UPDATED,
            quotation=quotation,
            before=before,
            after=after,
            occurred_at=self._clock.now_utc(),
        ))
        return after

    def delete_item(
        self,
        quotation_id: uuid.UUID,
        item_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        quotation = self._require_editable(quotation_id)
        before = self._require_item(quotation, item_id)
        self._items.delete(item_id)
        quotation = self._refresh_totals(quotation)
        self._audit.record(build_item_entry(
            actor_id=actor_id,
            action=ITEM_DELETED,
            quotation=quotation,
            before=before,
            occurred_at=self._clock.now_utc(),
        ))
        return quotation

    def set_rate_override(
        self,
        quotation_id: uuid.UUID,
        request: RateOverrideRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        quotation = self._require_editable(quotation_id)
        before = self._require_item(quotation, request.item_id)
        after = apply_rate_override(before, request.rate)
        self._items.update(after)
        quotation = self._refresh_totals(quotation)
        self._audit.record(build_item_entry(
            actor_id=actor_id,
            action=RATE_OVERRIDE_APPLIED,
            quotation=quotation,
            before=before,
            after=after,
            occurred_at=self._clock.now_utc(),
        ))
        logger.info(
            f"Rate override {after.rate_override} on item {after.item_id} "
            f"({quotation.quote_number})"
        )
        return after

    def clear_rate_override(
        self,
        quotation_id: uuid.UUID,
        item_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        quotation = self._require_editable(quotation_id)
        before = self._require_item(quotation, item_id)
        after = clear_rate_override(before)
        self._items.update(after)
        quotation = self._refresh_totals(quotation)
        self._audit.record(build_item_entry(
            actor_id=actor_id,
            action=RATE_OVERRIDE_CLEARED,
            quotation=quotation,
            before=before,
            after=after,
            occurred_at=self._clock.now_utc(),
        ))
        return after

    # ── discount / terms ─────────────────────────────────────

    def set_discount(
        self,
        quotation_id: uuid.UUID,
        request: SetDiscountRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        before = self._require_editable(quotation_id)
        after = before.with_changes(
            discount_type=request.discount_type,
            discount_value=request.discount_value,
        )
        self._quotations.save(after)
        after = self._refresh_totals(after)
        self._audit.record(build_discount_changed_entry(
            actor_id=actor_id,
            before=before,
            after=after,
            occurred_at=self._clock.now_utc(),
        ))
        logger.info(
            f"Discount on {after.quote_number} set to "
            f"{after.discount_value} {after.discount_type.value}"
        )
        return after

    def update_terms(
        self,
        quotation_id: uuid.UUID,
        request: UpdateTermsRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        before = self._require_editable(quotation_id)
        section = getattr(before.terms, request.section)
        vars_changes = {
            name: value
            for name, value in (
                ("valid_days", request.valid_days),
                ("warranty_months", request.warranty_months),
                ("payment_schedule", request.payment_schedule),
            )
            if value is not None
        }
        new_section = replace(
            section,
            use_default=request.use_default,
            custom_text=request.custom_text or "",
            vars=replace(section.vars, **vars_changes) if vars_changes else section.vars,
        )
        after = before.with_changes(
            terms=replace(before.terms, **{request.section: new_section})
        )
        self._quotations.save(after)
        self._audit.record(build_quotation_entry(
            actor_id=actor_id,
            action=TERMS_UPDATED,
            quotation=after,
            before=before,
            summary=f"Updated {request.section} terms on {after.quote_number}",
            occurred_at=self._clock.now_utc(),
        ))
        return after

    # ── status lifecycle ─────────────────────────────────────

    def transition_status(
        self,
        quotation_id: uuid.UUID,
        request: StatusTransitionRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        if request.target_status is QuotationStatus.APPROVED:
            return self.approve(quotation_id, actor_id=actor_id)
        before = self.get_quotation(quotation_id)
        _raise_if(status_transition_must_be_allowed_policy(before, request.target_status))
        after = before.with_changes(status=request.target_status)
        self._quotations.save(after)
        self._audit.record(build_quotation_entry(
            actor_id=actor_id,
            action=STATUS_CHANGED,
            quotation=after,
            before=before,
            summary=(
                f"{after.quote_number}: {before.status.value} → {after.status.value}"
            ),
            occurred_at=self._clock.now_utc(),
        ))
        logger.info(f"Quotation {after.quote_number} is now {after.status.value}")
        return after

    def approve(
        self,
        quotation_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        """
        Recompute, snapshot, lock, and generate the Agreement.

        Everything is computed in memory first; nothing is written
        unless the snapshot is complete.
        """
        quotation = self.get_quotation(quotation_id)
        _raise_if(quotation_must_be_approvable_policy(quotation))
        _raise_if(replace_must_not_be_pending_policy(quotation))

        now = self._clock.now_utc()
        rules = self._rules.get_global_rules()
        _raise_if(payment_schedule_must_be_configured_policy(rules))
        try:
            try:
                items = self._reprice_all(quotation)
            except CatalogUnavailableError as exc:
                raise SnapshotIncompleteError(quotation_id, str(exc)) from exc
            aggregation = compute_totals(items, self._room_order)
            totals = QuoteTotals(
                interiors_subtotal=aggregation.interiors_subtotal,
                fc_subtotal=aggregation.fc_subtotal,
                grand_subtotal=aggregation.grand_subtotal,
                updated_at=epoch_millis(now),
            )
            allocation = allocate(
                totals.interiors_subtotal,
                totals.fc_subtotal,
                quotation.discount_type,
                quotation.discount_value,
                rules.tax_percent,
            )
            snapshot = capture_snapshot(
                quotation=quotation,
                items=items,
                allocation=allocation,
                totals=totals,
                rules=rules,
                catalog=self._catalog,
                captured_at=now,
            )
        except SnapshotIncompleteError as exc:
            logger.error(f"Approval of {quotation.quote_number} aborted: {exc}")
            self._audit.record(build_approval_aborted_entry(
                actor_id=actor_id,
                quotation=quotation,
                error=str(exc),
                occurred_at=now,
            ))
            raise

        approved = quotation.with_changes(
            status=QuotationStatus.APPROVED,
            totals=totals,
            approved_at=now,
            approved_by=actor_id,
            snapshot=snapshot,
        )
        agreement = build_agreement(
            quotation=approved,
            snapshot=snapshot,
            items=items,
            rules=rules,
            generated_at=now,
        )

        current = {item.item_id: item for item in self._items.list_for_owner(quotation_id)}
        for item in items:
            if current.get(item.item_id) != item:
                self._items.update(item)
        self._quotations.save(approved)
        self._agreements.save(agreement)
        self._audit.record(build_quotation_entry(
            actor_id=actor_id,
            action=QUOTATION_APPROVED,
            quotation=approved,
            before=quotation,
            summary=(
                f"Approved {approved.quote_number} at grand total "
                f"{allocation.grand.total}"
            ),
            occurred_at=now,
            metadata={
                "fingerprint": snapshot.fingerprint,
                "agreement_id": str(agreement.agreement_id),
                "tax_percent": allocation.tax_percent,
            },
        ))
        logger.info(
            f"Quotation {approved.quote_number} approved, "
            f"grand total {allocation.grand.total}"
        )
        if self._renderer is not None:
            self._render_agreement(approved, agreement, allocation, aggregation, actor_id)
        return approved

    def _render_agreement(
        self,
        approved: Quotation,
        agreement: Agreement,
        allocation: Allocation,
        aggregation: Aggregation,
        actor_id: str,
    ) -> None:
        """
        Hand the agreement to the renderer. Runs after approval is
        committed, so a renderer failure is logged and audited but does
        not undo or fail the approval.
        """
        payload = agreement.payload()
        payload["document_hash"] = agreement.document_hash
        payload["allocation"] = allocation.to_dict()
        payload["rooms"] = {
            "interiors": [r.to_dict() for r in aggregation.interior_rooms],
            "false_ceiling": [r.to_dict() for r in aggregation.fc_rooms],
        }
        try:
            self._renderer.render(DOCUMENT_AGREEMENT, payload)
        except Exception as exc:
            logger.error(
                f"Agreement render failed for {approved.quote_number} "
                f"(agreement_id: {agreement.agreement_id}): {exc}",
                exc_info=True,
            )
            self._audit.record(build_render_failed_entry(
                actor_id=actor_id,
                quotation=approved,
                agreement_id=str(agreement.agreement_id),
                error=str(exc),
                occurred_at=self._clock.now_utc(),
            ))

    # ── signoff ──────────────────────────────────────────────

    def record_signature(
        self,
        quotation_id: uuid.UUID,
        request: SignatureRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Quotation:
        before = self.get_quotation(quotation_id)
        now = self._clock.now_utc()
        signature = Signature(
            name=request.name.strip(),
            title=request.title,
            signature=request.signature,
            signed_at=now,
        )
        if request.party == "client":
            signoff = replace(
                before.signoff, client=signature, accepted=True, accepted_at=now
            )
        else:
            signoff = replace(before.signoff, company=signature)
        after = before.with_changes(signoff=signoff)
        self._quotations.save(after)

        agreement = self._agreements.get_for_quotation(quotation_id)
        if request.party == "client" and agreement is not None:
            self._agreements.save(
                replace(agreement, signed_by_client=True, signed_at=now)
            )
        self._audit.record(build_signature_entry(
            actor_id=actor_id,
            quotation=after,
            party=request.party,
            name=signature.name,
            occurred_at=now,
        ))
        return after

    # ── template support ─────────────────────────────────────

    def set_template_state(self, quotation_id: uuid.UUID, state: TemplateState) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        if quotation.template_state is state:
            return quotation
        updated = quotation.with_changes(template_state=state)
        self._quotations.save(updated)
        return updated
