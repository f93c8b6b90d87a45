"""CASA Change Orders - revision engine service.

Prices each change order with the same aggregator and allocator as a
quotation, using the parent's tax percent (frozen snapshot when the
parent is approved), and folds approved change orders into the
quotation's revised total:

    revised_total = approved grand total + Σ approved change-order grand totals

Nothing here writes to the parent quotation.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional, Tuple

from core.audit import AuditSink
from core.commands.rejection import CommandRejectedError, RejectionReason
from core.config.rules import RulesProvider
from core.primitives.money import round_currency
from core.time import Clock, epoch_millis
from engines.change_orders.commands import (
    AddChangeOrderItemRequest,
    ChangeOrderTransitionRequest,
    CreateChangeOrderRequest,
    UpdateChangeOrderItemRequest,
)
from engines.change_orders.events import (
    CHANGE_ORDER_APPROVED,
    CHANGE_ORDER_CREATED,
    CHANGE_ORDER_DELETED,
    CHANGE_ORDER_DISCOUNT_CHANGED,
    CHANGE_ORDER_ITEM_ADDED,
    CHANGE_ORDER_ITEM_DELETED,
    CHANGE_ORDER_ITEM_UPDATED,
    CHANGE_ORDER_STATUS_CHANGED,
    build_change_order_entry,
)
from engines.change_orders.models import (
    CHANGE_ORDER_NUMBER_PREFIX,
    ChangeOrder,
    ChangeOrderStatus,
)
from engines.change_orders.policies import (
    change_order_must_exist_policy,
    change_order_must_not_be_locked_policy,
    change_order_transition_must_be_allowed_policy,
    quotation_must_accept_change_orders_policy,
)
from engines.change_orders.repository import ChangeOrderRepository
from engines.pricing.catalog import PricingCatalog
from engines.pricing.items import ChangeType, LineItem
from engines.pricing.resolver import (
    apply_rate_override,
    clear_rate_override,
    price_line_item,
    resolve_line_item,
)
from engines.quotation.aggregator import Aggregation
from engines.quotation.allocator import Allocation, allocate
from engines.quotation.commands import (
    RateOverrideRequest,
    SetDiscountRequest,
)
from engines.quotation.events import build_brand_fallback_entry
from engines.quotation.models import Quotation, QuoteTotals, generate_document_number
from engines.quotation.policies import item_must_belong_to_owner_policy
from engines.quotation.rooms import RoomOrder
from engines.quotation.services import SYSTEM_ACTOR, QuotationService, compute_totals
from engines.quotation.store import LineItemStore

logger = logging.getLogger("casa.change_orders")


def _raise_if(rejection: RejectionReason | None) -> None:
    if rejection is not None:
        raise CommandRejectedError(rejection)


class ChangeOrderService:
    def __init__(
        self,
        *,
        change_orders: ChangeOrderRepository,
        quotations: QuotationService,
        items: LineItemStore,
        catalog: PricingCatalog,
        rules: RulesProvider,
        audit: AuditSink,
        clock: Clock,
        room_order: Optional[RoomOrder] = None,
    ):
        self._change_orders = change_orders
        self._quotations = quotations
        self._items = items
        self._catalog = catalog
        self._rules = rules
        self._audit = audit
        self._clock = clock
        self._room_order = room_order

    # ── lookups ──────────────────────────────────────────────

    def get_change_order(self, change_order_id: uuid.UUID) -> ChangeOrder:
        change_order = self._change_orders.get(change_order_id)
        _raise_if(change_order_must_exist_policy(change_order, change_order_id))
        return change_order

    def list_for_quotation(self, quotation_id: uuid.UUID) -> Tuple[ChangeOrder, ...]:
        return self._change_orders.list_for_quotation(quotation_id)

    def list_items(self, change_order_id: uuid.UUID) -> Tuple[LineItem, ...]:
        self.get_change_order(change_order_id)
        return self._items.list_for_owner(change_order_id)

    def _require_editable(self, change_order_id: uuid.UUID) -> ChangeOrder:
        change_order = self.get_change_order(change_order_id)
        _raise_if(change_order_must_not_be_locked_policy(change_order))
        return change_order

    def _require_item(self, change_order: ChangeOrder, item_id: uuid.UUID) -> LineItem:
        item = self._items.get(item_id)
        _raise_if(item_must_belong_to_owner_policy(
            item, item_id, change_order.change_order_id
        ))
        return item

    def tax_percent_for(self, quotation: Quotation) -> Decimal:
        """Frozen tax when the parent is approved, live tax otherwise."""
        if quotation.snapshot is not None:
            return quotation.snapshot.tax_percent
        return self._rules.get_global_rules().tax_percent

    # ── creation / deletion ──────────────────────────────────

    def create_change_order(
        self,
        quotation_id: uuid.UUID,
        request: CreateChangeOrderRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ChangeOrder:
        quotation = self._quotations.get_quotation(quotation_id)
        _raise_if(quotation_must_accept_change_orders_policy(quotation))
        now = self._clock.now_utc()
        change_order_id = uuid.uuid4()
        change_order = ChangeOrder(
            change_order_id=change_order_id,
            quotation_id=quotation_id,
            change_order_number=generate_document_number(
                CHANGE_ORDER_NUMBER_PREFIX, now, change_order_id
            ),
            title=request.title.strip(),
            description=request.description,
            created_at=now,
            totals=QuoteTotals(updated_at=epoch_millis(now)),
        )
        self._change_orders.save(change_order)
        self._audit.record(build_change_order_entry(
            actor_id=actor_id,
            action=CHANGE_ORDER_CREATED,
            change_order=change_order,
            after=change_order,
            summary=(
                f"Created {change_order.change_order_number} on {quotation.quote_number}"
            ),
            occurred_at=now,
        ))
        logger.info(
            f"Change order {change_order.change_order_number} created for "
            f"{quotation.quote_number}"
        )
        return change_order

    def delete_change_order(
        self,
        change_order_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> None:
        """Remove a change order and its items; the quotation is untouched."""
        change_order = self.get_change_order(change_order_id)
        removed = self._items.delete_for_owner(change_order_id)
        self._change_orders.delete(change_order_id)
        self._restamp_revised_totals(change_order.quotation_id)
        self._audit.record(build_change_order_entry(
            actor_id=actor_id,
            action=CHANGE_ORDER_DELETED,
            change_order=change_order,
            before=change_order,
            summary=(
                f"Deleted {change_order.change_order_number} "
                f"({removed} items, grand total {change_order.grand_total})"
            ),
            occurred_at=self._clock.now_utc(),
            metadata={"items_removed": removed},
        ))
        logger.info(f"Change order {change_order.change_order_number} deleted")

    # ── pricing ──────────────────────────────────────────────

    def _price(
        self, quotation: Quotation, change_order: ChangeOrder, item: LineItem, actor_id: str
    ) -> LineItem:
        resolution = resolve_line_item(item, self._catalog, quotation.build_type)
        if resolution is not None and resolution.has_misses:
            self._audit.record(build_brand_fallback_entry(
                actor_id=actor_id,
                target_id=str(change_order.change_order_id),
                item=item,
                misses=resolution.misses,
                occurred_at=self._clock.now_utc(),
            ))
        return price_line_item(item, self._catalog, quotation.build_type, resolution)

    def _allocate(
        self, quotation: Quotation, change_order: ChangeOrder, aggregation: Aggregation
    ) -> Allocation:
        return allocate(
            aggregation.interiors_subtotal,
            aggregation.fc_subtotal,
            change_order.discount_type,
            change_order.discount_value,
            self.tax_percent_for(quotation),
            allow_negative=True,
        )

    def _refresh(self, change_order: ChangeOrder) -> ChangeOrder:
        quotation = self._quotations.get_quotation(change_order.quotation_id)
        aggregation = compute_totals(
            self._items.list_for_owner(change_order.change_order_id), self._room_order
        )
        totals = QuoteTotals(
            interiors_subtotal=aggregation.interiors_subtotal,
            fc_subtotal=aggregation.fc_subtotal,
            grand_subtotal=aggregation.grand_subtotal,
            updated_at=epoch_millis(self._clock.now_utc()),
        )
        allocation = self._allocate(quotation, change_order, aggregation)
        if totals.same_amounts(change_order.totals) and allocation == change_order.allocation:
            return change_order
        updated = change_order.with_changes(totals=totals, allocation=allocation)
        self._change_orders.save(updated)
        logger.debug(
            f"Change order {change_order.change_order_number} grand total "
            f"{change_order.grand_total} → {updated.grand_total}"
        )
        return updated

    def recompute(self, change_order_id: uuid.UUID) -> ChangeOrder:
        """Reprice items and rebuild totals. Approved change orders are returned as-is."""
        change_order = self.get_change_order(change_order_id)
        if change_order.is_locked:
            return change_order
        quotation = self._quotations.get_quotation(change_order.quotation_id)
        for item in self._items.list_for_owner(change_order_id):
            repriced = price_line_item(item, self._catalog, quotation.build_type)
            if repriced != item:
                self._items.update(repriced)
        return self._refresh(change_order)

    def room_breakdown(self, change_order_id: uuid.UUID) -> Aggregation:
        return compute_totals(self.list_items(change_order_id), self._room_order)

    # ── items ────────────────────────────────────────────────

    def _item_entry(
        self, action: str, change_order: ChangeOrder, item: LineItem, actor_id: str
    ):
        sign = "-" if item.change_type is ChangeType.CREDIT else "+"
        return build_change_order_entry(
            actor_id=actor_id,
            action=action,
            change_order=change_order,
            after=change_order,
            summary=(
                f"{action.replace('_', ' ').capitalize()}: "
                f"{item.description or item.kind.value} in {item.room_label} "
                f"({sign}{item.total_price})"
            ),
            occurred_at=self._clock.now_utc(),
            metadata={"item_id": str(item.item_id)},
        )

    def add_item(
        self,
        change_order_id: uuid.UUID,
        request: AddChangeOrderItemRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        change_order = self._require_editable(change_order_id)
        quotation = self._quotations.get_quotation(change_order.quotation_id)
        item = LineItem(
            item_id=uuid.uuid4(),
            owner_id=change_order_id,
            kind=request.kind,
            **request.fields,
        )
        item = self._items.add(self._price(quotation, change_order, item, actor_id))
        change_order = self._refresh(change_order)
        self._audit.record(
            self._item_entry(CHANGE_ORDER_ITEM_ADDED, change_order, item, actor_id)
        )
        return item

    def update_item(
        self,
        change_order_id: uuid.UUID,
        request: UpdateChangeOrderItemRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        change_order = self._require_editable(change_order_id)
        quotation = self._quotations.get_quotation(change_order.quotation_id)
        before = self._require_item(change_order, request.item_id)
        after = self._price(
            quotation, change_order, before.with_changes(**request.changes), actor_id
        )
        if after.change_type is None:
            after = after.with_changes(change_type=ChangeType.ADDITION)
        self._items.update(after)
        change_order = self._refresh(change_order)
        self._audit.record(
            self._item_entry(CHANGE_ORDER_ITEM_UPDATED, change_order, after, actor_id)
        )
        return after

    def delete_item(
        self,
        change_order_id: uuid.UUID,
        item_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ChangeOrder:
        change_order = self._require_editable(change_order_id)
        before = self._require_item(change_order, item_id)
        self._items.delete(item_id)
        change_order = self._refresh(change_order)
        self._audit.record(
            self._item_entry(CHANGE_ORDER_ITEM_DELETED, change_order, before, actor_id)
        )
        return change_order

    def set_rate_override(
        self,
        change_order_id: uuid.UUID,
        request: RateOverrideRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        change_order = self._require_editable(change_order_id)
        after = apply_rate_override(
            self._require_item(change_order, request.item_id), request.rate
        )
        self._items.update(after)
        change_order = self._refresh(change_order)
        self._audit.record(
            self._item_entry(CHANGE_ORDER_ITEM_UPDATED, change_order, after, actor_id)
        )
        return after

    def clear_rate_override(
        self,
        change_order_id: uuid.UUID,
        item_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> LineItem:
        change_order = self._require_editable(change_order_id)
        after = clear_rate_override(self._require_item(change_order, item_id))
        self._items.update(after)
        change_order = self._refresh(change_order)
        self._audit.record(
            self._item_entry(CHANGE_ORDER_ITEM_UPDATED, change_order, after, actor_id)
        )
        return after

    def set_discount(
        self,
        change_order_id: uuid.UUID,
        request: SetDiscountRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ChangeOrder:
        before = self._require_editable(change_order_id)
        after = self._refresh(before.with_changes(
            discount_type=request.discount_type,
            discount_value=request.discount_value,
        ))
        self._change_orders.save(after)
        self._audit.record(build_change_order_entry(
            actor_id=actor_id,
            action=CHANGE_ORDER_DISCOUNT_CHANGED,
            change_order=after,
            before=before,
            after=after,
            summary=(
                f"Discount on {after.change_order_number} set to "
                f"{after.discount_value} {after.discount_type.value}"
            ),
            occurred_at=self._clock.now_utc(),
        ))
        return after

    # ── status lifecycle ─────────────────────────────────────

    def transition_status(
        self,
        change_order_id: uuid.UUID,
        request: ChangeOrderTransitionRequest,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ChangeOrder:
        if request.target_status is ChangeOrderStatus.APPROVED:
            return self.approve(change_order_id, actor_id=actor_id)
        before = self.get_change_order(change_order_id)
        _raise_if(change_order_transition_must_be_allowed_policy(before, request.target_status))
        after = before.with_changes(status=request.target_status)
        self._change_orders.save(after)
        self._audit.record(build_change_order_entry(
            actor_id=actor_id,
            action=CHANGE_ORDER_STATUS_CHANGED,
            change_order=after,
            before=before,
            after=after,
            summary=(
                f"{after.change_order_number}: "
                f"{before.status.value} → {after.status.value}"
            ),
            occurred_at=self._clock.now_utc(),
        ))
        return after

    def approve(
        self,
        change_order_id: uuid.UUID,
        *,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ChangeOrder:
        before = self.get_change_order(change_order_id)
        _raise_if(change_order_transition_must_be_allowed_policy(
            before, ChangeOrderStatus.APPROVED
        ))
        priced = self.recompute(change_order_id)
        approved = priced.with_changes(
            status=ChangeOrderStatus.APPROVED,
            approved_at=self._clock.now_utc(),
            approved_by=actor_id,
        )
        self._change_orders.save(approved)
        self._restamp_revised_totals(approved.quotation_id)
        approved = self.get_change_order(change_order_id)
        self._audit.record(build_change_order_entry(
            actor_id=actor_id,
            action=CHANGE_ORDER_APPROVED,
            change_order=approved,
            before=before,
            after=approved,
            summary=(
                f"Approved {approved.change_order_number}: grand total "
                f"{approved.grand_total}, revised total {approved.revised_total}"
            ),
            occurred_at=self._clock.now_utc(),
        ))
        logger.info(
            f"Change order {approved.change_order_number} approved, "
            f"revised total {approved.revised_total}"
        )
        return approved

    # ── revised total ────────────────────────────────────────

    def base_total(self, quotation: Quotation) -> Decimal:
        """The quotation's own grand total: frozen when approved, live otherwise."""
        if quotation.snapshot is not None:
            return quotation.snapshot.grand_total
        return self._quotations.live_allocation(quotation).grand.total

    def approved_change_orders(self, quotation_id: uuid.UUID) -> Tuple[ChangeOrder, ...]:
        """Approved change orders in approval order."""
        return tuple(sorted(
            (
                co for co in self._change_orders.list_for_quotation(quotation_id)
                if co.status is ChangeOrderStatus.APPROVED
            ),
            key=lambda co: (co.approved_at, co.change_order_number),
        ))

    def revised_total(self, quotation_id: uuid.UUID) -> Decimal:
        quotation = self._quotations.get_quotation(quotation_id)
        total = self.base_total(quotation)
        for change_order in self.approved_change_orders(quotation_id):
            total += change_order.grand_total
        return round_currency(total)

    def _restamp_revised_totals(self, quotation_id: uuid.UUID) -> None:
        """Each approved change order carries the running total up to itself."""
        running = self.base_total(self._quotations.get_quotation(quotation_id))
        for change_order in self.approved_change_orders(quotation_id):
            running = round_currency(running + change_order.grand_total)
            if change_order.revised_total != running:
                self._change_orders.save(change_order.with_changes(revised_total=running))
