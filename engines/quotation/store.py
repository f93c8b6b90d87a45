"""
CASA Quotation — Line Item Store Boundary
===========================================
Persistence contract for interior, false-ceiling, other and
change-order items, keyed by owner (quotation or change order id).

Contract:
- Read-after-write: a list issued right after a mutation observes it.
- Unit locks: an item whose catalog entry pins a unit must use that
  unit's calc mode; violations are rejected at create/update time.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable, Optional, Protocol, Tuple

from core.commands.rejection import ReasonCode, reject
from engines.pricing.catalog import PricingCatalog
from engines.pricing.items import ItemKind, LineItem

logger = logging.getLogger("casa.store")


def enforce_unit_lock(item: LineItem, catalog: Optional[PricingCatalog]) -> None:
    if catalog is None or not item.item_key:
        return
    entry = catalog.get_entry(item.item_key)
    if entry is None or entry.locked_unit is None:
        return
    required = entry.locked_unit.calc_mode
    if item.calc is not required:
        raise reject(
            ReasonCode.UNIT_LOCKED,
            f"Item '{item.item_key}' is locked to {entry.locked_unit.value}; "
            f"got {item.calc.value}.",
            "enforce_unit_lock",
        )


class LineItemStore(Protocol):
    def add(self, item: LineItem) -> LineItem:
        ...  # pragma: no cover

    def update(self, item: LineItem) -> LineItem:
        ...  # pragma: no cover

    def get(self, item_id: uuid.UUID) -> Optional[LineItem]:
        ...  # pragma: no cover

    def delete(self, item_id: uuid.UUID) -> bool:
        ...  # pragma: no cover

    def list_for_owner(
        self,
        owner_id: uuid.UUID,
        kind: Optional[ItemKind] = None,
    ) -> Tuple[LineItem, ...]:
        ...  # pragma: no cover

    def delete_for_owner(
        self,
        owner_id: uuid.UUID,
        kinds: Optional[Iterable[ItemKind]] = None,
    ) -> int:
        ...  # pragma: no cover


class InMemoryLineItemStore:
    """Dictionary-backed store used by tests/bootstrap."""

    def __init__(self, catalog: Optional[PricingCatalog] = None) -> None:
        self._catalog = catalog
        self._items: Dict[uuid.UUID, LineItem] = {}
        self._sequence: Dict[uuid.UUID, int] = {}
        self._next = 0

    def add(self, item: LineItem) -> LineItem:
        if item.item_id in self._items:
            raise ValueError(f"Line item '{item.item_id}' already exists.")
        enforce_unit_lock(item, self._catalog)
        self._items[item.item_id] = item
        self._sequence[item.item_id] = self._next
        self._next += 1
        return item

    def update(self, item: LineItem) -> LineItem:
        current = self._items.get(item.item_id)
        if current is None:
            raise reject(
                ReasonCode.ITEM_NOT_FOUND,
                f"Line item '{item.item_id}' not found.",
                "line_item_must_exist",
            )
        if current.owner_id != item.owner_id or current.kind is not item.kind:
            raise ValueError("owner_id and kind of a line item cannot change.")
        enforce_unit_lock(item, self._catalog)
        self._items[item.item_id] = item
        return item

    def get(self, item_id: uuid.UUID) -> Optional[LineItem]:
        return self._items.get(item_id)

    def delete(self, item_id: uuid.UUID) -> bool:
        self._sequence.pop(item_id, None)
        return self._items.pop(item_id, None) is not None

    def list_for_owner(
        self,
        owner_id: uuid.UUID,
        kind: Optional[ItemKind] = None,
    ) -> Tuple[LineItem, ...]:
        matching = [
            item for item in self._items.values()
            if item.owner_id == owner_id and (kind is None or item.kind is kind)
        ]
        matching.sort(key=lambda item: (item.sort_order, self._sequence[item.item_id]))
        return tuple(matching)

    def delete_for_owner(
        self,
        owner_id: uuid.UUID,
        kinds: Optional[Iterable[ItemKind]] = None,
    ) -> int:
        wanted = set(kinds) if kinds is not None else set(ItemKind)
        doomed = [
            item_id for item_id, item in self._items.items()
            if item.owner_id == owner_id and item.kind in wanted
        ]
        for item_id in doomed:
            self.delete(item_id)
        logger.debug(f"Deleted {len(doomed)} items for owner {owner_id}")
        return len(doomed)
