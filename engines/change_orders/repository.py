"""CASA Change Orders - repository boundary."""

from __future__ import annotations

import uuid
from typing import Dict, Optional, Protocol, Tuple

from engines.change_orders.models import ChangeOrder


class ChangeOrderRepository(Protocol):
    def get(self, change_order_id: uuid.UUID) -> Optional[ChangeOrder]:
        ...

    def save(self, change_order: ChangeOrder) -> None:
        ...

    def delete(self, change_order_id: uuid.UUID) -> bool:
        ...

    def list_for_quotation(self, quotation_id: uuid.UUID) -> Tuple[ChangeOrder, ...]:
        ...


class InMemoryChangeOrderRepository:
    def __init__(self) -> None:
        self._orders: Dict[uuid.UUID, ChangeOrder] = {}

    def get(self, change_order_id: uuid.UUID) -> Optional[ChangeOrder]:
        return self._orders.get(change_order_id)

    def save(self, change_order: ChangeOrder) -> None:
        self._orders[change_order.change_order_id] = change_order

    def delete(self, change_order_id: uuid.UUID) -> bool:
        return self._orders.pop(change_order_id, None) is not None

    def list_for_quotation(self, quotation_id: uuid.UUID) -> Tuple[ChangeOrder, ...]:
        """Oldest first."""
        return tuple(sorted(
            (co for co in self._orders.values() if co.quotation_id == quotation_id),
            key=lambda co: (co.created_at, co.change_order_number),
        ))
