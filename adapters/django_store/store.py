"""
CASA Line Item Store — Django Repository
==========================================
LineItemStore backed by the Django ORM.

Rows are converted to frozen LineItem values on the way out; the
engines never see model instances.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional, Tuple

from django.db import transaction

from adapters.django_store.models import LineItemRecord
from core.commands.rejection import ReasonCode, reject
from engines.pricing.catalog import PricingCatalog
from engines.pricing.items import ItemKind, LineItem
from engines.quotation.store import enforce_unit_lock

logger = logging.getLogger("casa.store")

_COLUMNS = (
    "room_type", "description", "calc", "item_key", "item_type",
    "length", "height", "width", "quantity", "direct_price",
    "build_type", "material", "finish", "hardware",
    "rate_auto", "rate_override", "is_rate_overridden",
    "unit_price", "total_price", "change_type", "sort_order",
)


def _enum_value(value):
    return getattr(value, "value", value)


def to_row(item: LineItem) -> dict:
    row = {name: _enum_value(getattr(item, name)) for name in _COLUMNS}
    row["item_id"] = item.item_id
    row["owner_id"] = item.owner_id
    row["kind"] = item.kind.value
    return row


def from_record(record: LineItemRecord) -> LineItem:
    return LineItem(
        item_id=record.item_id,
        owner_id=record.owner_id,
        kind=ItemKind(record.kind),
        **{name: getattr(record, name) for name in _COLUMNS},
    )


class DjangoLineItemStore:
    def __init__(self, catalog: Optional[PricingCatalog] = None) -> None:
        self._catalog = catalog

    def add(self, item: LineItem) -> LineItem:
        enforce_unit_lock(item, self._catalog)
        record = LineItemRecord.objects.create(**to_row(item))
        return from_record(record)

    def update(self, item: LineItem) -> LineItem:
        enforce_unit_lock(item, self._catalog)
        with transaction.atomic():
            record = (
                LineItemRecord.objects.select_for_update()
                .filter(item_id=item.item_id)
                .first()
            )
            if record is None:
                raise reject(
                    ReasonCode.ITEM_NOT_FOUND,
                    f"Line item '{item.item_id}' not found.",
                    "DjangoLineItemStore.update",
                )
            if record.owner_id != item.owner_id or record.kind != item.kind.value:
                raise ValueError("owner_id and kind of a stored item cannot change.")
            for name, value in to_row(item).items():
                setattr(record, name, value)
            record.save()
        return from_record(record)

    def get(self, item_id: uuid.UUID) -> Optional[LineItem]:
        record = LineItemRecord.objects.filter(item_id=item_id).first()
        return from_record(record) if record is not None else None

    def delete(self, item_id: uuid.UUID) -> bool:
        deleted, _ = LineItemRecord.objects.filter(item_id=item_id).delete()
        return deleted > 0

    def list_for_owner(
        self,
        owner_id: uuid.UUID,
        kind: Optional[ItemKind] = None,
    ) -> Tuple[LineItem, ...]:
        query = LineItemRecord.objects.filter(owner_id=owner_id)
        if kind is not None:
            query = query.filter(kind=kind.value)
        return tuple(from_record(record) for record in query.order_by("sort_order", "id"))

    def delete_for_owner(
        self,
        owner_id: uuid.UUID,
        kinds: Optional[Iterable[ItemKind]] = None,
    ) -> int:
        query = LineItemRecord.objects.filter(owner_id=owner_id)
        if kinds is not None:
            query = query.filter(kind__in=[kind.value for kind in kinds])
        with transaction.atomic():
            deleted, _ = query.delete()
        logger.debug(f"Deleted {deleted} items for owner {owner_id}")
        return deleted
