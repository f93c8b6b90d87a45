from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.django_store.models import LineItemRecord
from adapters.django_store.store import DjangoLineItemStore
from core.audit import InMemoryAuditSink
from core.commands.rejection import CommandRejectedError, ReasonCode
from core.config import InMemoryRulesProvider
from core.time import FixedClock
from engines.pricing.catalog import build_default_catalog
from engines.pricing.items import CalcMode, ChangeType, ItemKind, LineItem
from engines.quotation.commands import AddItemRequest, CreateQuotationRequest
from engines.quotation.repository import (
    InMemoryAgreementRepository,
    InMemoryQuotationRepository,
)
from engines.quotation.services import QuotationService

pytestmark = pytest.mark.django_db(transaction=True)

NOW = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def _item(owner_id: uuid.UUID, **fields) -> LineItem:
    fields.setdefault("kind", ItemKind.INTERIOR)
    return LineItem(item_id=uuid.uuid4(), owner_id=owner_id, **fields)


def test_add_and_get_round_trips_every_field() -> None:
    store = DjangoLineItemStore(catalog=build_default_catalog())
    owner_id = uuid.uuid4()
    item = _item(
        owner_id,
        room_type="Kitchen",
        description="Kitchen - Base",
        length=Decimal("10.5"),
        height=Decimal("2.75"),
        build_type="factory",
        material="Century Ply",
        finish="Acrylic",
        hardware="Blum",
        rate_auto=Decimal("2000"),
        rate_override=Decimal("1900"),
        is_rate_overridden=True,
        unit_price=Decimal("1900"),
        total_price=Decimal("54862.50"),
        change_type=ChangeType.ADDITION,
        sort_order=3,
    )

    store.add(item)
    loaded = store.get(item.item_id)

    assert loaded == item
    assert LineItemRecord.objects.get(item_id=item.item_id).kind == "interior"


def test_get_missing_returns_none() -> None:
    assert DjangoLineItemStore().get(uuid.uuid4()) is None


def test_list_for_owner_filters_and_orders() -> None:
    store = DjangoLineItemStore()
    owner_id = uuid.uuid4()
    second = store.add(_item(owner_id, description="second", sort_order=2))
    first = store.add(_item(owner_id, description="first", sort_order=1))
    ceiling = store.add(_item(owner_id, kind=ItemKind.FALSE_CEILING, sort_order=0))
    store.add(_item(uuid.uuid4(), description="someone else"))

    assert store.list_for_owner(owner_id) == (ceiling, first, second)
    assert store.list_for_owner(owner_id, ItemKind.INTERIOR) == (first, second)


def test_update_persists_and_rejects_unknown_item() -> None:
    store = DjangoLineItemStore()
    owner_id = uuid.uuid4()
    item = store.add(_item(owner_id, description="Loft"))

    store.update(item.with_changes(description="Loft (extended)", total_price=Decimal("100")))
    assert store.get(item.item_id).description == "Loft (extended)"

    with pytest.raises(CommandRejectedError) as exc:
        store.update(_item(owner_id))
    assert exc.value.code == ReasonCode.ITEM_NOT_FOUND


def test_update_cannot_move_item_to_another_owner() -> None:
    store = DjangoLineItemStore()
    item = store.add(_item(uuid.uuid4()))

    with pytest.raises(ValueError):
        store.update(item.with_changes(owner_id=uuid.uuid4()))


def test_unit_lock_enforced_on_add() -> None:
    store = DjangoLineItemStore(catalog=build_default_catalog())

    with pytest.raises(CommandRejectedError) as exc:
        store.add(_item(uuid.uuid4(), item_key="floor_matting", calc=CalcMode.COUNT))
    assert exc.value.code == ReasonCode.UNIT_LOCKED
    assert LineItemRecord.objects.count() == 0


def test_delete_and_delete_for_owner() -> None:
    store = DjangoLineItemStore()
    owner_id = uuid.uuid4()
    kept = store.add(_item(owner_id, kind=ItemKind.OTHER, calc=CalcMode.LSUM))
    doomed = store.add(_item(owner_id))
    store.add(_item(owner_id, kind=ItemKind.FALSE_CEILING))

    assert store.delete(doomed.item_id) is True
    assert store.delete(doomed.item_id) is False
    assert store.delete_for_owner(owner_id, kinds=[ItemKind.FALSE_CEILING]) == 1
    assert store.list_for_owner(owner_id) == (kept,)
    assert store.delete_for_owner(owner_id) == 1


def test_quotation_service_prices_through_django_store() -> None:
    catalog = build_default_catalog()
    service = QuotationService(
        quotations=InMemoryQuotationRepository(),
        items=DjangoLineItemStore(catalog=catalog),
        agreements=InMemoryAgreementRepository(),
        catalog=catalog,
        rules=InMemoryRulesProvider(),
        audit=InMemoryAuditSink(),
        clock=FixedClock(NOW),
    )
    quotation = service.create_quotation(
        CreateQuotationRequest(project_name="Orchid Villa", client_name="K. Das")
    )
    service.add_item(quotation.quotation_id, AddItemRequest(kind="interior", fields={
        "room_type": "Kitchen", "length": "10", "height": "8",
    }))
    service.add_item(quotation.quotation_id, AddItemRequest(kind="other", fields={
        "calc": "LSUM", "direct_price": "12000", "description": "Wall Painting - Package",
    }))

    refreshed = service.recompute_totals(quotation.quotation_id)

    assert refreshed.totals.interiors_subtotal == Decimal("104000.00")
    assert refreshed.totals.fc_subtotal == Decimal("12000.00")
    assert LineItemRecord.objects.filter(owner_id=quotation.quotation_id).count() == 2
