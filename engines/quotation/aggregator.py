"""
CASA Quotation — Aggregator
=============================
Groups line items by room and by partition.

Partitions:
- Interiors       = Σ interior item totals
- False ceiling   = Σ false-ceiling item totals + Σ other item totals
- Grand subtotal  = interiors + false ceiling

Items are bucketed by exact room label; an unset room lands in
"Other". Room output order comes from an injected RoomOrder key.
Change-order items contribute their signed total (credits negative).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from core.primitives.money import ZERO, round_currency
from engines.pricing.items import ItemKind, LineItem
from engines.quotation.rooms import RoomOrder, default_room_order

logger = logging.getLogger("casa.quotation")


@dataclass(frozen=True)
class RoomSubtotal:
    room: str
    subtotal: Decimal
    items: Tuple[LineItem, ...]

    def to_dict(self) -> dict:
        return {
            "room": self.room,
            "subtotal": str(self.subtotal),
            "item_count": len(self.items),
        }


@dataclass(frozen=True)
class Aggregation:
    interiors_subtotal: Decimal
    fc_subtotal: Decimal
    grand_subtotal: Decimal
    others_subtotal: Decimal
    interior_rooms: Tuple[RoomSubtotal, ...] = ()
    fc_rooms: Tuple[RoomSubtotal, ...] = ()

    def to_dict(self) -> dict:
        return {
            "interiors_subtotal": str(self.interiors_subtotal),
            "fc_subtotal": str(self.fc_subtotal),
            "grand_subtotal": str(self.grand_subtotal),
            "others_subtotal": str(self.others_subtotal),
            "interior_rooms": [r.to_dict() for r in self.interior_rooms],
            "fc_rooms": [r.to_dict() for r in self.fc_rooms],
        }


def _sum_signed(items: Iterable[LineItem]) -> Decimal:
    total = ZERO
    for item in items:
        total += item.signed_total
    return round_currency(total)


def group_by_room(
    items: Iterable[LineItem],
    room_order: Optional[RoomOrder] = None,
) -> Tuple[RoomSubtotal, ...]:
    buckets: Dict[str, List[LineItem]] = {}
    for item in items:
        buckets.setdefault(item.room_label, []).append(item)
    order = room_order or default_room_order
    return tuple(
        RoomSubtotal(
            room=room,
            subtotal=_sum_signed(buckets[room]),
            items=tuple(sorted(buckets[room], key=lambda i: i.sort_order)),
        )
        for room in sorted(buckets, key=order)
    )


def split_by_kind(
    items: Iterable[LineItem],
) -> Tuple[List[LineItem], List[LineItem], List[LineItem]]:
    interior: List[LineItem] = []
    fc: List[LineItem] = []
    other: List[LineItem] = []
    for item in items:
        if item.kind is ItemKind.INTERIOR:
            interior.append(item)
        elif item.kind is ItemKind.FALSE_CEILING:
            fc.append(item)
        else:
            other.append(item)
    return interior, fc, other


def aggregate(
    interior: Iterable[LineItem],
    fc: Iterable[LineItem],
    other: Iterable[LineItem],
    room_order: Optional[RoomOrder] = None,
) -> Aggregation:
    interior = list(interior)
    fc = list(fc)
    other = list(other)

    interiors_subtotal = _sum_signed(interior)
    fc_room_subtotal = _sum_signed(fc)
    others_subtotal = _sum_signed(other)
    fc_subtotal = round_currency(fc_room_subtotal + others_subtotal)
    grand_subtotal = round_currency(interiors_subtotal + fc_subtotal)

    logger.debug(
        f"Aggregated {len(interior)} interior, {len(fc)} FC, {len(other)} other "
        f"items: grand subtotal {grand_subtotal}"
    )
    return Aggregation(
        interiors_subtotal=interiors_subtotal,
        fc_subtotal=fc_subtotal,
        grand_subtotal=grand_subtotal,
        others_subtotal=others_subtotal,
        interior_rooms=group_by_room(interior, room_order),
        fc_rooms=group_by_room(fc, room_order),
    )
