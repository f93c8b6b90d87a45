"""
CASA Quotation — Canonical Room Order
=======================================
Product-defined ordering of room labels for deterministic output.
Not alphabetical: Kitchen and living spaces first, then bedrooms,
bathrooms, utility spaces, and the "Other" fallback last among
known rooms. Unknown rooms follow, alphabetical among themselves.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional, Tuple

RoomOrder = Callable[[str], Tuple[int, str]]

UNKNOWN_ROOM_RANK = 1000

DEFAULT_ROOM_RANKS: Dict[str, int] = {
    # Living spaces
    "Kitchen": 1,
    "Living": 2,
    "Living/Dining": 3,
    "Dining": 4,
    "Foyer": 5,
    "Passage": 6,
    # Bedrooms
    "Master Bedroom": 10,
    "Bedroom 1": 11,
    "Bedroom 2": 12,
    "Bedroom 3": 13,
    "Bedroom 4": 14,
    "Kids Room": 15,
    "Guest Room": 16,
    # Bathrooms
    "Bathroom 1": 20,
    "Bathroom 2": 21,
    "Bathroom 3": 22,
    "Bathroom 4": 23,
    "Master Bath": 24,
    "Common Bath": 25,
    "Powder Room": 26,
    # Other spaces
    "Balcony": 30,
    "Terrace": 31,
    "Study": 32,
    "Home Office": 33,
    "Prayer Room": 34,
    "Store Room": 35,
    "Utility": 36,
    "Laundry": 37,
    "Additional Works": 38,
    "Puja": 39,
    # Fallback
    "Other": 999,
}


def room_rank(room: str, ranks: Mapping[str, int] = DEFAULT_ROOM_RANKS) -> int:
    """
    Exact label first, then the first known label contained in it
    ("Master Bedroom (Kids)" ranks as Master Bedroom).
    """
    normalized = room.strip()
    if normalized in ranks:
        return ranks[normalized]
    lowered = normalized.lower()
    for label, rank in ranks.items():
        if label.lower() in lowered:
            return rank
    return UNKNOWN_ROOM_RANK


def canonical_room_order(ranks: Optional[Mapping[str, int]] = None) -> RoomOrder:
    """Build a sort key honouring the given rank table."""
    table = dict(ranks) if ranks is not None else DEFAULT_ROOM_RANKS

    def key(room: str) -> Tuple[int, str]:
        return (room_rank(room, table), room)

    return key


default_room_order: RoomOrder = canonical_room_order()


def sort_room_names(rooms, order: Optional[RoomOrder] = None) -> list[str]:
    return sorted(rooms, key=order or default_room_order)
