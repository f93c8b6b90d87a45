"""CASA Templates - plan the line items a template produces."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, Tuple

from core.primitives.money import ZERO
from engines.pricing.items import BuildType, CalcMode, ItemKind
from engines.templates.catalog import (
    GENERIC_CORE,
    GENERIC_FINISH,
    GENERIC_HARDWARE,
    RoomTab,
    Template,
    TemplateRoom,
)

WALL_PAINTING = "Wall Painting – Package"
FC_PAINTING = "False Ceiling – Painting (Generic)"
FC_LIGHTS = "FC Lights"
FAN_HOOKS = "Fan Hook Rods"


@dataclass(frozen=True)
class ItemDraft:
    """A line item to be created, minus identity and pricing."""

    kind: ItemKind
    fields: Dict[str, Any]

    @property
    def room_type(self):
        return self.fields.get("room_type")

    @property
    def description(self) -> str:
        return self.fields.get("description", "")


@dataclass(frozen=True)
class MaterializedPlan:
    interior: Tuple[ItemDraft, ...]
    false_ceiling: Tuple[ItemDraft, ...]
    other: Tuple[ItemDraft, ...]
    skipped_rooms: Tuple[str, ...] = ()

    @property
    def drafts(self) -> Tuple[ItemDraft, ...]:
        return self.interior + self.false_ceiling + self.other

    def __len__(self) -> int:
        return len(self.drafts)


def _included(room: TemplateRoom, selected_optional: FrozenSet[str]) -> bool:
    return not room.is_optional or room.key in selected_optional


def _others(template: Template) -> Tuple[Tuple[str, str, CalcMode], ...]:
    flags = template.others
    rows = []
    if flags.wall_painting:
        rows.append(("Paint", WALL_PAINTING, CalcMode.LSUM))
    if flags.fc_painting:
        rows.append(("Paint", FC_PAINTING, CalcMode.LSUM))
    if flags.lights:
        rows.append(("Lights", FC_LIGHTS, CalcMode.COUNT))
    if flags.fan_hooks:
        rows.append(("Fan Hook Rods", FAN_HOOKS, CalcMode.COUNT))
    return tuple(rows)


def materialize(
    template: Template,
    selected_optional: Iterable[str] = (),
    existing_rooms: Iterable[str] = (),
    existing_others: Iterable[str] = (),
) -> MaterializedPlan:
    """
    Plan the items for `template`.

    Rooms whose label is in `existing_rooms` and Other lines whose
    description is in `existing_others` are skipped, so planning
    against the result of a previous merge yields nothing new.
    """
    selected = frozenset(selected_optional)
    existing = frozenset(existing_rooms)
    existing_descriptions = frozenset(existing_others)
    skipped = []

    interior = []
    for room in template.rooms_on(RoomTab.INTERIORS):
        if not room.items or not _included(room, selected):
            continue
        if room.label in existing:
            skipped.append(room.label)
            continue
        for item in room.items:
            interior.append(ItemDraft(kind=ItemKind.INTERIOR, fields={
                "room_type": room.label,
                "description": item.description,
                "calc": item.calc,
                "build_type": item.build_type or BuildType.HANDMADE,
                "material": item.material or GENERIC_CORE,
                "finish": item.finish or GENERIC_FINISH,
                "hardware": item.hardware or GENERIC_HARDWARE,
            }))

    false_ceiling = []
    for room in template.rooms_on(RoomTab.FC):
        if not room.fc_line or not _included(room, selected):
            continue
        if room.label in existing:
            if room.label not in skipped:
                skipped.append(room.label)
            continue
        false_ceiling.append(ItemDraft(kind=ItemKind.FALSE_CEILING, fields={
            "room_type": room.label,
            "description": "",
            "calc": CalcMode.SQFT,
        }))

    other = []
    for item_type, description, calc in _others(template):
        if description in existing_descriptions:
            continue
        fields: Dict[str, Any] = {
            "item_type": item_type,
            "description": description,
            "calc": calc,
            "direct_price": ZERO,
        }
        if calc is CalcMode.COUNT:
            fields["quantity"] = Decimal("0")
        other.append(ItemDraft(kind=ItemKind.OTHER, fields=fields))

    return MaterializedPlan(
        interior=tuple(interior),
        false_ceiling=tuple(false_ceiling),
        other=tuple(other),
        skipped_rooms=tuple(skipped),
    )
