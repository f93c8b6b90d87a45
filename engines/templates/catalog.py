"""
CASA Templates — Template Catalog
===================================
Reusable scope blueprints keyed by project category.

A template is a list of rooms on two tabs (Interiors, FC) plus four
"others" flags. Interior rooms carry default items; FC rooms carry a
single blank ceiling line. Rooms keyed Foyer, Utility, Puja, Study,
Balcony or Other are optional and only materialize when selected.

Unknown categories fall back to 3BHK; the fallback is reported on
the lookup result, never raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Protocol, Tuple

from engines.pricing.items import BuildType, CalcMode

logger = logging.getLogger("casa.templates")

DEFAULT_TEMPLATE_ID = "3BHK"
OPTIONAL_ROOM_KEYS = ("Foyer", "Utility", "Puja", "Study", "Balcony", "Other")

GENERIC_CORE = "Generic Ply"
GENERIC_FINISH = "Generic Laminate"
GENERIC_HARDWARE = "Nimmi"


class RoomTab(Enum):
    INTERIORS = "Interiors"
    FC = "FC"


# ══════════════════════════════════════════════════════════════
# TEMPLATE MODEL
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TemplateItem:
    description: str
    calc: CalcMode = CalcMode.SQFT
    build_type: Optional[BuildType] = None
    material: Optional[str] = None
    finish: Optional[str] = None
    hardware: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.description or not self.description.strip():
            raise ValueError("description must be non-empty.")
        if not isinstance(self.calc, CalcMode):
            raise ValueError("calc must be CalcMode.")


@dataclass(frozen=True)
class TemplateRoom:
    key: str
    label: str
    tab: RoomTab
    items: Tuple[TemplateItem, ...] = ()
    fc_line: bool = False

    def __post_init__(self) -> None:
        if not self.label or not self.label.strip():
            raise ValueError("label must be non-empty.")
        if not isinstance(self.tab, RoomTab):
            raise ValueError("tab must be RoomTab.")

    @property
    def is_optional(self) -> bool:
        return self.key in OPTIONAL_ROOM_KEYS


@dataclass(frozen=True)
class OthersFlags:
    """Which template-level "others" lines to materialize."""

    wall_painting: bool = True
    fc_painting: bool = True
    lights: bool = True
    fan_hooks: bool = True


@dataclass(frozen=True)
class Template:
    template_id: str
    name: str
    rooms: Tuple[TemplateRoom, ...]
    others: OthersFlags = OthersFlags()

    def __post_init__(self) -> None:
        if not self.template_id:
            raise ValueError("template_id must be non-empty.")

    def rooms_on(self, tab: RoomTab) -> Tuple[TemplateRoom, ...]:
        return tuple(room for room in self.rooms if room.tab is tab)


@dataclass(frozen=True)
class RoomPreview:
    interiors: Tuple[str, ...]
    fc: Tuple[str, ...]


def _unique(labels: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for label in labels:
        if label not in seen:
            seen.append(label)
    return tuple(seen)


def preview_rooms(template: Template) -> RoomPreview:
    """Unique room labels per tab, in template order (empty rooms included)."""
    return RoomPreview(
        interiors=_unique(room.label for room in template.rooms_on(RoomTab.INTERIORS)),
        fc=_unique(room.label for room in template.rooms_on(RoomTab.FC) if room.fc_line),
    )


# ══════════════════════════════════════════════════════════════
# PROVIDER
# ══════════════════════════════════════════════════════════════

class TemplateProvider(Protocol):
    def get(self, template_id: str) -> Optional[Template]:
        ...

    def list_templates(self) -> Tuple[Template, ...]:
        ...


class InMemoryTemplateProvider:
    def __init__(self, templates: Optional[Iterable[Template]] = None) -> None:
        source = build_default_templates() if templates is None else tuple(templates)
        self._templates: Dict[str, Template] = {t.template_id: t for t in source}

    def get(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def list_templates(self) -> Tuple[Template, ...]:
        return tuple(self._templates.values())

    def register(self, template: Template) -> None:
        self._templates[template.template_id] = template


@dataclass(frozen=True)
class TemplateLookup:
    template: Template
    requested: Optional[str]
    fell_back: bool = False


_WHITESPACE = re.compile(r"\s+")


def normalize_category(category: Optional[str]) -> str:
    """'3 BHK' → '3BHK', ' villa ' → 'Villa'."""
    if not category:
        return ""
    compact = _WHITESPACE.sub("", category.strip())
    if compact.upper().endswith("BHK"):
        return compact.upper()
    return compact[:1].upper() + compact[1:].lower()


def lookup_template(provider: TemplateProvider, category: Optional[str]) -> TemplateLookup:
    template = provider.get(normalize_category(category))
    if template is not None:
        return TemplateLookup(template=template, requested=category)
    fallback = provider.get(DEFAULT_TEMPLATE_ID)
    if fallback is None:
        raise LookupError(f"Default template '{DEFAULT_TEMPLATE_ID}' is not registered.")
    logger.warning(
        f"No template for category '{category}', falling back to {DEFAULT_TEMPLATE_ID}"
    )
    return TemplateLookup(template=fallback, requested=category, fell_back=True)


# ══════════════════════════════════════════════════════════════
# BUILT-IN TEMPLATES
# ══════════════════════════════════════════════════════════════

def _joinery(description: str, build_type: BuildType = BuildType.HANDMADE) -> TemplateItem:
    return TemplateItem(
        description=description,
        build_type=build_type,
        material=GENERIC_CORE,
        finish=GENERIC_FINISH,
        hardware=GENERIC_HARDWARE,
    )


_VANITY = (TemplateItem(description="Vanity"),)
_WARDROBE = (_joinery("Wardrobe (Swing)"), _joinery("Loft"))
_KITCHEN_FULL = (
    _joinery("Kitchen – Base", BuildType.FACTORY),
    _joinery("Kitchen – Wall", BuildType.FACTORY),
    _joinery("Kitchen – Loft", BuildType.FACTORY),
)
_KITCHEN_SHORT = _KITCHEN_FULL[:2]
_LIVING = (_joinery("TV Unit – Base"), _joinery("Crockery Base"))


def _template(
    template_id: str,
    name: str,
    interior_rooms: Tuple[Tuple[str, str, Tuple[TemplateItem, ...]], ...],
) -> Template:
    """Interior rooms as given, then one FC line per interior room."""
    rooms = [
        TemplateRoom(key=key, label=label, tab=RoomTab.INTERIORS, items=items)
        for key, label, items in interior_rooms
    ]
    rooms += [
        TemplateRoom(key=key, label=label, tab=RoomTab.FC, fc_line=True)
        for key, label, _ in interior_rooms
    ]
    return Template(template_id=template_id, name=name, rooms=tuple(rooms))


def build_default_templates() -> Tuple[Template, ...]:
    misc = ("Other", "Misc", ())
    return (
        _template("1BHK", "1 BHK", (
            ("Kitchen", "Kitchen", _KITCHEN_FULL),
            ("Living", "Living", (_joinery("TV Unit – Base"), _joinery("TV Back Panel"))),
            ("Bedroom1", "Bedroom 1", _WARDROBE),
            ("Bathroom1", "Bathroom 1", _VANITY),
            misc,
        )),
        _template("2BHK", "2 BHK", (
            ("Kitchen", "Kitchen", _KITCHEN_FULL),
            ("Living", "Living", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bathroom1", "Bathroom 1", _VANITY),
            ("Bathroom2", "Bathroom 2", _VANITY),
            misc,
        )),
        _template("3BHK", "3 BHK", (
            ("Kitchen", "Kitchen", _KITCHEN_FULL),
            ("Living", "Living/Dining", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE + (_joinery("Dresser Base"),)),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bedroom3", "Bedroom 3", _WARDROBE),
            ("Bathroom1", "Bathroom 1", _VANITY),
            ("Bathroom2", "Bathroom 2", _VANITY),
            misc,
        )),
        _template("4BHK", "4 BHK", (
            ("Kitchen", "Kitchen", _KITCHEN_FULL),
            ("Living", "Living/Dining", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE + (_joinery("Dresser Base"),)),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bedroom3", "Bedroom 3", _WARDROBE),
            ("Bedroom4", "Bedroom 4", _WARDROBE),
            ("Bathroom1", "Bathroom 1", _VANITY),
            ("Bathroom2", "Bathroom 2", _VANITY),
            ("Bathroom3", "Bathroom 3", _VANITY),
            misc,
        )),
        _template("Duplex", "Duplex", (
            ("Kitchen", "Kitchen", _KITCHEN_SHORT),
            ("Living", "Living/Dining", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bedroom3", "Bedroom 3", _WARDROBE),
            misc,
        )),
        _template("Triplex", "Triplex", (
            ("Kitchen", "Kitchen", _KITCHEN_SHORT),
            ("Living", "Living/Dining", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bedroom3", "Bedroom 3", _WARDROBE),
            ("Bedroom4", "Bedroom 4", _WARDROBE),
            misc,
        )),
        _template("Villa", "Villa", (
            ("Kitchen", "Kitchen", _KITCHEN_SHORT),
            ("Living", "Living/Dining", _LIVING),
            ("Bedroom1", "Master Bedroom", _WARDROBE),
            ("Bedroom2", "Bedroom 2", _WARDROBE),
            ("Bedroom3", "Bedroom 3", _WARDROBE),
            ("Bedroom4", "Bedroom 4", _WARDROBE),
            misc,
        )),
        _template("Commercial", "Commercial", (
            ("Living", "Reception", (_joinery("Front Desk"), _joinery("Storage Cabinets"))),
            ("Other", "Work Area", (_joinery("Work Tables"), _joinery("Storage"))),
            ("Other", "Conference", (_joinery("Credenza"), _joinery("Wall Storage"))),
            misc,
        )),
    )
