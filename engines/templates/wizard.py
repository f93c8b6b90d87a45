"""
CASA Templates — Apply Wizard
===============================
Explicit state machine for applying a template:

    PREVIEW ──► CUSTOMIZE ──┐
       │                    ▼
       └──────────────► (existing items?) ──► MODE_SELECT ──► APPLYING ──► DONE
                            │ no
                            └────────────────────────────────► APPLYING (merge)

Transitions are pure: each returns a new WizardState or raises a
CommandRejectedError. Nothing here touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional

from core.commands.rejection import ReasonCode, reject
from engines.templates.catalog import OPTIONAL_ROOM_KEYS


class WizardStep(Enum):
    PREVIEW = "preview"
    CUSTOMIZE = "customize"
    MODE_SELECT = "mode_select"
    APPLYING = "applying"
    DONE = "done"


class ApplyMode(Enum):
    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class WizardState:
    template_id: str
    has_existing_items: bool
    step: WizardStep = WizardStep.PREVIEW
    selected_optional: FrozenSet[str] = field(default_factory=frozenset)
    mode: Optional[ApplyMode] = None
    replace_confirmed: bool = False


def _require_step(state: WizardState, *allowed: WizardStep, action: str) -> None:
    if state.step not in allowed:
        expected = ", ".join(step.value for step in allowed)
        raise reject(
            ReasonCode.INVALID_WIZARD_STEP,
            f"Cannot {action} from step '{state.step.value}' (expected {expected}).",
            action,
        )


def start_wizard(template_id: str, has_existing_items: bool) -> WizardState:
    return WizardState(template_id=template_id, has_existing_items=has_existing_items)


def open_customize(state: WizardState) -> WizardState:
    _require_step(state, WizardStep.PREVIEW, action="open_customize")
    return replace(state, step=WizardStep.CUSTOMIZE)


def toggle_optional_room(state: WizardState, room_key: str) -> WizardState:
    _require_step(state, WizardStep.CUSTOMIZE, action="toggle_optional_room")
    if room_key not in OPTIONAL_ROOM_KEYS:
        raise reject(
            ReasonCode.INVALID_REQUEST,
            f"'{room_key}' is not an optional room.",
            "toggle_optional_room",
        )
    selected = set(state.selected_optional)
    selected.symmetric_difference_update({room_key})
    return replace(state, selected_optional=frozenset(selected))


def proceed(state: WizardState) -> WizardState:
    """Leave preview/customize; mode selection only when items already exist."""
    _require_step(state, WizardStep.PREVIEW, WizardStep.CUSTOMIZE, action="proceed")
    if state.has_existing_items:
        return replace(state, step=WizardStep.MODE_SELECT)
    return replace(state, step=WizardStep.APPLYING, mode=ApplyMode.MERGE)


def choose_mode(state: WizardState, mode: ApplyMode, *, confirmed: bool = False) -> WizardState:
    _require_step(state, WizardStep.MODE_SELECT, action="choose_mode")
    mode = ApplyMode(mode)
    if mode is ApplyMode.REPLACE and not confirmed:
        raise reject(
            ReasonCode.REPLACE_NOT_CONFIRMED,
            "Replace deletes every existing item and must be confirmed.",
            "choose_mode",
        )
    return replace(
        state,
        step=WizardStep.APPLYING,
        mode=mode,
        replace_confirmed=mode is ApplyMode.REPLACE,
    )


def finish(state: WizardState) -> WizardState:
    _require_step(state, WizardStep.APPLYING, action="finish")
    return replace(state, step=WizardStep.DONE)
