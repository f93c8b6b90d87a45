"""CASA Change Orders - request dataclasses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from core.commands.rejection import ReasonCode, reject
from engines.change_orders.models import MAX_TITLE_LENGTH, ChangeOrderStatus
from engines.pricing.items import CalcMode, ChangeType, ItemKind
from engines.quotation.commands import CHANGE_ORDER_ITEM_FIELDS, normalize_item_fields


@dataclass(frozen=True)
class CreateChangeOrderRequest:
    title: str
    description: Optional[str] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise reject(ReasonCode.INVALID_REQUEST, "title must be non-empty.",
                         "CreateChangeOrderRequest")
        if len(self.title.strip()) > MAX_TITLE_LENGTH:
            raise reject(ReasonCode.INVALID_REQUEST,
                         f"title cannot exceed {MAX_TITLE_LENGTH} characters.",
                         "CreateChangeOrderRequest")


@dataclass(frozen=True)
class AddChangeOrderItemRequest:
    kind: ItemKind
    change_type: ChangeType = ChangeType.ADDITION
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        try:
            kind = ItemKind(self.kind)
            change_type = ChangeType(self.change_type)
        except ValueError as exc:
            raise reject(ReasonCode.INVALID_REQUEST, str(exc),
                         "AddChangeOrderItemRequest") from None
        normalized = normalize_item_fields(
            self.fields, "AddChangeOrderItemRequest", CHANGE_ORDER_ITEM_FIELDS
        )
        normalized.setdefault("calc", CalcMode.SQFT)
        normalized["change_type"] = change_type
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "change_type", change_type)
        object.__setattr__(self, "fields", normalized)


@dataclass(frozen=True)
class UpdateChangeOrderItemRequest:
    item_id: uuid.UUID
    changes: Mapping[str, Any]

    def __post_init__(self):
        if not isinstance(self.item_id, uuid.UUID):
            raise reject(ReasonCode.INVALID_REQUEST, "item_id must be UUID.",
                         "UpdateChangeOrderItemRequest")
        if not self.changes:
            raise reject(ReasonCode.INVALID_REQUEST, "changes must be non-empty.",
                         "UpdateChangeOrderItemRequest")
        changes = normalize_item_fields(
            self.changes, "UpdateChangeOrderItemRequest", CHANGE_ORDER_ITEM_FIELDS
        )
        if "change_type" in changes and changes["change_type"] is None:
            raise reject(ReasonCode.INVALID_REQUEST, "change_type cannot be cleared.",
                         "UpdateChangeOrderItemRequest")
        object.__setattr__(self, "changes", changes)


@dataclass(frozen=True)
class ChangeOrderTransitionRequest:
    target_status: ChangeOrderStatus

    def __post_init__(self):
        try:
            status = ChangeOrderStatus(self.target_status)
        except ValueError:
            raise reject(ReasonCode.INVALID_REQUEST,
                         f"target_status '{self.target_status}' is not valid.",
                         "ChangeOrderTransitionRequest") from None
        object.__setattr__(self, "target_status", status)
