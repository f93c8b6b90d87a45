"""CASA Templates - template applier service.

Executes a materialized plan against the line-item store in one of
two modes:

- MERGE   : add rooms whose label is not already on the quotation
- REPLACE : delete every item, then materialize the full template

Replace is bracketed by the quotation's template_state marker. A
replace interrupted midway leaves REPLACE_PENDING set; merges are then
refused until replace is re-run to completion.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Tuple

from core.audit import AuditSink
from core.commands.rejection import CommandRejectedError, ReasonCode, reject
from core.time import Clock
from engines.pricing.items import ItemKind, LineItem
from engines.quotation.models import TemplateState
from engines.quotation.policies import (
    quotation_must_not_be_locked_policy,
    replace_must_not_be_pending_policy,
)
from engines.quotation.services import QuotationService
from engines.quotation.store import LineItemStore
from engines.templates.catalog import TemplateProvider, lookup_template
from engines.templates.events import (
    build_template_applied_entry,
    build_template_fallback_entry,
)
from engines.templates.materialize import MaterializedPlan, materialize
from engines.templates.wizard import ApplyMode, WizardState, WizardStep, finish

logger = logging.getLogger("casa.templates")


@dataclass(frozen=True)
class ApplyResult:
    template_id: str
    mode: ApplyMode
    created: Tuple[LineItem, ...]
    deleted: int = 0
    skipped_rooms: Tuple[str, ...] = ()
    fell_back: bool = False


class TemplateApplier:
    def __init__(
        self,
        *,
        quotations: QuotationService,
        items: LineItemStore,
        templates: TemplateProvider,
        audit: AuditSink,
        clock: Clock,
    ):
        self._quotations = quotations
        self._items = items
        self._templates = templates
        self._audit = audit
        self._clock = clock

    def has_existing_items(self, quotation_id: uuid.UUID) -> bool:
        return bool(self._quotations.list_items(quotation_id))

    def apply(
        self,
        quotation_id: uuid.UUID,
        category: str,
        *,
        mode: ApplyMode = ApplyMode.MERGE,
        selected_optional: Iterable[str] = (),
        confirm_replace: bool = False,
        actor_id: str = "system",
    ) -> ApplyResult:
        mode = ApplyMode(mode)
        before = self._quotations.get_quotation(quotation_id)
        rejection = quotation_must_not_be_locked_policy(before)
        if rejection is None and mode is ApplyMode.MERGE:
            rejection = replace_must_not_be_pending_policy(before)
        if rejection is not None:
            raise CommandRejectedError(rejection)
        if mode is ApplyMode.REPLACE and not confirm_replace:
            raise reject(
                ReasonCode.REPLACE_NOT_CONFIRMED,
                "Replace deletes every existing item and must be confirmed.",
                "TemplateApplier.apply",
            )

        lookup = lookup_template(self._templates, category)
        template = lookup.template
        if lookup.fell_back:
            self._audit.record(build_template_fallback_entry(
                actor_id=actor_id,
                quotation=before,
                requested=category,
                template_id=template.template_id,
                occurred_at=self._clock.now_utc(),
            ))

        deleted = 0
        if mode is ApplyMode.REPLACE:
            quotation = self._quotations.set_template_state(
                quotation_id, TemplateState.REPLACE_PENDING
            )
            deleted = self._items.delete_for_owner(quotation_id)
            plan = materialize(template, selected_optional)
        else:
            quotation = before
            existing = self._items.list_for_owner(quotation_id)
            plan = materialize(
                template,
                selected_optional,
                existing_rooms={
                    item.room_type for item in existing
                    if item.kind is not ItemKind.OTHER and item.room_type
                },
                existing_others={
                    item.description for item in existing
                    if item.kind is ItemKind.OTHER and item.description
                },
            )

        created = self._create_items(quotation, plan, actor_id)
        if mode is ApplyMode.REPLACE:
            self._quotations.set_template_state(quotation_id, TemplateState.IDLE)
        after = self._quotations.recompute_totals(quotation_id)

        self._audit.record(build_template_applied_entry(
            actor_id=actor_id,
            before=before,
            after=after,
            template_id=template.template_id,
            mode=mode.value,
            created=len(created),
            deleted=deleted,
            occurred_at=self._clock.now_utc(),
        ))
        logger.info(
            f"Template {template.template_id} applied to {after.quote_number} "
            f"({mode.value}): {len(created)} items created, {deleted} removed"
        )
        return ApplyResult(
            template_id=template.template_id,
            mode=mode,
            created=created,
            deleted=deleted,
            skipped_rooms=plan.skipped_rooms,
            fell_back=lookup.fell_back,
        )

    def apply_wizard(
        self,
        quotation_id: uuid.UUID,
        state: WizardState,
        *,
        actor_id: str = "system",
    ) -> Tuple[WizardState, ApplyResult]:
        """Run the apply step of a wizard that has reached APPLYING."""
        if state.step is not WizardStep.APPLYING or state.mode is None:
            raise reject(
                ReasonCode.INVALID_WIZARD_STEP,
                f"Wizard is at '{state.step.value}', not ready to apply.",
                "TemplateApplier.apply_wizard",
            )
        result = self.apply(
            quotation_id,
            state.template_id,
            mode=state.mode,
            selected_optional=state.selected_optional,
            confirm_replace=state.replace_confirmed,
            actor_id=actor_id,
        )
        return finish(state), result

    def _create_items(
        self, quotation, plan: MaterializedPlan, actor_id: str
    ) -> Tuple[LineItem, ...]:
        created = []
        offsets = {
            kind: len(self._items.list_for_owner(quotation.quotation_id, kind))
            for kind in ItemKind
        }
        for index, draft in enumerate(plan.drafts):
            item = LineItem(
                item_id=uuid.uuid4(),
                owner_id=quotation.quotation_id,
                kind=draft.kind,
                sort_order=offsets[draft.kind] + index,
                **draft.fields,
            )
            item = self._quotations.price_item(quotation, item, actor_id=actor_id)
            created.append(self._items.add(item))
        return tuple(created)
