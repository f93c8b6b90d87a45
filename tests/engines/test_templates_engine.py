"""CASA Templates tests (catalog lookup, materialization, wizard, apply modes)."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

NOW = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)

# 3BHK: 14 interior lines, 7 ceiling lines, 4 others.
THREE_BHK_ITEMS = 25


def _svc():
    from core.audit import InMemoryAuditSink
    from core.config import InMemoryRulesProvider
    from core.time import FixedClock
    from engines.pricing.catalog import build_default_catalog
    from engines.quotation.repository import (
        InMemoryAgreementRepository,
        InMemoryQuotationRepository,
    )
    from engines.quotation.services import QuotationService
    from engines.quotation.store import InMemoryLineItemStore
    from engines.templates.catalog import InMemoryTemplateProvider
    from engines.templates.services import TemplateApplier

    catalog = build_default_catalog()
    items = InMemoryLineItemStore(catalog=catalog)
    audit = InMemoryAuditSink()
    clock = FixedClock(NOW)
    quotations = QuotationService(
        quotations=InMemoryQuotationRepository(),
        items=items,
        agreements=InMemoryAgreementRepository(),
        catalog=catalog,
        rules=InMemoryRulesProvider(),
        audit=audit,
        clock=clock,
    )
    applier = TemplateApplier(
        quotations=quotations,
        items=items,
        templates=InMemoryTemplateProvider(),
        audit=audit,
        clock=clock,
    )
    return quotations, applier, audit


def _create(quotations):
    from engines.quotation.commands import CreateQuotationRequest

    return quotations.create_quotation(
        CreateQuotationRequest(project_name="Palm Grove", client_name="R. Menon")
    )


def _template(template_id="3BHK"):
    from engines.templates.catalog import InMemoryTemplateProvider

    return InMemoryTemplateProvider().get(template_id)


class TestTemplateCatalog:
    def test_built_in_templates(self):
        from engines.templates.catalog import InMemoryTemplateProvider

        ids = [t.template_id for t in InMemoryTemplateProvider().list_templates()]
        assert ids == [
            "1BHK", "2BHK", "3BHK", "4BHK", "Duplex", "Triplex", "Villa", "Commercial",
        ]

    def test_category_normalization(self):
        from engines.templates.catalog import normalize_category

        assert normalize_category("3 bhk") == "3BHK"
        assert normalize_category(" villa ") == "Villa"
        assert normalize_category(None) == ""

    def test_unknown_category_falls_back_to_3bhk(self):
        from engines.templates.catalog import InMemoryTemplateProvider, lookup_template

        lookup = lookup_template(InMemoryTemplateProvider(), "Penthouse")
        assert lookup.template.template_id == "3BHK"
        assert lookup.fell_back is True
        assert lookup.requested == "Penthouse"

    def test_known_category_does_not_fall_back(self):
        from engines.templates.catalog import InMemoryTemplateProvider, lookup_template

        lookup = lookup_template(InMemoryTemplateProvider(), "2 BHK")
        assert lookup.template.template_id == "2BHK"
        assert lookup.fell_back is False

    def test_missing_default_template_raises(self):
        from engines.templates.catalog import InMemoryTemplateProvider, lookup_template

        with pytest.raises(LookupError):
            lookup_template(InMemoryTemplateProvider(templates=()), "Villa")

    def test_preview_lists_unique_room_labels(self):
        from engines.templates.catalog import preview_rooms

        preview = preview_rooms(_template("1BHK"))
        assert preview.interiors == ("Kitchen", "Living", "Bedroom 1", "Bathroom 1", "Misc")
        assert preview.fc == preview.interiors


class TestMaterialize:
    def test_default_plan(self):
        from engines.pricing.items import BuildType, CalcMode, ItemKind
        from engines.templates.materialize import materialize

        plan = materialize(_template())
        assert len(plan.interior) == 14
        assert len(plan.false_ceiling) == 7
        assert len(plan) == THREE_BHK_ITEMS
        vanity = [d for d in plan.interior if d.description == "Vanity"][0]
        assert vanity.fields["build_type"] is BuildType.HANDMADE
        assert vanity.fields["material"] == "Generic Ply"
        assert vanity.fields["hardware"] == "Nimmi"
        kitchen = [d for d in plan.interior if d.room_type == "Kitchen"]
        assert {d.fields["build_type"] for d in kitchen} == {BuildType.FACTORY}
        assert all(d.kind is ItemKind.FALSE_CEILING for d in plan.false_ceiling)
        assert [d.fields["calc"] for d in plan.other] == [
            CalcMode.LSUM, CalcMode.LSUM, CalcMode.COUNT, CalcMode.COUNT,
        ]

    def test_optional_rooms_need_selection(self):
        from engines.templates.materialize import materialize

        plan = materialize(_template(), selected_optional={"Other"})
        assert "Misc" in [d.room_type for d in plan.false_ceiling]
        assert len(plan) == THREE_BHK_ITEMS + 1

    def test_commercial_work_areas_are_optional(self):
        from engines.templates.materialize import materialize

        template = _template("Commercial")
        assert [d.room_type for d in materialize(template).interior] == [
            "Reception", "Reception",
        ]
        selected = materialize(template, selected_optional={"Other"})
        assert {d.room_type for d in selected.interior} == {
            "Reception", "Work Area", "Conference",
        }

    def test_existing_rooms_and_others_skipped(self):
        from engines.templates.materialize import FC_LIGHTS, materialize

        plan = materialize(
            _template(), existing_rooms={"Kitchen"}, existing_others={FC_LIGHTS},
        )
        assert "Kitchen" not in {d.room_type for d in plan.drafts}
        assert plan.skipped_rooms == ("Kitchen",)
        assert FC_LIGHTS not in [d.description for d in plan.other]


class TestWizard:
    def test_fresh_quotation_skips_mode_select(self):
        from engines.templates.wizard import ApplyMode, WizardStep, proceed, start_wizard

        state = proceed(start_wizard("3BHK", has_existing_items=False))
        assert state.step is WizardStep.APPLYING
        assert state.mode is ApplyMode.MERGE

    def test_customize_then_replace(self):
        from engines.templates.wizard import (
            ApplyMode,
            WizardStep,
            choose_mode,
            open_customize,
            proceed,
            start_wizard,
            toggle_optional_room,
        )

        state = open_customize(start_wizard("3BHK", has_existing_items=True))
        state = toggle_optional_room(state, "Foyer")
        state = toggle_optional_room(state, "Balcony")
        state = toggle_optional_room(state, "Foyer")
        assert state.selected_optional == frozenset({"Balcony"})

        state = proceed(state)
        assert state.step is WizardStep.MODE_SELECT
        state = choose_mode(state, ApplyMode.REPLACE, confirmed=True)
        assert state.step is WizardStep.APPLYING
        assert state.replace_confirmed is True

    def test_replace_requires_confirmation(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.templates.wizard import ApplyMode, choose_mode, proceed, start_wizard

        state = proceed(start_wizard("3BHK", has_existing_items=True))
        with pytest.raises(CommandRejectedError) as exc:
            choose_mode(state, ApplyMode.REPLACE)
        assert exc.value.code == ReasonCode.REPLACE_NOT_CONFIRMED

    def test_out_of_order_steps_rejected(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.templates.wizard import finish, start_wizard, toggle_optional_room

        state = start_wizard("3BHK", has_existing_items=False)
        with pytest.raises(CommandRejectedError) as exc:
            finish(state)
        assert exc.value.code == ReasonCode.INVALID_WIZARD_STEP
        with pytest.raises(CommandRejectedError):
            toggle_optional_room(state, "Foyer")

    def test_only_optional_rooms_toggle(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.templates.wizard import open_customize, start_wizard, toggle_optional_room

        state = open_customize(start_wizard("3BHK", has_existing_items=False))
        with pytest.raises(CommandRejectedError) as exc:
            toggle_optional_room(state, "Kitchen")
        assert exc.value.code == ReasonCode.INVALID_REQUEST


class TestTemplateApplier:
    def test_merge_into_empty_quotation(self):
        from engines.templates.wizard import ApplyMode

        quotations, applier, audit = _svc()
        quotation = _create(quotations)
        result = applier.apply(quotation.quotation_id, "3BHK")
        assert result.mode is ApplyMode.MERGE
        assert len(result.created) == THREE_BHK_ITEMS
        assert len(quotations.list_items(quotation.quotation_id)) == THREE_BHK_ITEMS
        kitchen = [i for i in result.created if i.room_type == "Kitchen"]
        assert {i.rate_auto for i in kitchen} == {Decimal("1500")}
        (entry,) = audit.by_action("TEMPLATE_APPLIED")
        assert entry.metadata["created"] == THREE_BHK_ITEMS

    def test_merge_twice_adds_nothing(self):
        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        applier.apply(quotation.quotation_id, "3BHK")
        second = applier.apply(quotation.quotation_id, "3BHK")
        assert second.created == ()
        assert "Kitchen" in second.skipped_rooms
        assert len(quotations.list_items(quotation.quotation_id)) == THREE_BHK_ITEMS

    def test_merge_keeps_existing_room_items(self):
        from engines.quotation.commands import AddItemRequest

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        own = quotations.add_item(quotation.quotation_id, AddItemRequest(
            kind="interior",
            fields={"room_type": "Kitchen", "calc": "LSUM", "direct_price": "80000"},
        ))
        result = applier.apply(quotation.quotation_id, "3BHK")
        assert "Kitchen" not in {i.room_type for i in result.created}
        assert own in quotations.list_items(quotation.quotation_id)
        assert quotations.get_quotation(quotation.quotation_id).totals.grand_subtotal == (
            Decimal("80000.00")
        )

    def test_replace_requires_confirmation(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.templates.wizard import ApplyMode

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        with pytest.raises(CommandRejectedError) as exc:
            applier.apply(quotation.quotation_id, "2BHK", mode=ApplyMode.REPLACE)
        assert exc.value.code == ReasonCode.REPLACE_NOT_CONFIRMED

    def test_replace_removes_everything_first(self):
        from engines.quotation.commands import AddItemRequest
        from engines.quotation.models import TemplateState
        from engines.templates.wizard import ApplyMode

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        applier.apply(quotation.quotation_id, "3BHK")
        quotations.add_item(quotation.quotation_id, AddItemRequest(
            kind="other", fields={"calc": "LSUM", "direct_price": "5000"},
        ))

        result = applier.apply(
            quotation.quotation_id, "1BHK", mode=ApplyMode.REPLACE, confirm_replace=True,
        )
        assert result.deleted == THREE_BHK_ITEMS + 1
        items = quotations.list_items(quotation.quotation_id)
        assert len(items) == len(result.created)
        assert "Bedroom 3" not in {i.room_type for i in items}
        stored = quotations.get_quotation(quotation.quotation_id)
        assert stored.template_state is TemplateState.IDLE
        assert stored.totals.grand_subtotal == Decimal("0.00")

    def test_interrupted_replace_blocks_merge_and_approval(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.quotation.models import TemplateState
        from engines.templates.wizard import ApplyMode

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        quotations.set_template_state(quotation.quotation_id, TemplateState.REPLACE_PENDING)

        with pytest.raises(CommandRejectedError) as exc:
            applier.apply(quotation.quotation_id, "3BHK")
        assert exc.value.code == ReasonCode.REPLACE_INCOMPLETE
        with pytest.raises(CommandRejectedError) as exc:
            quotations.approve(quotation.quotation_id)
        assert exc.value.code == ReasonCode.REPLACE_INCOMPLETE

        applier.apply(
            quotation.quotation_id, "3BHK", mode=ApplyMode.REPLACE, confirm_replace=True,
        )
        stored = quotations.get_quotation(quotation.quotation_id)
        assert stored.template_state is TemplateState.IDLE

    def test_fallback_is_audited(self):
        quotations, applier, audit = _svc()
        quotation = _create(quotations)
        result = applier.apply(quotation.quotation_id, "Penthouse")
        assert result.template_id == "3BHK"
        assert result.fell_back is True
        (entry,) = audit.by_action("TEMPLATE_FALLBACK")
        assert entry.metadata == {"requested": "Penthouse", "template_id": "3BHK"}

    def test_locked_quotation_rejected(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        quotations.approve(quotation.quotation_id)
        with pytest.raises(CommandRejectedError) as exc:
            applier.apply(quotation.quotation_id, "3BHK")
        assert exc.value.code == ReasonCode.QUOTATION_LOCKED

    def test_wizard_end_to_end(self):
        from engines.templates.wizard import (
            WizardStep,
            open_customize,
            proceed,
            start_wizard,
            toggle_optional_room,
        )

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        state = start_wizard("3BHK", applier.has_existing_items(quotation.quotation_id))
        state = proceed(toggle_optional_room(open_customize(state), "Other"))

        state, result = applier.apply_wizard(quotation.quotation_id, state)
        assert state.step is WizardStep.DONE
        assert len(result.created) == THREE_BHK_ITEMS + 1

    def test_wizard_must_reach_applying(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.templates.wizard import start_wizard

        quotations, applier, _ = _svc()
        quotation = _create(quotations)
        with pytest.raises(CommandRejectedError) as exc:
            applier.apply_wizard(quotation.quotation_id, start_wizard("3BHK", False))
        assert exc.value.code == ReasonCode.INVALID_WIZARD_STEP
