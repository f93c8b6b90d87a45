"""CASA Pricing Engine tests (rate resolver, line-item pricing, unit locks)."""

import uuid
from decimal import Decimal

import pytest

OWNER = uuid.uuid4()


def _item(**fields):
    from engines.pricing.items import ItemKind, LineItem

    fields.setdefault("kind", ItemKind.INTERIOR)
    return LineItem(item_id=uuid.uuid4(), owner_id=OWNER, **fields)


def _catalog():
    from engines.pricing.catalog import build_default_catalog

    return build_default_catalog()


class TestRateResolution:
    def test_handmade_with_generic_brands_is_base_rate(self):
        from engines.pricing.resolver import resolve_rate

        resolution = resolve_rate(
            "handmade", "Generic Ply", "Generic Laminate", "Nimmi",
            catalog=_catalog(),
        )
        assert resolution.rate == Decimal("1300")
        assert resolution.has_misses is False

    def test_factory_with_premium_brands_adds_every_adder(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import resolve_rate

        resolution = resolve_rate(
            BuildType.FACTORY, "Century Ply", "Acrylic", "Blum",
            catalog=_catalog(),
        )
        assert resolution.base_rate == Decimal("1500")
        assert resolution.rate == Decimal("2000")

    def test_unknown_brand_fails_open_with_zero_adder(self):
        from engines.pricing.catalog import BrandType
        from engines.pricing.resolver import resolve_rate

        resolution = resolve_rate(
            "handmade", "Mystery Ply", "Merino", None, catalog=_catalog(),
        )
        assert resolution.rate == Decimal("1400")
        assert [(m.brand_type, m.name) for m in resolution.misses] == [
            (BrandType.CORE, "Mystery Ply"),
        ]

    def test_inactive_brand_is_a_miss(self):
        from engines.pricing.catalog import BrandAdjustment, BrandType
        from engines.pricing.resolver import resolve_rate

        catalog = _catalog()
        catalog.add_brand(BrandAdjustment(
            brand_type=BrandType.HARDWARE, name="Blum",
            adder_per_sft=Decimal("200"), is_active=False,
        ))
        resolution = resolve_rate("handmade", None, None, "Blum", catalog=catalog)
        assert resolution.rate == Decimal("1300")
        assert resolution.has_misses is True

    def test_rate_rounds_half_up(self):
        from engines.pricing.catalog import BrandAdjustment, BrandType
        from engines.pricing.resolver import resolve_rate

        catalog = _catalog()
        catalog.add_brand(BrandAdjustment(
            brand_type=BrandType.FINISH, name="Veneer", adder_per_sft=Decimal("49.5"),
        ))
        resolution = resolve_rate("handmade", None, "Veneer", None, catalog=catalog)
        assert resolution.rate == Decimal("1350")

    def test_keyed_entry_base_rate_wins(self):
        from engines.pricing.catalog import RateCatalogEntry, Unit
        from engines.pricing.resolver import resolve_rate

        catalog = _catalog()
        catalog.add_entry(RateCatalogEntry(
            item_key="bar_counter", display_name="Bar Counter", unit=Unit.SFT,
            category="Living Room", base_rate_handmade=Decimal("1800"),
            base_rate_factory=Decimal("2100"),
        ))
        resolution = resolve_rate(
            "factory", None, None, None, catalog=catalog, item_key="bar_counter",
        )
        assert resolution.rate == Decimal("2100")


class TestLineItemPricing:
    def test_interior_area_is_length_times_height(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import price_line_item

        item = _item(length="10", height="8", material="Generic Ply")
        priced = price_line_item(item, _catalog(), BuildType.HANDMADE)
        assert priced.rate_auto == Decimal("1300")
        assert priced.unit_price == Decimal("1300")
        assert priced.total_price == Decimal("104000.00")

    def test_item_build_type_overrides_quotation_default(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import price_line_item

        item = _item(length="1", height="1", build_type="factory")
        priced = price_line_item(item, _catalog(), BuildType.HANDMADE)
        assert priced.rate_auto == Decimal("1500")

    def test_wall_paneling_is_always_handmade(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import price_line_item

        item = _item(
            description="Custom Wall Paneling", length="2", height="5",
            build_type="factory",
        )
        priced = price_line_item(item, _catalog(), BuildType.FACTORY)
        assert priced.rate_auto == Decimal("1300")
        assert priced.total_price == Decimal("13000.00")

    def test_lump_sum_bypasses_resolver(self):
        from engines.pricing.items import BuildType, CalcMode
        from engines.pricing.resolver import price_line_item

        item = _item(
            item_key="termite_treatment", calc=CalcMode.LSUM,
            direct_price="5000", material="Century Ply",
        )
        priced = price_line_item(item, _catalog(), BuildType.FACTORY)
        assert priced.rate_auto == Decimal("5000.00")
        assert priced.total_price == Decimal("5000.00")

    def test_locked_count_item_uses_direct_price(self):
        from engines.pricing.items import BuildType, CalcMode
        from engines.pricing.resolver import price_line_item

        item = _item(
            item_key="fc_lights", calc=CalcMode.COUNT, quantity="6",
            direct_price="450",
        )
        priced = price_line_item(item, _catalog(), BuildType.HANDMADE)
        assert priced.total_price == Decimal("2700.00")

    def test_false_ceiling_area_is_length_times_width(self):
        from engines.pricing.items import BuildType, ItemKind
        from engines.pricing.resolver import price_line_item

        item = _item(
            kind=ItemKind.FALSE_CEILING, room_type="Living",
            length="10", width="12", direct_price="90",
        )
        priced = price_line_item(item, _catalog(), BuildType.HANDMADE)
        assert priced.total_price == Decimal("10800.00")

    def test_false_ceiling_missing_width_prices_zero(self):
        from engines.pricing.items import BuildType, ItemKind
        from engines.pricing.resolver import price_line_item

        item = _item(kind=ItemKind.FALSE_CEILING, length="10", direct_price="90")
        priced = price_line_item(item, _catalog(), BuildType.HANDMADE)
        assert priced.total_price == Decimal("0.00")

    def test_negative_dimension_rejected(self):
        with pytest.raises(ValueError, match="length cannot be negative"):
            _item(length="-1", height="2")


class TestRateOverride:
    def test_override_then_clear_restores_auto_rate(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import (
            apply_rate_override,
            clear_rate_override,
            price_line_item,
        )

        priced = price_line_item(
            _item(length="10", height="2"), _catalog(), BuildType.HANDMADE
        )
        overridden = apply_rate_override(priced, "1550")
        assert overridden.is_rate_overridden is True
        assert overridden.unit_price == Decimal("1550.00")
        assert overridden.rate_auto == Decimal("1300")
        assert overridden.total_price == Decimal("31000.00")

        cleared = clear_rate_override(overridden)
        assert cleared.is_rate_overridden is False
        assert cleared.rate_override is None
        assert cleared.unit_price == Decimal("1300")
        assert cleared.total_price == priced.total_price

    def test_override_survives_repricing(self):
        from engines.pricing.items import BuildType
        from engines.pricing.resolver import apply_rate_override, price_line_item

        catalog = _catalog()
        overridden = apply_rate_override(
            price_line_item(_item(length="1", height="1"), catalog, BuildType.HANDMADE),
            "999",
        )
        catalog.set_base_rate(BuildType.HANDMADE, Decimal("1400"))
        repriced = price_line_item(overridden, catalog, BuildType.HANDMADE)
        assert repriced.rate_auto == Decimal("1400")
        assert repriced.unit_price == Decimal("999.00")

    def test_negative_override_rejected(self):
        from engines.pricing.resolver import apply_rate_override

        with pytest.raises(ValueError):
            apply_rate_override(_item(), "-10")


class TestUnitLock:
    def test_locked_item_must_keep_its_unit(self):
        from core.commands.rejection import CommandRejectedError, ReasonCode
        from engines.pricing.items import CalcMode
        from engines.quotation.store import InMemoryLineItemStore

        store = InMemoryLineItemStore(catalog=_catalog())
        with pytest.raises(CommandRejectedError) as exc:
            store.add(_item(item_key="termite_treatment", calc=CalcMode.SQFT))
        assert exc.value.code == ReasonCode.UNIT_LOCKED

    def test_unlocked_key_accepts_any_calc(self):
        from engines.pricing.items import CalcMode
        from engines.quotation.store import InMemoryLineItemStore

        store = InMemoryLineItemStore(catalog=_catalog())
        item = store.add(_item(item_key="base_unit", calc=CalcMode.COUNT, quantity="2"))
        assert store.get(item.item_id) == item

    def test_update_to_wrong_unit_rejected(self):
        from core.commands.rejection import CommandRejectedError
        from engines.pricing.items import CalcMode
        from engines.quotation.store import InMemoryLineItemStore

        store = InMemoryLineItemStore(catalog=_catalog())
        item = store.add(_item(item_key="fc_fan_hook", calc=CalcMode.COUNT, quantity="2"))
        with pytest.raises(CommandRejectedError):
            store.update(item.with_changes(calc=CalcMode.LSUM))
        assert store.get(item.item_id).calc is CalcMode.COUNT
