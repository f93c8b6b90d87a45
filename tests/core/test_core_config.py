"""CASA global rules tests."""

from decimal import Decimal

import pytest


class TestGlobalRules:
    def test_defaults(self):
        from core.config import GlobalRules

        rules = GlobalRules()
        assert rules.tax_percent == Decimal("18")
        assert rules.build_type_default == "handmade"
        assert rules.validity_days == 15
        assert [m.label for m in rules.payment_schedule] == [
            "Booking", "Site Measurement", "On Delivery", "After Installation",
        ]
        assert sum(m.percent for m in rules.payment_schedule) == Decimal("100")

    def test_tax_out_of_range_rejected(self):
        from core.config import GlobalRules

        with pytest.raises(ValueError, match="tax_percent"):
            GlobalRules(tax_percent=Decimal("29"))

    def test_validity_and_bedroom_bounds(self):
        from core.config import GlobalRules

        with pytest.raises(ValueError, match="validity_days"):
            GlobalRules(validity_days=91)
        with pytest.raises(ValueError, match="bedroom_factor_base"):
            GlobalRules(bedroom_factor_base=6)
        with pytest.raises(ValueError, match="per_bedroom_delta"):
            GlobalRules(per_bedroom_delta=Decimal("0.3"))

    def test_schedule_must_sum_to_hundred(self):
        from core.config import GlobalRules, PaymentMilestone

        with pytest.raises(ValueError, match="sum to 100"):
            GlobalRules(payment_schedule=(
                PaymentMilestone("Booking", Decimal("10")),
                PaymentMilestone("Handover", Decimal("80")),
            ))

    def test_unknown_build_type_rejected(self):
        from core.config import GlobalRules

        with pytest.raises(ValueError, match="build_type_default"):
            GlobalRules(build_type_default="modular")

    def test_city_factor_lookup_is_case_insensitive(self):
        from core.config import CityFactor, GlobalRules

        rules = GlobalRules(city_factors=(CityFactor("Bengaluru", Decimal("1.05")),))
        assert rules.city_factor("bengaluru") == Decimal("1.05")
        assert rules.city_factor("Pune") == Decimal("1")

    def test_dict_round_trip(self):
        from core.config import GlobalRules

        rules = GlobalRules(tax_percent=Decimal("12"), validity_days=30)
        assert GlobalRules.from_dict(rules.to_dict()) == rules


class TestInMemoryRulesProvider:
    def test_update_replaces_rules(self):
        from core.config import InMemoryRulesProvider

        provider = InMemoryRulesProvider()
        before = provider.get_global_rules()
        after = provider.update(tax_percent=Decimal("20"))
        assert after.tax_percent == Decimal("20")
        assert provider.get_global_rules() is after
        assert before.tax_percent == Decimal("18")

    def test_update_still_validates(self):
        from core.config import InMemoryRulesProvider

        provider = InMemoryRulesProvider()
        with pytest.raises(ValueError):
            provider.update(tax_percent=Decimal("-1"))
