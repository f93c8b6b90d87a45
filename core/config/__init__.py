"""
CASA Core Config — Public API
===============================
Admin-configurable global rules (tax, build type, payment schedule).
Doctrine: No hardcoded tax percents in engine logic.
"""

from core.config.rules import (
    BUILD_TYPES,
    DEFAULT_PAYMENT_SCHEDULE,
    CityFactor,
    GlobalRules,
    InMemoryRulesProvider,
    PaymentMilestone,
    RulesProvider,
)

__all__ = [
    "BUILD_TYPES",
    "DEFAULT_PAYMENT_SCHEDULE",
    "CityFactor",
    "GlobalRules",
    "InMemoryRulesProvider",
    "PaymentMilestone",
    "RulesProvider",
]
