"""
CASA Adapters — Line Item Store App Configuration
===================================================
Persists interior, false-ceiling, other and change-order items.

This app:
- Stores line items keyed by owner (quotation or change order)
- Preserves sort order and insertion order

This app does NOT:
- Price items (engines.pricing does)
- Compute totals (engines.quotation does)
"""

from django.apps import AppConfig


class LineItemStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "adapters.django_store"
    label = "line_items"
    verbose_name = "CASA Line Item Store"
