"""
CASA Line Item Store — ORM Model
==================================
One row per line item. The three quotation variants and change-order
items share this table, distinguished by `kind` and `change_type`.

This file contains NO pricing logic. Derived prices are written by
the engines and stored as-is.
"""

import uuid

from django.db import models


class ItemKindChoice(models.TextChoices):
    INTERIOR = "interior", "Interior"
    FALSE_CEILING = "false_ceiling", "False Ceiling"
    OTHER = "other", "Other"


class CalcChoice(models.TextChoices):
    SQFT = "SQFT", "Square feet"
    COUNT = "COUNT", "Count"
    LSUM = "LSUM", "Lump sum"


def _amount(**kwargs):
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class LineItemRecord(models.Model):
    # ── Identity & Ownership ──────────────────────────────────
    item_id = models.UUIDField(unique=True, default=uuid.uuid4, editable=False)
    owner_id = models.UUIDField(
        help_text="Quotation or change order the item belongs to.",
    )
    kind = models.CharField(max_length=20, choices=ItemKindChoice.choices)

    # ── Description ───────────────────────────────────────────
    room_type = models.CharField(max_length=120, null=True, blank=True)
    description = models.TextField(blank=True, default="")
    calc = models.CharField(max_length=8, choices=CalcChoice.choices, default=CalcChoice.SQFT)
    item_key = models.CharField(max_length=100, null=True, blank=True)
    item_type = models.CharField(max_length=60, null=True, blank=True)

    # ── Dimensions & Direct Entry ─────────────────────────────
    length = _amount(null=True, blank=True)
    height = _amount(null=True, blank=True)
    width = _amount(null=True, blank=True)
    quantity = _amount(null=True, blank=True)
    direct_price = _amount(null=True, blank=True)

    # ── Build & Brands ────────────────────────────────────────
    build_type = models.CharField(max_length=20, null=True, blank=True)
    material = models.CharField(max_length=120, null=True, blank=True)
    finish = models.CharField(max_length=120, null=True, blank=True)
    hardware = models.CharField(max_length=120, null=True, blank=True)

    # ── Pricing (derived) ─────────────────────────────────────
    rate_auto = _amount(default=0)
    rate_override = _amount(null=True, blank=True)
    is_rate_overridden = models.BooleanField(default=False)
    unit_price = _amount(default=0)
    total_price = _amount(default=0)

    # ── Change Orders ─────────────────────────────────────────
    change_type = models.CharField(max_length=20, null=True, blank=True)

    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = "casa_line_item"
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["owner_id", "kind"], name="idx_item_owner_kind"),
        ]

    def __str__(self):
        return f"[{self.kind}] {self.room_type or 'Other'}: {self.description}"
