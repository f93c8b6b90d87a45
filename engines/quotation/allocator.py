"""
CASA Quotation — Discount & Tax Allocator
===========================================
Applies one discount fairly across the two partitions, then a flat
tax percent to each discounted partition.

RULES (NON-NEGOTIABLE):
- percent: the same percentage is applied to each partition
- amount:  capped at the grand subtotal and split by each partition's
           share of it; interiors share is rounded, false ceiling takes
           the remainder so the two sum exactly to the capped amount
- grand subtotal of zero → zero discount everywhere
- discounted amount never drops below zero
- tax is computed per partition; grand figures are partition sums

The same function prices quotations and change orders. Change orders
pass allow_negative=True: a credit partition (negative subtotal)
receives no discount and carries a negative tax and total.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from core.primitives.money import HUNDRED, ZERO, round_currency, to_decimal


class DiscountType(Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


@dataclass(frozen=True)
class PartitionAmounts:
    subtotal: Decimal
    discount: Decimal
    discounted: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "discounted": str(self.discounted),
            "tax": str(self.tax),
            "total": str(self.total),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PartitionAmounts:
        return cls(**{k: to_decimal(data[k], field_name=k) for k in (
            "subtotal", "discount", "discounted", "tax", "total",
        )})


@dataclass(frozen=True)
class Allocation:
    interiors: PartitionAmounts
    fc: PartitionAmounts
    grand: PartitionAmounts
    discount_type: DiscountType
    discount_value: Decimal
    tax_percent: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interiors": self.interiors.to_dict(),
            "fc": self.fc.to_dict(),
            "grand": self.grand.to_dict(),
            "discount_type": self.discount_type.value,
            "discount_value": str(self.discount_value),
            "tax_percent": str(self.tax_percent),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Allocation:
        return cls(
            interiors=PartitionAmounts.from_dict(data["interiors"]),
            fc=PartitionAmounts.from_dict(data["fc"]),
            grand=PartitionAmounts.from_dict(data["grand"]),
            discount_type=DiscountType(data["discount_type"]),
            discount_value=to_decimal(data["discount_value"]),
            tax_percent=to_decimal(data["tax_percent"]),
        )


def _partition(
    subtotal: Decimal,
    discount: Decimal,
    tax_percent: Decimal,
    allow_negative: bool,
) -> PartitionAmounts:
    if allow_negative and subtotal < 0:
        discounted = subtotal
    else:
        discounted = max(ZERO, round_currency(subtotal - discount))
    tax = round_currency(discounted * tax_percent / HUNDRED)
    return PartitionAmounts(
        subtotal=subtotal,
        discount=discount,
        discounted=discounted,
        tax=tax,
        total=round_currency(discounted + tax),
    )


def _split_amount(
    value: Decimal,
    interiors_base: Decimal,
    fc_base: Decimal,
    net_subtotal: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    Split an amount discount by each partition's share of the positive
    base. The total never exceeds the net (signed) grand subtotal.
    """
    grand = interiors_base + fc_base
    if grand <= 0 or net_subtotal <= 0:
        return ZERO, ZERO
    effective = min(value, net_subtotal)
    interiors_discount = round_currency(effective * interiors_base / grand)
    fc_discount = round_currency(effective - interiors_discount)
    fc_discount = min(max(fc_discount, ZERO), fc_base)
    return interiors_discount, fc_discount


def allocate(
    interiors_subtotal: Decimal,
    fc_subtotal: Decimal,
    discount_type: DiscountType | str,
    discount_value: Decimal,
    tax_percent: Decimal,
    *,
    allow_negative: bool = False,
) -> Allocation:
    if not isinstance(discount_type, DiscountType):
        try:
            discount_type = DiscountType(discount_type)
        except ValueError as exc:
            raise ValueError(f"discount_type '{discount_type}' is not valid.") from exc
    interiors_subtotal = to_decimal(interiors_subtotal, field_name="interiors_subtotal")
    fc_subtotal = to_decimal(fc_subtotal, field_name="fc_subtotal")
    discount_value = to_decimal(discount_value, field_name="discount_value")
    tax_percent = to_decimal(tax_percent, field_name="tax_percent")
    if discount_value < 0:
        raise ValueError("discount_value cannot be negative.")
    if tax_percent < 0:
        raise ValueError("tax_percent cannot be negative.")
    if not allow_negative and (interiors_subtotal < 0 or fc_subtotal < 0):
        raise ValueError("Partition subtotals cannot be negative.")

    # Credit partitions take no part in the discount.
    interiors_base = max(interiors_subtotal, ZERO)
    fc_base = max(fc_subtotal, ZERO)

    if discount_type is DiscountType.PERCENT:
        interiors_discount = round_currency(interiors_base * discount_value / HUNDRED)
        fc_discount = round_currency(fc_base * discount_value / HUNDRED)
    else:
        interiors_discount, fc_discount = _split_amount(
            discount_value, interiors_base, fc_base,
            interiors_subtotal + fc_subtotal,
        )

    interiors = _partition(interiors_subtotal, interiors_discount, tax_percent, allow_negative)
    fc = _partition(fc_subtotal, fc_discount, tax_percent, allow_negative)
    grand = PartitionAmounts(
        subtotal=round_currency(interiors.subtotal + fc.subtotal),
        discount=round_currency(interiors.discount + fc.discount),
        discounted=round_currency(interiors.discounted + fc.discounted),
        tax=round_currency(interiors.tax + fc.tax),
        total=round_currency(interiors.total + fc.total),
    )
    return Allocation(
        interiors=interiors,
        fc=fc,
        grand=grand,
        discount_type=discount_type,
        discount_value=discount_value,
        tax_percent=tax_percent,
    )
