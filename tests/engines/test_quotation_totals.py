"""CASA Quotation aggregation and discount/tax allocation tests."""

import uuid
from decimal import Decimal

import pytest

OWNER = uuid.uuid4()


def _priced(kind, total, room=None, change_type=None, sort_order=0):
    from engines.pricing.items import LineItem

    return LineItem(
        item_id=uuid.uuid4(),
        owner_id=OWNER,
        kind=kind,
        room_type=room,
        total_price=Decimal(total),
        change_type=change_type,
        sort_order=sort_order,
    )


class TestAggregator:
    def test_partitions_and_room_buckets(self):
        from engines.pricing.items import ItemKind
        from engines.quotation.aggregator import aggregate

        interior = [
            _priced(ItemKind.INTERIOR, "60000", "Master Bedroom"),
            _priced(ItemKind.INTERIOR, "40000", "Kitchen"),
            _priced(ItemKind.INTERIOR, "2500", None),
        ]
        fc = [_priced(ItemKind.FALSE_CEILING, "30000", "Living")]
        other = [_priced(ItemKind.OTHER, "20000", "Other")]

        result = aggregate(interior, fc, other)
        assert result.interiors_subtotal == Decimal("102500.00")
        assert result.others_subtotal == Decimal("20000.00")
        assert result.fc_subtotal == Decimal("50000.00")
        assert result.grand_subtotal == Decimal("152500.00")
        assert [r.room for r in result.interior_rooms] == [
            "Kitchen", "Master Bedroom", "Other",
        ]
        assert [r.room for r in result.fc_rooms] == ["Living"]

    def test_unknown_rooms_follow_known_rooms(self):
        from engines.pricing.items import ItemKind
        from engines.quotation.aggregator import group_by_room

        rooms = group_by_room([
            _priced(ItemKind.INTERIOR, "1", "Zen Den"),
            _priced(ItemKind.INTERIOR, "1", "Bedroom 2"),
            _priced(ItemKind.INTERIOR, "1", "Kitchen"),
            _priced(ItemKind.INTERIOR, "1", "  "),
        ])
        assert [r.room for r in rooms] == ["Kitchen", "Bedroom 2", "Other", "Zen Den"]

    def test_injected_room_order(self):
        from engines.pricing.items import ItemKind
        from engines.quotation.aggregator import group_by_room
        from engines.quotation.rooms import canonical_room_order

        order = canonical_room_order({"Balcony": 1, "Kitchen": 2})
        rooms = group_by_room(
            [
                _priced(ItemKind.INTERIOR, "1", "Kitchen"),
                _priced(ItemKind.INTERIOR, "1", "Balcony"),
            ],
            order,
        )
        assert [r.room for r in rooms] == ["Balcony", "Kitchen"]

    def test_items_inside_room_follow_sort_order(self):
        from engines.pricing.items import ItemKind
        from engines.quotation.aggregator import group_by_room

        second = _priced(ItemKind.INTERIOR, "1", "Kitchen", sort_order=2)
        first = _priced(ItemKind.INTERIOR, "1", "Kitchen", sort_order=1)
        (room,) = group_by_room([second, first])
        assert room.items == (first, second)

    def test_credits_subtract(self):
        from engines.pricing.items import ChangeType, ItemKind
        from engines.quotation.aggregator import aggregate

        result = aggregate(
            [
                _priced(ItemKind.INTERIOR, "20000", "Kitchen", ChangeType.ADDITION),
                _priced(ItemKind.INTERIOR, "5000", "Kitchen", ChangeType.CREDIT),
            ],
            [],
            [],
        )
        assert result.interiors_subtotal == Decimal("15000.00")
        assert result.interior_rooms[0].subtotal == Decimal("15000.00")

    def test_empty(self):
        from engines.quotation.aggregator import aggregate

        result = aggregate([], [], [])
        assert result.grand_subtotal == Decimal("0.00")
        assert result.interior_rooms == ()


class TestAllocator:
    def test_percent_discount_applies_to_both_partitions(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("100000"), Decimal("50000"), "percent", Decimal("10"), Decimal("18"),
        )
        assert result.interiors.discount == Decimal("10000.00")
        assert result.fc.discount == Decimal("5000.00")
        assert result.interiors.total == Decimal("106200.00")
        assert result.fc.total == Decimal("53100.00")
        assert result.grand.total == Decimal("159300.00")
        assert result.grand.tax == Decimal("24300.00")

    def test_amount_discount_splits_by_share(self):
        from engines.quotation.allocator import DiscountType, allocate

        result = allocate(
            Decimal("100000"), Decimal("50000"), DiscountType.AMOUNT,
            Decimal("30000"), Decimal("0"),
        )
        assert result.interiors.discount == Decimal("20000.00")
        assert result.fc.discount == Decimal("10000.00")
        assert result.grand.discounted == Decimal("120000.00")

    def test_amount_split_sums_exactly(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("100"), Decimal("200"), "amount", Decimal("100"), Decimal("18"),
        )
        assert result.interiors.discount == Decimal("33.33")
        assert result.fc.discount == Decimal("66.67")
        assert result.grand.discount == Decimal("100.00")

    def test_amount_capped_at_grand_subtotal(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("100000"), Decimal("50000"), "amount", Decimal("999999"),
            Decimal("18"),
        )
        assert result.grand.discount == Decimal("150000.00")
        assert result.grand.discounted == Decimal("0.00")
        assert result.grand.total == Decimal("0.00")

    def test_zero_subtotal_means_zero_discount(self):
        from engines.quotation.allocator import allocate

        result = allocate(Decimal("0"), Decimal("0"), "amount", Decimal("500"), Decimal("18"))
        assert result.grand.discount == Decimal("0")
        assert result.grand.total == Decimal("0.00")

    def test_percent_over_hundred_never_goes_negative(self):
        from engines.quotation.allocator import allocate

        result = allocate(Decimal("100"), Decimal("0"), "percent", Decimal("150"), Decimal("18"))
        assert result.interiors.discounted == Decimal("0")

    def test_negative_subtotal_refused_for_quotations(self):
        from engines.quotation.allocator import allocate

        with pytest.raises(ValueError, match="cannot be negative"):
            allocate(Decimal("-1"), Decimal("0"), "percent", Decimal("0"), Decimal("18"))

    def test_credit_partition_takes_no_discount(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("-5000"), Decimal("20000"), "percent", Decimal("10"), Decimal("18"),
            allow_negative=True,
        )
        assert result.interiors.discount == Decimal("0.00")
        assert result.interiors.tax == Decimal("-900.00")
        assert result.interiors.total == Decimal("-5900.00")
        assert result.fc.total == Decimal("21240.00")
        assert result.grand.total == Decimal("15340.00")

    def test_amount_capped_at_net_subtotal_with_credit_partition(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("10000"), Decimal("-5000"), "amount", Decimal("8000"), Decimal("18"),
            allow_negative=True,
        )
        assert result.grand.subtotal == Decimal("5000.00")
        assert result.grand.discount == Decimal("5000.00")
        assert result.interiors.discount == Decimal("5000.00")
        assert result.fc.discount == Decimal("0")
        assert result.interiors.total == Decimal("5900.00")
        assert result.fc.total == Decimal("-5900.00")
        assert result.grand.total == Decimal("0.00")

    def test_amount_discount_is_zero_for_net_credit(self):
        from engines.quotation.allocator import allocate

        result = allocate(
            Decimal("2000"), Decimal("-5000"), "amount", Decimal("1000"), Decimal("18"),
            allow_negative=True,
        )
        assert result.grand.discount == Decimal("0")
        assert result.grand.total == Decimal("-3540.00")

    def test_invalid_inputs(self):
        from engines.quotation.allocator import allocate

        with pytest.raises(ValueError, match="discount_type"):
            allocate(Decimal("1"), Decimal("1"), "bogus", Decimal("0"), Decimal("18"))
        with pytest.raises(ValueError):
            allocate(Decimal("1"), Decimal("1"), "amount", Decimal("-5"), Decimal("18"))

    def test_dict_round_trip(self):
        from engines.quotation.allocator import Allocation, allocate

        result = allocate(
            Decimal("100000"), Decimal("50000"), "percent", Decimal("10"), Decimal("18"),
        )
        assert Allocation.from_dict(result.to_dict()) == result
