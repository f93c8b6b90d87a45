"""CASA core audit tests."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

NOW = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestAuditEntry:
    def test_factory_normalizes_summaries(self):
        from core.audit import create_audit_entry
        from engines.quotation.allocator import DiscountType

        entry = create_audit_entry(
            actor_id="designer-1",
            section="Quotes",
            action="DISCOUNT_CHANGED",
            target_id="q-1",
            summary="Discount changed",
            occurred_at=NOW,
            before={"discount_value": Decimal("5"), "discount_type": DiscountType.PERCENT},
            after={"discount_value": Decimal("10"), "ids": (uuid.UUID(int=1),)},
        )
        assert entry.status == "EXECUTED"
        assert entry.before == {"discount_value": "5", "discount_type": "percent"}
        assert entry.after["ids"] == [str(uuid.UUID(int=1))]
        assert entry.metadata == {}

    def test_unknown_section_rejected(self):
        from core.audit import create_audit_entry

        with pytest.raises(ValueError, match="section"):
            create_audit_entry(
                actor_id="a", section="Billing", action="X", target_id="t",
                summary="s", occurred_at=NOW,
            )

    def test_unknown_status_rejected(self):
        from core.audit import create_audit_entry

        with pytest.raises(ValueError, match="status"):
            create_audit_entry(
                actor_id="a", section="Quotes", action="X", target_id="t",
                summary="s", occurred_at=NOW, status="DONE",
            )

    def test_entry_is_frozen(self):
        from core.audit import create_audit_entry

        entry = create_audit_entry(
            actor_id="a", section="Rates", action="X", target_id="t",
            summary="s", occurred_at=NOW,
        )
        with pytest.raises(AttributeError):
            entry.summary = "changed"


class TestInMemoryAuditSink:
    def test_filters_by_action_and_target(self):
        from core.audit import InMemoryAuditSink, create_audit_entry

        sink = InMemoryAuditSink()
        for action, target in (("A", "t1"), ("B", "t1"), ("A", "t2")):
            sink.record(create_audit_entry(
                actor_id="a", section="Quotes", action=action, target_id=target,
                summary="s", occurred_at=NOW,
            ))
        assert len(sink.entries) == 3
        assert [e.target_id for e in sink.by_action("A")] == ["t1", "t2"]
        assert [e.action for e in sink.for_target("t1")] == ["A", "B"]
        assert sink.entries[0].to_dict()["occurred_at"] == NOW.isoformat()
