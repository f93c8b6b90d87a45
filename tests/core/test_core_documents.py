"""CASA document hashing and renderer hand-off tests."""

from decimal import Decimal

import pytest


class TestCanonicalHash:
    def test_key_order_does_not_matter(self):
        from core.documents import compute_document_hash

        a = compute_document_hash({"b": 1, "a": {"y": "2", "x": Decimal("1.50")}})
        b = compute_document_hash({"a": {"x": Decimal("1.50"), "y": "2"}, "b": 1})
        assert a == b
        assert len(a) == 64

    def test_decimal_scale_is_significant(self):
        from core.documents import compute_document_hash

        assert compute_document_hash({"v": Decimal("1.5")}) != compute_document_hash(
            {"v": Decimal("1.50")}
        )

    def test_floats_refused(self):
        from core.documents import compute_document_hash

        with pytest.raises(ValueError, match="Floats"):
            compute_document_hash({"v": 1.5})

    def test_verify(self):
        from core.documents import compute_document_hash, verify_document_hash

        payload = {"grand_total": 15930000}
        digest = compute_document_hash(payload)
        assert verify_document_hash(payload, digest) is True
        assert verify_document_hash({"grand_total": 15930001}, digest) is False
        assert verify_document_hash(payload, "short") is False


class TestRenderer:
    def test_records_hand_offs(self):
        from core.documents import DOCUMENT_AGREEMENT, InMemoryDocumentRenderer

        renderer = InMemoryDocumentRenderer()
        renderer.render(DOCUMENT_AGREEMENT, {"grand_total": 1})
        assert renderer.rendered == ((DOCUMENT_AGREEMENT, {"grand_total": 1}),)
        with pytest.raises(ValueError):
            renderer.render("", {})
