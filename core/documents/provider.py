"""
CASA Documents - Renderer Hand-off Protocol
============================================
The pricing core never lays out documents. At approval it hands a
fully computed payload (agreement, totals, terms, payment schedule)
to an external renderer.
"""

from __future__ import annotations

from typing import Any, Protocol


class DocumentRenderer(Protocol):
    def render(self, doc_type: str, payload: dict[str, Any]) -> None:
        ...


class InMemoryDocumentRenderer:
    """
    Records every hand-off in call order; used by tests/bootstrap.
    """

    def __init__(self) -> None:
        self._rendered: list[tuple[str, dict[str, Any]]] = []

    def render(self, doc_type: str, payload: dict[str, Any]) -> None:
        if not doc_type:
            raise ValueError("doc_type must be non-empty.")
        self._rendered.append((doc_type, payload))

    @property
    def rendered(self) -> tuple[tuple[str, dict[str, Any]], ...]:
        return tuple(self._rendered)
