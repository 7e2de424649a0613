from __future__ import annotations

from typing import Protocol

from .aggregator import Document


class Exporter(Protocol):
    def export(self, document: Document, path: str) -> None:
        """Write the document to ``path``; ``"-"`` means standard output."""
        ...
