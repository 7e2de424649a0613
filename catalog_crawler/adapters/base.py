from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Protocol


@dataclass(frozen=True)
class Product:
    """One product record extracted from a detail page. Immutable once built."""

    name: str
    code: str
    description: str
    price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        # Key names are part of the output document contract.
        return {
            "Name": self.name,
            "Code": self.code,
            "Description": self.description,
            "Price": float(self.price),
        }


class DetailAdapter(Protocol):
    """
    Interface for site-specific detail-page extraction.
    Keep this small and stable so adapters rarely break across upgrades.
    """

    name: str
    domains: List[str]  # e.g. ["example.com", "www.example.com"]; empty matches any

    def matches(self, url: str) -> bool:
        """Return True if this adapter should handle the given URL."""
        ...

    def extract(self, url: str, html: str) -> Product:
        """
        Build a Product from a fetched detail page.
        Raises an ExtractionError subclass when a required field is absent or malformed.
        """
        ...
