from __future__ import annotations

from typing import Any, Dict, List

from ..adapters.base import Product

Document = List[Dict[str, Any]]


class ResultAggregator:
    """
    Ordered, append-only collection of successful products.
    ``finalize`` turns it into the output document exactly once; insertion order
    is kept and nothing is deduplicated or sorted.
    """
    def __init__(self) -> None:
        self._products: List[Product] = []
        self._finalized = False

    def append(self, product: Product) -> None:
        if self._finalized:
            raise RuntimeError("cannot append to a finalized result collection")
        self._products.append(product)

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __len__(self) -> int:
        return len(self._products)

    def finalize(self) -> Document:
        if self._finalized:
            raise RuntimeError("result collection was already finalized")
        self._finalized = True
        return [p.to_dict() for p in self._products]
