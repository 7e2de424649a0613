from __future__ import annotations

import logging
from importlib import metadata
from typing import List

from .base import DetailAdapter
from .catalog import CatalogDetailAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry for available detail adapters.
    Supports built-ins, config-defined dotted classes, and entry-point plugins.
    """
    def __init__(self, default: DetailAdapter | None = None) -> None:
        self._adapters: List[DetailAdapter] = [default or CatalogDetailAdapter()]

    # ---- Introspection / Management ----

    def register(self, adapter: DetailAdapter) -> None:
        self._adapters.append(adapter)

    @property
    def adapters(self) -> List[DetailAdapter]:
        return list(self._adapters)

    def match(self, url: str) -> DetailAdapter:
        # Prefer specific adapters over the catalog fallback (kept first in list).
        for a in self._adapters[1:]:
            if a.matches(url):
                return a
        return self._adapters[0]

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "catalog_crawler.adapters") -> int:
        """
        Discover third-party adapters installed as entry points.
        Returns count of newly registered adapters.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                adapter_cls = ep.load()
                self.register(adapter_cls())
            except Exception as exc:
                # Plugins are optional; a broken one must not stop the crawl.
                logger.warning("Failed to load adapter entry point %s: %r", ep.name, exc)
                continue
            added += 1
        return added
