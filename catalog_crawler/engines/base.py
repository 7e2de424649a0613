from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from abc import ABC, abstractmethod

from ..errors import ExtractionError, PersistError
from ..export.aggregator import ResultAggregator


@dataclass
class CrawlReport:
    results: ResultAggregator = field(default_factory=ResultAggregator)
    visited: List[str] = field(default_factory=list)  # dispatch order
    fetch_failures: List[str] = field(default_factory=list)
    extraction_failures: List[Tuple[str, ExtractionError]] = field(default_factory=list)
    persist_failures: List[PersistError] = field(default_factory=list)
    # URLs that were queued but dropped because the run was stopped.
    dropped: List[str] = field(default_factory=list)
    aborted: Optional[PersistError] = None

    @property
    def visited_count(self) -> int:
        return len(self.visited)

    @property
    def product_count(self) -> int:
        return len(self.results)


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def crawl(self) -> CrawlReport:  # pragma: no cover - interface
        ...

    @abstractmethod
    def stop(self) -> None:  # pragma: no cover - interface
        """Stop dispatching new fetches; in-flight pages still complete."""
        ...
