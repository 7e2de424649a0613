from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Set

from .base import CrawlEngine, CrawlReport
from .classifier import Classification, UrlClassifier, normalize_candidate
from ..config import CrawlConfig
from ..adapters.registry import AdapterRegistry
from ..errors import ExtractionError, FetchError, PersistError
from ..export.aggregator import ResultAggregator
from ..storage.sink import RecordSink
from ..utils.http import FetchedPage
from ..utils.parsing import absolute_url, normalize_url

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    async def fetch(self, url: str) -> FetchedPage:
        """Return the page or raise FetchError."""
        ...


@dataclass
class _QueueItem:
    url: str
    kind: Classification


class Frontier:
    """
    Pending URLs plus the visited set for one run.
    A URL is marked visited when it is queued, so it can be dispatched at most
    once. All mutation happens on the event loop thread with no ``await``
    between the membership check and the insert.
    """
    def __init__(self, classifier: UrlClassifier, locale_param: str = "country_code", locale_value: str = "IE") -> None:
        self.classifier = classifier
        self.locale_param = locale_param
        self.locale_value = locale_value
        self.visited: Set[str] = set()
        self._queue: asyncio.Queue[_QueueItem] = asyncio.Queue()

    def seed(self, url: str) -> bool:
        """The seed skips classification and is always dispatched."""
        return self._push(normalize_url(url), Classification.FOLLOW)

    def enqueue(self, url: str, base_url: Optional[str] = None) -> bool:
        """
        Queue ``url`` (resolved against ``base_url``) unless it is classified SKIP
        or was already seen. Returns True when the URL was added.
        """
        target = absolute_url(url, base_url or self.classifier.site_url)
        kind, rule = self.classifier.explain(target)
        if kind is Classification.SKIP:
            logger.info("Validation failed, skipping %s (rule: %s)", target, rule)
            return False
        if kind is Classification.EXTRACT_CANDIDATE:
            target = normalize_candidate(target, self.locale_param, self.locale_value)
        added = self._push(target, kind)
        if added and kind is Classification.EXTRACT_CANDIDATE:
            logger.info("Commencing crawl for %s", target)
        return added

    def _push(self, url: str, kind: Classification) -> bool:
        if url in self.visited:
            return False
        self.visited.add(url)
        self._queue.put_nowait(_QueueItem(url=url, kind=kind))
        return True

    async def get(self) -> _QueueItem:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def __len__(self) -> int:
        return self._queue.qsize()


class SimpleCrawlEngine(CrawlEngine):
    """
    A pragmatic async crawler.
    - Engine owns queueing and routing.
    - The page source owns HTTP; adapters own detail extraction.
    - Concurrency capped by the number of worker tasks.
    Extracted products go to the sink first and reach the result collection only
    once they are stored (or straight away when no sink is configured).
    """
    def __init__(
        self,
        config: CrawlConfig,
        fetcher: PageSource,
        *,
        sink: RecordSink | None = None,
        registry: AdapterRegistry | None = None,
        classifier: UrlClassifier | None = None,
        aggregator: ResultAggregator | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.registry = registry or AdapterRegistry()
        self.classifier = classifier or UrlClassifier.from_config(config)
        self.aggregator = aggregator or ResultAggregator()
        self.abort_on_persist_error = config.abort_on_persist_error
        self._stop = asyncio.Event()

    def stop(self) -> None:
        if not self._stop.is_set():
            logger.info("Stop requested; finishing in-flight pages")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def crawl(self) -> CrawlReport:
        return await self.run(self.config.seed_url)

    async def run(self, seed: str) -> CrawlReport:
        cfg = self.config
        report = CrawlReport(results=self.aggregator)
        frontier = Frontier(self.classifier, cfg.locale_param, cfg.locale_value)
        frontier.seed(seed)

        workers = [asyncio.create_task(self._worker(frontier, report)) for _ in range(cfg.max_concurrency)]
        try:
            await frontier.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.info(
            "Crawl finished: %s dispatched, %s products, %s fetch failures, %s extraction failures, %s persist failures",
            report.visited_count,
            report.product_count,
            len(report.fetch_failures),
            len(report.extraction_failures),
            len(report.persist_failures),
        )
        return report

    async def _worker(self, frontier: Frontier, report: CrawlReport) -> None:
        while True:
            item = await frontier.get()
            try:
                if self._stop.is_set():
                    report.dropped.append(item.url)
                    continue
                await self._process(item, frontier, report)
            except Exception:  # broad catch to keep crawler moving
                logger.exception("Unexpected error while processing %s", item.url)
            finally:
                frontier.task_done()

    async def _process(self, item: _QueueItem, frontier: Frontier, report: CrawlReport) -> None:
        logger.info("Visiting %s", item.url)
        report.visited.append(item.url)
        try:
            page = await self.fetcher.fetch(item.url)
        except FetchError as exc:
            logger.warning("Abandoning %s: %s", item.url, exc)
            report.fetch_failures.append(item.url)
            return

        if item.kind is Classification.EXTRACT_CANDIDATE:
            await self._handle_detail(page, report)
            return

        added = 0
        for href in page.links:
            if frontier.enqueue(href, base_url=page.url):
                added += 1
        logger.debug("Queued %s new links from %s", added, page.url)

    async def _handle_detail(self, page: FetchedPage, report: CrawlReport) -> None:
        adapter = self.registry.match(page.url)
        try:
            product = adapter.extract(page.url, page.html)
        except ExtractionError as exc:
            logger.warning("Extraction failed for %s: %s", page.url, exc)
            report.extraction_failures.append((page.url, exc))
            return

        if self.sink is not None:
            try:
                await asyncio.to_thread(self.sink.persist, product)
            except PersistError as exc:
                logger.error("Persistence failed for %s (code %s): %s", page.url, product.code, exc)
                report.persist_failures.append(exc)
                if self.abort_on_persist_error:
                    if report.aborted is None:
                        report.aborted = exc
                    self.stop()
                return

        self.aggregator.append(product)
