from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

from ..errors import FetchError
from .parsing import extract_links

logger = logging.getLogger(__name__)


@dataclass
class FetchedPage:
    url: str
    html: str
    from_cache: bool = False
    _links: Optional[List[str]] = field(default=None, init=False, repr=False, compare=False)

    @property
    def links(self) -> List[str]:
        """Raw hrefs found on the page, parsed lazily."""
        if self._links is None:
            self._links = extract_links(self.html)
        return self._links


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
    retries: int = 2,
) -> str:
    """
    Fetch a URL and return body text. Raises FetchError once retries are exhausted;
    a timeout counts as an ordinary failed attempt.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
                resp.raise_for_status()
                return await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            last_exc = exc
            logger.debug("fetch_text attempt %s failed for %s: %r", attempt + 1, url, exc)
            if attempt < retries:
                await asyncio.sleep(min(2 ** attempt, 5))
    logger.warning("fetch_text failed for %s after %s attempts: %r", url, retries + 1, last_exc)
    raise FetchError(url, repr(last_exc))


def create_session() -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; the engine caps concurrency by worker count
    return aiohttp.ClientSession(connector=connector)


class PageCache:
    """One file per URL under ``root``, named by the SHA-1 of the URL."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, url: str) -> Path:
        digest = hashlib.sha1(url.encode("utf-8")).hexdigest()
        return self.root / digest[:2] / f"{digest}.html"

    def get(self, url: str) -> Optional[str]:
        path = self.path_for(url)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, url: str, html: str) -> None:
        path = self.path_for(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(html, encoding="utf-8")
        tmp.replace(path)


class PageFetcher:
    """
    Page fetcher used by the crawl engine: HTTP via aiohttp with retries and an
    optional on-disk cache so development runs do not hit the site twice.
    Use as an async context manager, or call ``close()`` when done.
    """
    def __init__(
        self,
        *,
        timeout: float = 15.0,
        retries: int = 2,
        user_agent: Optional[str] = None,
        cache_dir: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.timeout = timeout
        self.retries = retries
        self.user_agent = user_agent
        self.cache = PageCache(cache_dir) if cache_dir else None
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def fetch(self, url: str) -> FetchedPage:
        if self.cache is not None:
            cached = self.cache.get(url)
            if cached is not None:
                logger.debug("Cache hit for %s", url)
                return FetchedPage(url=url, html=cached, from_cache=True)

        if self._session is None:
            self._session = create_session()
        html = await fetch_text(
            self._session,
            url,
            timeout=self.timeout,
            user_agent=self.user_agent,
            retries=self.retries,
        )
        if self.cache is not None:
            try:
                self.cache.put(url, html)
            except OSError as exc:
                logger.warning("Could not cache %s: %r", url, exc)
        return FetchedPage(url=url, html=html)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
