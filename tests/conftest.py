"""Shared fakes for crawler tests: an in-memory site and recording sinks."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

import pytest

from catalog_crawler.adapters.base import Product
from catalog_crawler.config import CrawlConfig
from catalog_crawler.errors import FetchError, PersistError
from catalog_crawler.utils.http import FetchedPage

SITE = "https://shop.test/"


def listing_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return f"<html><body><nav>{anchors}</nav></body></html>"


def detail_page(
    name: Optional[str] = "Red Gown",
    code: Optional[str] = "SKU#AB123",
    price: Optional[str] = "45,00 €",
    description: Optional[str] = "  nice dress  ",
) -> str:
    parts = []
    if name is not None:
        parts.append(f'<h1 class="prod-name">{name}</h1>')
    if code is not None:
        parts.append(f'<span class="prod-item-code">{code}</span>')
    if price is not None:
        parts.append(f'<span class="currency-prices">{price}</span>')
    if description is not None:
        parts.append(f'<div class="grid-uniform">{description}</div>')
    return "<html><body>" + "".join(parts) + "</body></html>"


class FakeFetcher:
    """Serves pages from a dict and records every fetch."""

    def __init__(self, pages: Dict[str, str], on_fetch: Optional[Callable[[str], None]] = None, **_: object) -> None:
        self.pages = pages
        self.calls: List[str] = []
        self.on_fetch = on_fetch

    async def __aenter__(self) -> "FakeFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)
        if url not in self.pages:
            raise FetchError(url, "404 Not Found")
        return FetchedPage(url=url, html=self.pages[url])


class RecordingSink:
    def __init__(self, failing_codes: Iterable[str] = ()) -> None:
        self.failing_codes = set(failing_codes)
        self.rows: List[Product] = []

    def persist(self, product: Product) -> None:
        if product.code in self.failing_codes:
            raise PersistError(product.code, "connection refused")
        self.rows.append(product)


@pytest.fixture
def config() -> CrawlConfig:
    return CrawlConfig(seed_url=SITE, persist=False, max_concurrency=1, cache_dir="")
