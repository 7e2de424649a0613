"""Error taxonomy shared by the crawl pipeline."""
from __future__ import annotations

from typing import Optional


class CrawlerError(Exception):
    """Base class for every error raised by catalog_crawler."""


class ConfigError(CrawlerError):
    """Missing or invalid configuration, detected before crawling begins."""


class FetchError(CrawlerError):
    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"fetch failed for {url}: {reason}" if reason else f"fetch failed for {url}")


class ExtractionError(CrawlerError):
    """
    A detail page could not be turned into a Product.
    ``field`` names the offending field; ``url`` is filled in by the extractor when known.
    """
    kind = "extraction error"

    def __init__(self, field: str, url: Optional[str] = None, detail: str = "") -> None:
        self.field = field
        self.url = url
        self.detail = detail
        super().__init__(self._message())

    def _message(self) -> str:
        msg = f"{self.kind} ({self.field})"
        if self.detail:
            msg += f": {self.detail}"
        if self.url:
            msg += f" at {self.url}"
        return msg

    def with_url(self, url: str) -> "ExtractionError":
        self.url = url
        self.args = (self._message(),)
        return self


class MissingField(ExtractionError):
    kind = "missing field"


class MalformedField(ExtractionError):
    kind = "malformed field"


class InvalidNumber(ExtractionError):
    kind = "invalid number"


class PersistError(CrawlerError):
    def __init__(self, code: str, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"persist failed for {code}: {reason}" if reason else f"persist failed for {code}")
