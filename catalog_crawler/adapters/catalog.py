from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from .base import Product
from ..errors import ExtractionError, InvalidNumber, MissingField
from ..utils.parsing import clean_description, parse_price, split_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSelectors:
    name: str = ".prod-name"
    code: str = ".prod-item-code"
    price: str = ".currency-prices"
    description: str = ".grid-uniform"


class CatalogDetailAdapter:
    """
    Extracts products from catalog detail pages laid out with the
    prod-name / prod-item-code / currency-prices / grid-uniform blocks.
    Acts as the fallback when no more specific adapter matches a URL.
    """
    name = "catalog"
    domains: List[str] = []  # matches any

    def __init__(self, selectors: CatalogSelectors | None = None) -> None:
        self.selectors = selectors or CatalogSelectors()

    def matches(self, url: str) -> bool:  # pragma: no cover - trivial
        return True

    def extract(self, url: str, html: str) -> Product:
        soup = BeautifulSoup(html, "html.parser")
        sel = self.selectors
        try:
            name = self._text(soup, sel.name)
            if not name:
                raise MissingField("name")

            code = split_code(self._text(soup, sel.code))

            # Price failures are held until the remaining fields are read so the
            # log line reports everything that was found on the page.
            price_error: Optional[InvalidNumber] = None
            try:
                price = parse_price(self._text(soup, sel.price))
            except InvalidNumber as exc:
                price_error = exc

            description = clean_description(self._text(soup, sel.description))
        except ExtractionError as exc:
            raise exc.with_url(url)

        if price_error is not None:
            logger.debug("Rejecting %s (code %s, name %r): %s", url, code, name, price_error)
            raise price_error.with_url(url)

        return Product(name=name, code=code, description=description, price=price)

    # ---- Text helpers -------------------------------------------------------

    def _text(self, soup: BeautifulSoup, selector: str) -> Optional[str]:
        nodes = soup.select(selector)
        if not nodes:
            return None
        # Concatenate like a ChildText lookup: every matching node contributes.
        return "".join(node.get_text() for node in nodes).strip()
