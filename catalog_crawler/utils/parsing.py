from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup

from ..errors import InvalidNumber, MalformedField

# Trailing currency marker: symbols, ISO codes, whitespace (e.g. " €", "EUR", "€").
_CURRENCY_SUFFIX = re.compile(r"[^\d,.\-+]+$")


def normalize_url(url: str) -> str:
    """
    Normalize URL: drop the fragment, lowercase the host and give an empty
    path its canonical ``/`` so ``https://shop.test`` and ``https://shop.test/``
    are the same page.
    """
    parsed = urlparse(url)
    if not parsed.netloc:
        return urlunparse(parsed._replace(fragment=""))
    return urlunparse(parsed._replace(netloc=parsed.netloc.lower(), path=parsed.path or "/", fragment=""))


def absolute_url(href: str, base_url: str) -> str:
    return normalize_url(urljoin(base_url, href.strip()))


def extract_links(html: str) -> List[str]:
    """
    Return raw href values of every ``a[href]`` in document order (duplicates kept).
    Resolution against the page URL is left to the caller.
    """
    soup = BeautifulSoup(html, "html.parser")
    out: List[str] = []
    for a in soup.select("a[href]"):
        href = a.get("href")
        if not href or not href.strip():
            continue
        out.append(href.strip())
    return out


def with_query_param(url: str, name: str, value: str) -> str:
    """
    Set ``name=value`` on the URL query, replacing any existing value.
    Other parameters keep their order; the fragment is dropped.
    """
    parsed = urlparse(url)
    params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != name]
    params.append((name, value))
    return urlunparse(parsed._replace(query=urlencode(params), fragment=""))


# ---- Field normalization ---------------------------------------------------


def parse_price(raw: Optional[str]) -> Decimal:
    """
    Parse a European formatted price such as ``"12,50 €"`` into ``Decimal("12.50")``.

    The currency suffix is stripped and only the first ``,`` becomes the decimal
    point. Thousands separators are not supported: ``"1.234,00 €"`` becomes
    ``"1.234.00"`` and is rejected.
    """
    if raw is None:
        raise InvalidNumber("price", detail="no price text")
    text = _CURRENCY_SUFFIX.sub("", raw.strip()).strip()
    text = text.replace(",", ".", 1)
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise InvalidNumber("price", detail=f"cannot parse {raw!r}") from None
    if not value.is_finite() or value < 0:
        raise InvalidNumber("price", detail=f"not a non-negative amount: {raw!r}")
    return value


def split_code(raw: Optional[str]) -> str:
    """``"SKU#AB123"`` -> ``"AB123"``."""
    if raw is None or "#" not in raw:
        raise MalformedField("code", detail="expected '<prefix>#<code>'")
    code = raw.split("#", 1)[1].strip()
    if not code:
        raise MalformedField("code", detail="empty code after '#'")
    return code


def clean_description(raw: Optional[str]) -> str:
    return (raw or "").strip()
