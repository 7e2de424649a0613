"""
URL routing for the crawl frontier.

Classification is a pure function of the URL string: an ordered list of
``(predicate, outcome)`` rules, first match wins, with ``FOLLOW`` as the
fall-through. Rewriting extraction candidates with the locale parameter is
a separate step (:func:`normalize_candidate`).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Sequence, Tuple
from urllib.parse import urljoin, urlparse

from ..config import CrawlConfig
from ..utils.parsing import normalize_url, with_query_param


class Classification(str, Enum):
    FOLLOW = "follow"
    EXTRACT_CANDIDATE = "extract_candidate"
    SKIP = "skip"


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[str], bool]
    outcome: Classification

    def applies(self, url: str) -> bool:
        return self.predicate(url)


class UrlClassifier:
    """
    Routes absolute or site-relative URLs.
    ``site_url`` anchors relative links and defines what counts as internal.
    """
    def __init__(self, site_url: str, rules: Sequence[Rule], default: Classification = Classification.FOLLOW) -> None:
        self.site_url = site_url
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.default = default

    def resolve(self, url: str) -> str:
        return normalize_url(urljoin(self.site_url, url.strip()))

    def classify(self, url: str) -> Classification:
        return self.explain(url)[0]

    def explain(self, url: str) -> Tuple[Classification, str]:
        """Classification plus the name of the rule that produced it."""
        absolute = self.resolve(url)
        for rule in self.rules:
            if rule.applies(absolute):
                return rule.outcome, rule.name
        return self.default, "default"

    @classmethod
    def from_config(cls, cfg: CrawlConfig) -> "UrlClassifier":
        return cls(cfg.seed_url, default_rules(
            cfg.seed_url,
            denylist=cfg.denylist,
            category_marker=cfg.category_marker,
            follow_prefixes=cfg.follow_prefixes,
        ))


def default_rules(
    site_url: str,
    *,
    denylist: Iterable[str],
    category_marker: str,
    follow_prefixes: Iterable[str] = (),
) -> List[Rule]:
    """
    Standard precedence: external -> denylist -> category marker -> follow prefixes.
    With no follow prefixes every remaining internal link is followed.
    """
    site = urlparse(site_url)
    host = site.netloc.lower()
    blocked = tuple(d for d in denylist if d)
    prefixes = tuple(p for p in follow_prefixes if p)

    def external(url: str) -> bool:
        parsed = urlparse(url)
        return parsed.scheme not in ("http", "https") or parsed.netloc.lower() != host

    def denied(url: str) -> bool:
        return any(b in url for b in blocked)

    def in_category(url: str) -> bool:
        return category_marker in urlparse(url).path

    def outside_follow_prefixes(url: str) -> bool:
        parsed = urlparse(url)
        local = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        return not any(local.startswith(p) for p in prefixes)

    rules = [
        Rule("external", external, Classification.SKIP),
        Rule("denylist", denied, Classification.SKIP),
        Rule("category", in_category, Classification.EXTRACT_CANDIDATE),
    ]
    if prefixes:
        rules.append(Rule("follow-prefix", outside_follow_prefixes, Classification.SKIP))
    return rules


def normalize_candidate(url: str, param: str = "country_code", value: str = "IE") -> str:
    """
    Pin the currency/locale of a detail URL. Deterministic and idempotent:
    an existing value for ``param`` is replaced rather than duplicated.
    """
    return with_query_param(url, param, value)
