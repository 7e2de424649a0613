from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional
from pathlib import Path
from urllib.parse import urlparse
import os
import json
import logging

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError
from .version import __version__, CONFIG_SCHEMA_VERSION

logger = logging.getLogger(__name__)

DEFAULT_DENYLIST = ["/cart.php", "/login.php", "/account", "/privacy-policy.html"]


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    seed_url: str = ""
    # ---- Classification ----
    category_marker: str = "-Dress-"
    denylist: List[str] = field(default_factory=lambda: list(DEFAULT_DENYLIST))
    # Path+query prefixes a link must start with to be followed; empty follows every internal link.
    follow_prefixes: List[str] = field(default_factory=list)
    locale_param: str = "country_code"
    locale_value: str = "IE"
    # ---- Fetching ----
    max_concurrency: int = 4
    request_timeout: float = 15.0
    retries: int = 2
    user_agent: str = f"catalog_crawler/{__version__}"
    cache_dir: str = ".catalog_cache"
    # ---- Persistence ----
    persist: bool = True
    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_port: Optional[int] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_name: Optional[str] = None
    db_table: str = "products"
    db_connect_timeout: int = 10
    create_table: bool = False
    abort_on_persist_error: bool = True
    # ---- Output ----
    # Dotted paths to allow runtime swapping without code changes.
    exporter: str = "catalog_crawler.export.json_exporter:JSONExporter"
    extra_adapters: List[str] = field(default_factory=list)
    # "-" writes the document to standard output.
    output_path: str = "-"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls, dotenv_path: str | os.PathLike[str] | None = None) -> "CrawlConfig":
        """
        Build config from environment variables (all optional), after loading a .env file.
        A missing .env file only produces a warning: the process environment may still
        carry everything needed.
        """
        if not load_env_file(dotenv_path):
            logger.warning("No .env file loaded; using process environment and defaults")

        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _opt(name: str) -> Optional[str]:
            return os.getenv(name) or None

        def _list(name: str, default: List[str]) -> List[str]:
            raw = os.getenv(name)
            if raw is None:
                return list(default)
            return [p.strip() for p in raw.split(",") if p.strip()]

        def _number(name: str, default: Optional[str], kind: Callable[[str], Any]) -> Any:
            raw = os.getenv(name) or default
            if raw is None:
                return None
            try:
                return kind(raw)
            except ValueError:
                label = "an integer" if kind is int else "a number"
                raise ConfigError(f"{name} must be {label}, got {raw!r}") from None

        return cls(
            seed_url=_get("CRAWLER_SEED_URL", ""),
            category_marker=_get("CRAWLER_CATEGORY_MARKER", "-Dress-"),
            denylist=_list("CRAWLER_DENYLIST", DEFAULT_DENYLIST),
            follow_prefixes=_list("CRAWLER_FOLLOW_PREFIXES", []),
            locale_param=_get("CRAWLER_LOCALE_PARAM", "country_code"),
            locale_value=_get("CRAWLER_LOCALE_VALUE", "IE"),
            max_concurrency=_number("CRAWLER_MAX_CONCURRENCY", "4", int),
            request_timeout=_number("CRAWLER_REQUEST_TIMEOUT", "15.0", float),
            retries=_number("CRAWLER_RETRIES", "2", int),
            user_agent=_get("CRAWLER_USER_AGENT", f"catalog_crawler/{__version__}"),
            cache_dir=_get("CRAWLER_CACHE_DIR", ".catalog_cache"),
            persist=_flag(_get("CRAWLER_PERSIST", "true")),
            database_url=_opt("CRAWLER_DATABASE_URL"),
            db_host=_opt("CRAWLER_DB_HOST"),
            db_port=_number("CRAWLER_DB_PORT", None, int),
            db_user=_opt("CRAWLER_DB_USER"),
            db_password=_opt("CRAWLER_DB_PASSWORD"),
            db_name=_opt("CRAWLER_DB_NAME"),
            db_table=_get("CRAWLER_DB_TABLE", "products"),
            db_connect_timeout=_number("CRAWLER_DB_CONNECT_TIMEOUT", "10", int),
            create_table=_flag(_get("CRAWLER_CREATE_TABLE", "false")),
            abort_on_persist_error=_flag(_get("CRAWLER_ABORT_ON_PERSIST_ERROR", "true")),
            exporter=_get("CRAWLER_EXPORTER", "catalog_crawler.export.json_exporter:JSONExporter"),
            extra_adapters=_list("CRAWLER_EXTRA_ADAPTERS", []),
            output_path=_get("CRAWLER_OUTPUT_PATH", "-"),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        data = migrate_config(data)
        try:
            return cls(**data)
        except TypeError as exc:
            raise ConfigError(f"invalid config file {path}: {exc}") from exc

    # ---------- Validation ----------

    def has_store_settings(self) -> bool:
        return bool(self.database_url or (self.db_host and self.db_user and self.db_name))

    def validate(self) -> None:
        if not self.seed_url:
            raise ConfigError("seed_url cannot be empty; set CRAWLER_SEED_URL or pass a seed URL.")
        parsed = urlparse(self.seed_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"seed_url must be an absolute http(s) URL, got {self.seed_url!r}")
        if not self.category_marker:
            raise ConfigError("category_marker cannot be empty")
        if self.max_concurrency <= 0:
            raise ConfigError("max_concurrency must be > 0")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.persist and not self.has_store_settings():
            raise ConfigError(
                "persistence is enabled but no store is configured; set CRAWLER_DATABASE_URL "
                "or CRAWLER_DB_HOST, CRAWLER_DB_USER and CRAWLER_DB_NAME (or disable persistence)."
            )
        if self.output_path != "-":
            Path(self.output_path).parent.mkdir(parents=True, exist_ok=True)


def load_env_file(dotenv_path: str | os.PathLike[str] | None = None) -> bool:
    """Load a .env file (searched from the cwd by default) without overriding the environment."""
    return load_dotenv(dotenv_path or find_dotenv(usecwd=True))


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw = dict(raw)
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 crawled several start URLs across domains; the catalog crawler takes one seed.
        start_urls = raw.pop("start_urls", None) or []
        if start_urls and not raw.get("seed_url"):
            raw["seed_url"] = start_urls[0]
        for dropped in ("allowed_domains", "max_depth", "engine", "keywords"):
            raw.pop(dropped, None)

    raw["schema_version"] = CONFIG_SCHEMA_VERSION
    return raw
