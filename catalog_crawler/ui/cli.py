from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from typing import List, Optional

from ..config import CrawlConfig, load_env_file
from ..errors import ConfigError, PersistError
from ..utils.http import PageFetcher
from ..utils.logging import setup_logging
from ..utils.loader import load_symbol
from ..adapters.registry import AdapterRegistry
from ..engines.base import CrawlReport
from ..engines.simple_engine import SimpleCrawlEngine
from ..export.base import Exporter
from ..storage.sink import SqlProductSink

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_CONFIG = 2


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Product catalog crawler")
    p.add_argument("seed", nargs="?", default=None, help="Seed URL (default: CRAWLER_SEED_URL)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--env-file", type=str, default=None, help="Path to a .env file (default: search from cwd)")
    p.add_argument("--category", type=str, default=None, help="Category marker that identifies detail URLs")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max concurrent fetches (default from config)")
    p.add_argument("--cache-dir", type=str, default=None, help="On-disk page cache directory ('' disables)")
    p.add_argument("--no-persist", action="store_true", help="Do not write products to the database")
    p.add_argument("--create-table", action="store_true", help="Create the products table if missing")
    p.add_argument("--continue-on-persist-error", action="store_true",
                   help="Skip records that fail to persist instead of aborting the run")
    p.add_argument("--exporter", type=str, default=None, help="Exporter dotted path (module:ClassName)")
    p.add_argument("--extra-adapters", type=str, default=None,
                   help="Comma-separated dotted paths for additional adapters")
    p.add_argument("--output", type=str, default=None, help="Output file path ('-' for stdout)")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of CLI crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env(args.env_file)

    if args.seed:
        cfg.seed_url = args.seed
    if args.category:
        cfg.category_marker = args.category
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.cache_dir is not None:
        cfg.cache_dir = args.cache_dir
    if args.no_persist:
        cfg.persist = False
    if args.create_table:
        cfg.create_table = True
    if args.continue_on_persist_error:
        cfg.abort_on_persist_error = False
    if args.exporter:
        cfg.exporter = args.exporter
    if args.extra_adapters:
        cfg.extra_adapters = [a.strip() for a in args.extra_adapters.split(",") if a.strip()]
    if args.output:
        cfg.output_path = args.output

    cfg.validate()
    return cfg


def build_registry(cfg: CrawlConfig) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.discover_entry_points()
    # Allow runtime registration of additional adapters
    for dotted in cfg.extra_adapters:
        try:
            adapter_cls = load_symbol(dotted)
            registry.register(adapter_cls())
        except ConfigError as exc:
            logger.warning("Failed to load adapter %s: %s", dotted, exc)
    return registry


def build_sink(cfg: CrawlConfig) -> Optional[SqlProductSink]:
    if not cfg.persist:
        logger.info("Persistence disabled; products are only written to the output document")
        return None
    sink = SqlProductSink.from_config(cfg)
    if cfg.create_table:
        sink.ensure_schema()
    return sink


async def crawl_once(cfg: CrawlConfig, sink: Optional[SqlProductSink], registry: AdapterRegistry) -> CrawlReport:
    async with PageFetcher(
        timeout=cfg.request_timeout,
        retries=cfg.retries,
        user_agent=cfg.user_agent,
        cache_dir=cfg.cache_dir or None,
    ) as fetcher:
        engine = SimpleCrawlEngine(cfg, fetcher, sink=sink, registry=registry)
        loop = asyncio.get_running_loop()
        # Ctrl-C stops dispatching; whatever was collected is still exported.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signal.SIGINT, engine.stop)
        try:
            return await engine.crawl()
        finally:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install fastapi uvicorn pydantic") from exc
    uvicorn.run("catalog_crawler.apis.app:app", host=host, port=port)


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    # CRAWLER_LOG_LEVEL may only be set in the .env file.
    load_env_file(args.env_file)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return EXIT_OK

    try:
        cfg = _load_config(args)
        # Dynamic exporter loading so upgrades don't require code edits.
        exporter: Exporter = load_symbol(cfg.exporter)()
        registry = build_registry(cfg)
        sink = build_sink(cfg)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG
    except PersistError as exc:
        logger.error("Store unavailable before crawling: %s", exc)
        return EXIT_ABORTED

    try:
        report = asyncio.run(crawl_once(cfg, sink, registry))
    finally:
        if sink is not None:
            sink.dispose()

    document = report.results.finalize()
    exporter.export(document, cfg.output_path)

    logger.info("Visited: %s | Products: %s | Output: %s",
                report.visited_count,
                len(document),
                cfg.output_path)
    if report.aborted is not None:
        logger.error("Run aborted after persistence failure: %s", report.aborted)
        return EXIT_ABORTED
    return EXIT_OK


def main() -> int:
    return run_cli(sys.argv[1:])
