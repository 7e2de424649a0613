from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..config import CrawlConfig
from ..errors import ConfigError, PersistError
from ..engines.simple_engine import SimpleCrawlEngine
from ..ui.cli import build_registry, build_sink
from ..utils.http import PageFetcher
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="catalog_crawler API", version=__version__)


class CrawlRequest(BaseModel):
    seed_url: str
    category_marker: Optional[str] = None
    max_concurrency: Optional[int] = None
    persist: bool = False
    abort_on_persist_error: Optional[bool] = None
    extra_adapters: Optional[List[str]] = None


class CrawlResponse(BaseModel):
    visited: int
    aborted: Optional[str] = None
    products: List[Dict[str, Any]]


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/crawl", response_model=CrawlResponse)
async def crawl(req: CrawlRequest) -> CrawlResponse:
    cfg = CrawlConfig.from_env()
    cfg.seed_url = req.seed_url
    cfg.persist = req.persist
    if req.category_marker:
        cfg.category_marker = req.category_marker
    if req.max_concurrency is not None:
        cfg.max_concurrency = req.max_concurrency
    if req.abort_on_persist_error is not None:
        cfg.abort_on_persist_error = req.abort_on_persist_error
    if req.extra_adapters:
        cfg.extra_adapters = req.extra_adapters

    try:
        cfg.validate()
        sink = build_sink(cfg)
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    registry = build_registry(cfg)
    try:
        async with PageFetcher(
            timeout=cfg.request_timeout,
            retries=cfg.retries,
            user_agent=cfg.user_agent,
            cache_dir=cfg.cache_dir or None,
        ) as fetcher:
            engine = SimpleCrawlEngine(cfg, fetcher, sink=sink, registry=registry)
            report = await engine.crawl()
    finally:
        if sink is not None:
            sink.dispose()

    return CrawlResponse(
        visited=report.visited_count,
        aborted=str(report.aborted) if report.aborted else None,
        products=report.results.finalize(),
    )
