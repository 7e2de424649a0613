from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import Column, MetaData, Numeric, String, Table, Text, create_engine, insert
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from ..adapters.base import Product
from ..config import CrawlConfig
from ..errors import ConfigError, PersistError

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    def persist(self, product: Product) -> None:
        """Store one product. Raises PersistError on failure."""
        ...


def products_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    # No uniqueness constraint: the same code may be written more than once.
    return Table(
        name,
        metadata or MetaData(),
        Column("product", Text, nullable=False),
        Column("code", String(255), nullable=False),
        Column("description", Text, nullable=False),
        Column("price", Numeric(12, 2), nullable=False),
    )


def database_url(cfg: CrawlConfig) -> str | URL:
    if cfg.database_url:
        # Accept the psycopg3-style scheme some hosting dashboards hand out.
        return cfg.database_url.replace("+psycopg://", "+psycopg2://")
    return URL.create(
        "postgresql+psycopg2",
        username=cfg.db_user,
        password=cfg.db_password,
        host=cfg.db_host,
        port=cfg.db_port,
        database=cfg.db_name,
    )


class SqlProductSink:
    """
    Writes one row per product. Every ``persist`` call checks out its own
    connection (no pooling) inside a transaction that is committed on success
    and rolled back on failure; the connection is always released.
    """
    def __init__(self, engine: Engine, table: str = "products") -> None:
        self.engine = engine
        self.metadata = MetaData()
        self.table = products_table(table, self.metadata)

    @classmethod
    def from_url(cls, url: str | URL, table: str = "products", connect_args: Optional[Dict[str, Any]] = None) -> "SqlProductSink":
        engine = create_engine(url, poolclass=NullPool, connect_args=connect_args or {})
        return cls(engine, table=table)

    @classmethod
    def from_config(cls, cfg: CrawlConfig) -> "SqlProductSink":
        url = database_url(cfg)
        connect_args: Dict[str, Any] = {}
        backend = url.get_backend_name() if isinstance(url, URL) else str(url).split(":", 1)[0]
        if backend.startswith("postgresql"):
            connect_args["connect_timeout"] = cfg.db_connect_timeout
        try:
            return cls.from_url(url, table=cfg.db_table, connect_args=connect_args)
        except (ArgumentError, NoSuchModuleError, ImportError) as exc:
            # Unparseable URL, unknown dialect or missing DBAPI driver.
            raise ConfigError(f"invalid store settings: {exc}") from exc

    def ensure_schema(self) -> None:
        """Create the products table if it does not exist yet."""
        try:
            self.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise PersistError(self.table.name, f"cannot create table: {exc}") from exc

    def persist(self, product: Product) -> None:
        row = {
            "product": product.name,
            "code": product.code,
            "description": product.description,
            "price": product.price,
        }
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(self.table).values(**row))
        except SQLAlchemyError as exc:
            logger.error("[DB] Failed write: %s (code %s): %s", product.name, product.code, exc)
            raise PersistError(product.code, str(exc)) from exc
        logger.info("[DB] Successful write: %s (code %s)", product.name, product.code)

    def dispose(self) -> None:
        self.engine.dispose()
