"""Store handle: the shared engine, dialect and writer lock.

One :class:`Store` per database file.  Every record type and every caller
shares it; there is no per-table lock.

Concurrency policy:
    Mutations (insert/update/delete, their label rewrite and the
    insert->update fallback) hold ``Store.lock``, an exclusive re-entrant
    lock, for their whole duration.  On file databases reads never take it
    and rely on SQLite's own isolation.  In-memory databases share a
    single DB-API connection (``StaticPool``), so there readers hold
    ``Store.lock`` too; a reader must not reset the connection in the
    middle of a writer's transaction.

Usage::

    store = open_store("sqlite:////var/lib/mig/discovery.db", models=ALL_MODELS)
    table = Table(store)
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterable, Iterator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from migspine.core.dialect import Dialect, get_dialect
from migspine.core.errors import ConfigError, EngineError
from migspine.core.logging import get_logger
from migspine.core.settings import MigSpineSettings
from migspine.model import schema

logger = get_logger(__name__)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def dialect_for(url: str) -> Dialect:
    """Registered dialect for the backend named by *url*."""
    try:
        return get_dialect(make_url(url).get_backend_name())
    except (ArgumentError, ValueError) as e:
        raise ConfigError(f"unsupported database URL: {url}", cause=e).with_context(url=url) from e


def create_store_engine(
    url: str = "sqlite:///:memory:",
    *,
    dialect: Dialect | None = None,
    echo: bool = False,
    foreign_keys: bool = True,
    wal: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine for the discovery database.

    In-memory databases use a single shared connection (``StaticPool``)
    so every thread sees the same data.
    """
    if not url.startswith("sqlite"):
        raise ConfigError(f"unsupported database URL: {url}").with_context(url=url)
    dialect = dialect or dialect_for(url)
    connect_args = kwargs.pop("connect_args", {})
    connect_args.setdefault("check_same_thread", False)
    if url in _MEMORY_URLS:
        kwargs.setdefault("poolclass", StaticPool)
        wal = False
    engine = create_engine(url, echo=echo, connect_args=connect_args, **kwargs)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _rec: Any) -> None:
        dialect.on_connect(dbapi_connection, foreign_keys=foreign_keys, wal=wal)

    return engine


class Store:
    """Process-wide handle over one backing database.

    ``shared`` is true when every checkout returns the same DB-API
    connection (``StaticPool``); readers then serialize on ``lock``.
    """

    def __init__(self, engine: Engine, dialect: Dialect | None = None) -> None:
        self.engine = engine
        self.dialect: Dialect = dialect or get_dialect(engine.url.get_backend_name())
        self.shared = isinstance(engine.pool, StaticPool)
        self.lock = threading.RLock()
        self._schema_lock = threading.Lock()
        self._created: set[type] = set()

    def begin(self) -> Any:
        """Transaction context (commit on success, rollback on error)."""
        return self.engine.begin()

    @contextlib.contextmanager
    def connect(self) -> Iterator[Connection]:
        """Read connection; holds the writer lock on a shared connection."""
        with self._reader_guard():
            with self.engine.connect() as conn:
                yield conn

    def _reader_guard(self) -> Any:
        return self.lock if self.shared else contextlib.nullcontext()

    def ensure(self, model: Any) -> None:
        """Create the table of *model* unless this store already did."""
        cls = model if isinstance(model, type) else type(model)
        if cls in self._created:
            return
        self.create(cls)

    def create(self, *models: type) -> list[str]:
        """Apply (idempotent) DDL for *models*; returns the statements run."""
        from migspine.model.labels import Label

        applied: list[str] = []
        # same order as mutations: writer lock, then schema lock
        with self._reader_guard(), self._schema_lock:
            pending = [Label] + [m for m in models if m is not Label]
            try:
                with self.engine.begin() as conn:
                    for cls in pending:
                        if cls in self._created:
                            continue
                        for stmt in schema.ddl(cls, self.dialect):
                            conn.exec_driver_sql(stmt)
                            applied.append(stmt)
            except SQLAlchemyError as e:
                error = EngineError(f"schema creation failed: {e}", cause=e)
                logger.error("schema_failed", **error.to_dict())
                raise error from e
            self._created.update(pending)
        if applied:
            logger.debug("schema_applied", statements=len(applied))
        return applied

    def close(self) -> None:
        self.engine.dispose()


def open_store(
    url: str | None = None,
    *,
    settings: MigSpineSettings | None = None,
    models: Iterable[type] = (),
) -> Store:
    """Build a :class:`Store` from a URL or settings, creating *models* tables."""
    settings = settings or MigSpineSettings()
    models = tuple(models)
    url = url or settings.database_url
    dialect = dialect_for(url)
    engine = create_store_engine(
        url,
        dialect=dialect,
        echo=settings.echo_sql,
        foreign_keys=settings.foreign_keys,
        wal=settings.sqlite_wal,
    )
    store = Store(engine, dialect)
    store.create(*models)
    logger.info("store_opened", url=str(engine.url), models=len(models))
    return store
