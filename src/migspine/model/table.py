"""Table gateway: CRUD and listing for any record type.

:class:`Table` maps a dataclass record to its table.  The record type is
inspected (once per class), its DDL applied lazily, and every operation
is built from the same descriptors, so no per-type code is needed.

Behavior:
    insert  Insert; on a UNIQUE / PRIMARY KEY conflict, update instead.
    update  Update by pk (or natural keys); zero rows -> NotFoundError.
    delete  Delete by pk (or natural keys); zero rows is a no-op.
    get     Fetch by pk (or natural keys) into the record; NotFoundError.
    list    Records matching the non-empty fields of a template + labels.
    count   Same qualification as list, COUNT(*).

Labels are rewritten in the same transaction as the owning row.

Examples:
    >>> table = Table(open_store())
    >>> table.insert(Widget(id=1, group="g1", name="a"))
    >>> table.get(Widget(id=1)).name
    'a'
"""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from migspine.core.errors import (
    ConstraintViolation,
    EngineError,
    MigSpineError,
    NotFoundError,
)
from migspine.core.logging import get_logger
from migspine.model import fields as fm
from migspine.model import labels as lm
from migspine.model import schema, statements
from migspine.model.binder import Binder
from migspine.model.fields import Field
from migspine.model.options import ListOptions
from migspine.model.statements import Statement
from migspine.model.store import Store

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _logged(operation: str) -> Callable[[F], F]:
    """Log failures at the call site, then propagate them unchanged."""

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: Table, model: Any, *args: Any, **kwargs: Any) -> Any:
            try:
                return fn(self, model, *args, **kwargs)
            except NotFoundError as e:
                e.with_context(operation=operation)
                logger.debug("record_not_found", **e.context.to_dict())
                raise
            except MigSpineError as e:
                e.with_context(operation=operation)
                logger.error("table_operation_failed", **e.to_dict())
                raise

        return wrapper  # type: ignore[return-value]

    return decorator


class Table:
    """Gateway over a :class:`Store` for arbitrary record types."""

    def __init__(self, store: Store) -> None:
        self.store = store

    # -- Introspection -----------------------------------------------------

    def name(self, model: Any) -> str:
        return fm.table_name(model)

    def ddl(self, model: Any) -> list[str]:
        """Table and index DDL for *model*."""
        return schema.ddl(model, self.store.dialect)

    def fields(self, model: Any) -> list[Field]:
        """Validated descriptors of *model*; ensures its table exists."""
        found = fm.fields(model)
        fm.validate(found)
        if fm.labels_of(model):
            fm.require_label_key(self.name(model), found)
        self.store.ensure(model)
        return found

    # -- Mutations ---------------------------------------------------------

    @_logged("insert")
    def insert(self, model: Any) -> None:
        """Insert *model*, or update it when its key already exists."""
        with self.store.lock:
            self._insert(model)

    @_logged("update")
    def update(self, model: Any) -> None:
        """Update *model* by key; raises NotFoundError when no row matched."""
        with self.store.lock:
            self._update(model)

    @_logged("delete")
    def delete(self, model: Any) -> None:
        """Delete *model* by key (no-op when absent)."""
        with self.store.lock:
            fields = self.fields(model)
            table = self.name(model)
            stmt = statements.delete(table, fields, Binder(fields, model))
            with self._engine(table, stmt):
                with self.store.begin() as conn:
                    result = conn.execute(stmt.sql, stmt.params)
                    if result.rowcount == 0:
                        return
                    if fm.has_labels(model) and fm.label_key(fields) is not None:
                        lm.delete_labels(conn, model)
            logger.info("record_deleted", table=table, key=self._key(fields, model))

    def _insert(self, model: Any) -> None:
        fields = self.fields(model)
        table = self.name(model)
        stmt = statements.insert(table, fields, Binder(fields, model))
        try:
            with self.store.begin() as conn:
                try:
                    result = conn.execute(stmt.sql, stmt.params)
                except IntegrityError as e:
                    if not self.store.dialect.is_conflict(e):
                        raise
                    raise ConstraintViolation(f"{table} already exists", cause=e).with_context(
                        table=table
                    ) from e
                if result.rowcount == 0:
                    return
                # label conflicts are not entity conflicts
                lm.insert_labels(conn, model)
        except ConstraintViolation as conflict:
            logger.debug(
                "insert_conflict", table=table, key=self._key(fields, model), cause=str(conflict.cause)
            )
            try:
                self._update(model)
            except MigSpineError as update_error:
                raise update_error from conflict
            return
        except SQLAlchemyError as e:
            raise self._engine_error(table, stmt, e) from e
        logger.info("record_inserted", table=table, key=self._key(fields, model))

    def _update(self, model: Any) -> None:
        fields = self.fields(model)
        table = self.name(model)
        stmt = statements.update(table, fields, Binder(fields, model))
        with self._engine(table, stmt):
            with self.store.begin() as conn:
                result = conn.execute(stmt.sql, stmt.params)
                if result.rowcount == 0:
                    raise NotFoundError(f"{table} not found").with_context(
                        table=table, key=self._key(fields, model)
                    )
                if fm.has_labels(model) and fm.label_key(fields) is not None:
                    lm.replace_labels(conn, model)
        logger.info("record_updated", table=table, key=self._key(fields, model))

    # -- Reads -------------------------------------------------------------

    @_logged("get")
    def get(self, model: Any) -> Any:
        """Fetch the row matching *model*'s key into *model* and return it.

        A natural key shared by several rows yields the one with the lowest pk.
        """
        fields = self.fields(model)
        table = self.name(model)
        binder = Binder(fields, model)
        stmt = statements.get(table, fields, binder)
        with self._engine(table, stmt):
            with self.store.connect() as conn:
                row = conn.execute(stmt.sql, stmt.params).mappings().first()
        if row is None:
            raise NotFoundError(f"{table} not found").with_context(
                table=table, key=self._key(fields, model)
            )
        binder.scan(row)
        return model

    @_logged("list")
    def list(self, model: Any, options: ListOptions | None = None) -> list[Any]:
        """Records qualified by the non-empty fields of *model* and *options*."""
        options = options or ListOptions()
        fields = self.fields(model)
        table = self.name(model)
        stmt = statements.list_(
            table,
            fields,
            Binder(fields, model),
            dataclasses.replace(options, count=False),
        )
        with self._engine(table, stmt):
            with self.store.connect() as conn:
                rows = conn.execute(stmt.sql, stmt.params).mappings().all()
        found = []
        cls = type(model)
        for row in rows:
            record = cls()
            Binder(fields, record).scan(row)
            found.append(record)
        return found

    @_logged("count")
    def count(self, model: Any, options: ListOptions | None = None) -> int:
        """Number of records :meth:`list` would return, ignoring page/sort."""
        options = options or ListOptions()
        fields = self.fields(model)
        table = self.name(model)
        stmt = statements.list_(
            table,
            fields,
            Binder(fields, model),
            dataclasses.replace(options, count=True),
        )
        with self._engine(table, stmt):
            with self.store.connect() as conn:
                return int(conn.execute(stmt.sql, stmt.params).scalar_one())

    # -- Helpers -----------------------------------------------------------

    @staticmethod
    def _key(fields: list[Field], model: Any) -> Any:
        pk = fm.pk_field(fields)
        if pk is not None and not pk.empty(model):
            return pk.get(model)
        return {k.name: k.get(model) for k in fm.key_fields(fields)}

    @contextmanager
    def _engine(self, table: str, stmt: Statement) -> Iterator[None]:
        """Re-raise SQLAlchemy failures as EngineError."""
        try:
            yield
        except SQLAlchemyError as e:
            raise self._engine_error(table, stmt, e) from e

    @staticmethod
    def _engine_error(table: str, stmt: Statement, error: SQLAlchemyError) -> EngineError:
        return EngineError(
            f"{table}: {error}",
            retryable=isinstance(error, OperationalError),
            cause=error,
        ).with_context(table=table, statement=stmt.text)

