"""Statement builder: record descriptors -> SQLAlchemy Core statements.

Columns and bind parameters follow descriptor order, so the SQL generated
for a record type is stable.  All values, label filter values included,
travel as bound parameters.

WHERE policy for update/delete: the pk when the type has one, otherwise
every natural key.  Get uses the pk only when it is set, so a record can
be fetched by its natural key too.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import sqlite
from sqlalchemy.sql import Executable

from migspine.core.errors import ValidationError
from migspine.model import fields as fm
from migspine.model.binder import Binder
from migspine.model.fields import INT, Field
from migspine.model.options import ListOptions


@dataclass
class Statement:
    """An executable statement and its bound parameters."""

    sql: Executable
    params: dict[str, Any]

    @property
    def text(self) -> str:
        """SQL text as SQLite would receive it."""
        return str(self.sql.compile(dialect=sqlite.dialect()))


def table_clause(name: str, fields: list[Field]) -> sa.TableClause:
    return sa.table(
        name,
        *(sa.column(f.name, sa.Integer if f.kind == INT else sa.Text) for f in fields),
    )


def _key_where(
    table: str, t: sa.TableClause, fields: list[Field], model: Any, *, pk_if_set: bool = False
) -> tuple[list[Any], list[Field]]:
    pk = fm.pk_field(fields)
    if pk is not None and not (pk_if_set and pk.empty(model)):
        return [t.c[pk.name] == sa.bindparam(pk.param)], [pk]
    keys = fm.key_fields(fields)
    if not keys:
        raise ValidationError(
            f"{table}: no pk or natural key to identify the record"
        ).with_context(table=table)
    return [t.c[k.name] == sa.bindparam(k.param) for k in keys], keys


def insert(table: str, fields: list[Field], binder: Binder) -> Statement:
    t = table_clause(table, fields)
    stmt = sa.insert(t).values({f.name: sa.bindparam(f.param) for f in fields})
    return Statement(stmt, binder.params(fields))


def update(table: str, fields: list[Field], binder: Binder) -> Statement:
    t = table_clause(table, fields)
    where, keys = _key_where(table, t, fields, binder.model)
    # A type with nothing mutable still needs a SET clause; rewrite the key.
    changed = fm.mutable_fields(fields) or keys
    stmt = (
        sa.update(t)
        .values({f.name: sa.bindparam(f.param) for f in changed})
        .where(*where)
    )
    params = binder.params(changed)
    params.update(binder.params(keys))
    return Statement(stmt, params)


def delete(table: str, fields: list[Field], binder: Binder) -> Statement:
    t = table_clause(table, fields)
    where, keys = _key_where(table, t, fields, binder.model)
    return Statement(sa.delete(t).where(*where), binder.params(keys))


def get(table: str, fields: list[Field], binder: Binder) -> Statement:
    """SELECT by pk, or by natural keys when the pk is empty.

    Natural keys need not be unique; the row with the lowest pk wins (for
    pk-less types, the first row SQLite returns).
    """
    t = table_clause(table, fields)
    where, keys = _key_where(table, t, fields, binder.model, pk_if_set=True)
    stmt = sa.select(*t.c).where(*where)
    pk = fm.pk_field(fields)
    if pk is not None and keys != [pk]:
        stmt = stmt.order_by(t.c[pk.name])
    return Statement(stmt, binder.params(keys))


def _label_owners(table: str, labels: dict[str, str], params: dict[str, Any]) -> Any:
    """Parent keys bearing every requested label (INTERSECT)."""
    from migspine.model.labels import label_table

    lt = label_table()
    kind = sa.bindparam("label_kind")
    params["label_kind"] = table
    selects = []
    for i, (name, value) in enumerate(labels.items()):
        selects.append(
            sa.select(lt.c.parent).where(
                lt.c.kind == kind,
                lt.c.name == sa.bindparam(f"label_name_{i}"),
                lt.c.value == sa.bindparam(f"label_value_{i}"),
            )
        )
        params[f"label_name_{i}"] = name
        params[f"label_value_{i}"] = value
    if len(selects) == 1:
        return selects[0]
    return sa.intersect(*selects)


def _check_options(table: str, fields: list[Field], options: ListOptions) -> None:
    for position in options.sort:
        if not isinstance(position, int) or not 1 <= position <= len(fields):
            raise ValidationError(
                f"{table}: sort position {position!r} out of range 1..{len(fields)}"
            ).with_context(table=table)
    page = options.page
    if page is not None and (page.limit < 0 or page.offset < 0):
        raise ValidationError(f"{table}: page limit/offset must be >= 0").with_context(table=table)


def list_(table: str, fields: list[Field], binder: Binder, options: ListOptions) -> Statement:
    """SELECT (or COUNT) qualified by non-empty fields and labels."""
    _check_options(table, fields, options)
    t = table_clause(table, fields)
    if options.count:
        stmt = sa.select(sa.func.count()).select_from(t)
    else:
        stmt = sa.select(*t.c)
    qualified = fm.not_empty(fields, binder.model)
    where = [t.c[f.name] == sa.bindparam(f.param) for f in qualified]
    params = binder.params(qualified)
    if options.labels:
        key = fm.require_label_key(table, fields)
        owners = _label_owners(table, options.labels, params)
        where.append(sa.cast(t.c[key.name], sa.Text).in_(owners))
    if where:
        stmt = stmt.where(*where)
    if not options.count:
        if options.sort:
            stmt = stmt.order_by(*(sa.literal_column(str(n)) for n in options.sort))
        if options.page is not None:
            stmt = stmt.limit(options.page.limit).offset(options.page.offset)
    return Statement(stmt, params)
