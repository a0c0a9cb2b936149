"""Schema builder: record descriptors -> idempotent DDL.

Every statement is ``IF NOT EXISTS`` and purely additive, so the full DDL
list can be re-applied on every process start.

For ``Widget{id pk, group key, name}`` the builder emits::

    CREATE TABLE IF NOT EXISTS "Widget" (
        "id" INTEGER PRIMARY KEY,
        "group" TEXT NOT NULL,
        "name" TEXT NOT NULL
    )

    CREATE INDEX IF NOT EXISTS "WidgetIndex"
    ON "Widget" ("group")
"""

from __future__ import annotations

from typing import Any

from migspine.core.dialect import Dialect
from migspine.model import fields as fm
from migspine.model.fields import Field

LABEL_TABLE = "Label"


def quote(name: str) -> str:
    return f'"{name}"'


def column_ddl(field: Field, dialect: Dialect) -> str:
    constraint = "PRIMARY KEY" if field.pk else "NOT NULL"
    return f"{quote(field.name)} {dialect.column_type(field.kind)} {constraint}"


def constraints(fields: list[Field]) -> list[str]:
    """UNIQUE constraints (one per group) then FOREIGN KEY constraints."""
    unique: dict[str, list[str]] = {}
    for f in fields:
        for group in f.unique:
            unique.setdefault(group, []).append(quote(f.name))
    found = [f"UNIQUE ({', '.join(cols)})" for cols in unique.values()]
    for f in fields:
        if f.fk is None:
            continue
        found.append(
            f"FOREIGN KEY ({quote(f.name)}) "
            f"REFERENCES {quote(f.fk.table)} ({quote(f.fk.field)}) ON DELETE CASCADE"
        )
    return found


def table_ddl(table: str, fields: list[Field], dialect: Dialect) -> str:
    parts = [column_ddl(f, dialect) for f in fields] + constraints(fields)
    body = ",\n".join(f"    {p}" for p in parts)
    return f"CREATE TABLE IF NOT EXISTS {quote(table)} (\n{body}\n)"


def index_ddl(index: str, table: str, fields: list[Field]) -> str:
    cols = ", ".join(quote(f.name) for f in fields)
    return f"CREATE INDEX IF NOT EXISTS {quote(index)}\nON {quote(table)} ({cols})"


def index_groups(fields: list[Field]) -> dict[str, list[Field]]:
    groups: dict[str, list[Field]] = {}
    for f in fields:
        for group in f.index:
            groups.setdefault(group, []).append(f)
    return groups


def label_cascade_ddl(table: str, key: Field) -> str:
    """Trigger removing an owner's labels when its row is deleted."""
    return (
        f"CREATE TRIGGER IF NOT EXISTS {quote(table + 'LabelCascade')}\n"
        f"AFTER DELETE ON {quote(table)}\n"
        f"FOR EACH ROW\n"
        f"BEGIN\n"
        f"    DELETE FROM {quote(LABEL_TABLE)}\n"
        f"    WHERE kind = '{table}' AND parent = CAST(OLD.{quote(key.name)} AS TEXT);\n"
        f"END"
    )


def ddl(model: Any, dialect: Dialect) -> list[str]:
    """Table, index and trigger DDL for a record (instance or class)."""
    instance = model() if isinstance(model, type) else model
    fields = fm.fields(instance)
    fm.validate(fields)
    table = fm.table_name(instance)
    found = [table_ddl(table, fields, dialect)]
    keys = fm.key_fields(fields)
    if keys:
        found.append(index_ddl(f"{table}Index", table, keys))
    for group, members in index_groups(fields).items():
        found.append(index_ddl(f"{table}{group}Index", table, members))
    if fm.has_labels(instance) and table != LABEL_TABLE:
        key = fm.label_key(fields)
        if key is not None:
            found.append(label_cascade_ddl(table, key))
    return found
