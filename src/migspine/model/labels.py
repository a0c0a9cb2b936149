"""Label index: a shared entity-attribute-value table for record labels.

One ``Label`` row per (owner, name).  ``kind`` is the owner's table name
and ``parent`` its key rendered as text, so any record type can be
filtered by label without a per-type side table.  An owner's label set is
always replaced wholesale: delete all, insert all.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from migspine.model import fields as fm
from migspine.model.fields import column
from migspine.model.statements import table_clause


@dataclass
class Label:
    """Label row."""

    kind: str = column("key,unique(owner)", "")
    parent: str = column("key,unique(owner)", "")
    name: str = column("unique(owner)", "")
    value: str = column(default="")


@functools.cache
def label_table() -> sa.TableClause:
    return table_clause("Label", list(fm.layout(Label).fields))


def owner(model: Any) -> tuple[str, str]:
    """(kind, parent) identifying the label owner *model*."""
    fields = fm.fields(model)
    table = fm.table_name(model)
    key = fm.require_label_key(table, fields)
    return table, str(key.get(model))


def insert_labels(conn: Connection, model: Any) -> int:
    """Insert one row per label of *model*; returns the row count."""
    labels = fm.labels_of(model)
    if not labels:
        return 0
    kind, parent = owner(model)
    lt = label_table()
    conn.execute(
        sa.insert(lt),
        [
            {"kind": kind, "parent": parent, "name": name, "value": str(value)}
            for name, value in labels.items()
        ],
    )
    return len(labels)


def delete_labels(conn: Connection, model: Any) -> int:
    """Delete every label row owned by *model*."""
    kind, parent = owner(model)
    lt = label_table()
    result = conn.execute(
        sa.delete(lt).where(lt.c.kind == kind, lt.c.parent == parent)
    )
    return result.rowcount


def replace_labels(conn: Connection, model: Any) -> int:
    delete_labels(conn, model)
    return insert_labels(conn, model)


def labels_for(conn: Connection, model: Any) -> dict[str, str]:
    """Current label rows of *model* (diagnostics; never used for projection)."""
    kind, parent = owner(model)
    lt = label_table()
    rows = conn.execute(
        sa.select(lt.c.name, lt.c.value)
        .where(lt.c.kind == kind, lt.c.parent == parent)
        .order_by(lt.c.name)
    )
    return {name: value for name, value in rows}
