"""Entity-to-relational mapping engine backing the discovery cache.

Architecture::

    fields.py      Field descriptor extraction (dataclass + "sql" tags)
    schema.py      Idempotent table / index / trigger DDL
    statements.py  SQLAlchemy Core INSERT/UPDATE/DELETE/GET/LIST/COUNT
    binder.py      Staging cells between records and statements
    labels.py      Shared Label (EAV) index
    store.py       Engine + dialect + writer lock
    table.py       Table gateway (public CRUD facade)
"""

from migspine.model.fields import FK, Field, Labels, column, table_name, validate
from migspine.model.labels import Label
from migspine.model.options import ListOptions, Page
from migspine.model.store import Store, create_store_engine, open_store
from migspine.model.table import Table

__all__ = [
    "FK",
    "Field",
    "Label",
    "Labels",
    "ListOptions",
    "Page",
    "Store",
    "Table",
    "column",
    "create_store_engine",
    "open_store",
    "table_name",
    "validate",
]
