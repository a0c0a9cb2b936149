"""SQL dialect abstraction for the mapping engine.

The schema builder and table gateway never reference the database driver
directly.  Everything backend-specific (column type names, how a
uniqueness violation is recognised, per-connection pragmas) lives behind
the :class:`Dialect` protocol.

Architecture::

    ┌─────────────────────────────────────────────────────────────┐
    │  Schema Builder          Table Gateway          Store        │
    │  column_type(kind)       is_conflict(exc)       on_connect() │
    └─────────────────────────────────────────────────────────────┘
                              │
                              ▼
                      ┌──────────────┐
                      │ SQLiteDialect│
                      │ TEXT/INTEGER │
                      │ SQLITE_CONS..│
                      └──────────────┘

Examples:
    >>> d = get_dialect("sqlite")
    >>> d.column_type("int")
    'INTEGER'

Tags:
    dialect, sql, sqlite, constraint-classification
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import exc as sa_exc


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def column_type(self, kind: str) -> str:
        """DDL column type for a field kind (``'text'`` or ``'int'``)."""
        ...

    def is_conflict(self, error: Exception) -> bool:
        """Whether *error* is a UNIQUE / PRIMARY KEY violation."""
        ...

    def on_connect(self, dbapi_connection: Any, *, foreign_keys: bool, wal: bool) -> None:
        """Apply per-connection settings to a fresh DB-API connection."""
        ...


class SQLiteDialect:
    """SQLite dialect: ``TEXT``/``INTEGER`` columns, extended result codes."""

    _TYPES = {"text": "TEXT", "int": "INTEGER"}

    # Extended result codes reported by sqlite3 (Python 3.11+).
    _CONFLICT_CODES = frozenset(
        {
            "SQLITE_CONSTRAINT_UNIQUE",
            "SQLITE_CONSTRAINT_PRIMARYKEY",
        }
    )
    _CONFLICT_MESSAGES = ("UNIQUE constraint failed", "PRIMARY KEY must be unique")

    @property
    def name(self) -> str:
        return "sqlite"

    def column_type(self, kind: str) -> str:
        return self._TYPES[kind]

    def is_conflict(self, error: Exception) -> bool:
        if not isinstance(error, sa_exc.IntegrityError):
            return False
        orig = error.orig
        code = getattr(orig, "sqlite_errorname", None)
        if code is not None:
            return code in self._CONFLICT_CODES
        message = str(orig)
        return any(m in message for m in self._CONFLICT_MESSAGES)

    def on_connect(self, dbapi_connection: Any, *, foreign_keys: bool, wal: bool) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()


# =========================================================================
# Registry / Factory
# =========================================================================

_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. Supported: {sorted(_DIALECTS)}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (e.g. a test double)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
]
