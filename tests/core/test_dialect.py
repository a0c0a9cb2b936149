"""Tests for the SQLite dialect."""

from __future__ import annotations

import sqlite3

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from migspine.core.dialect import Dialect, SQLiteDialect, get_dialect, register_dialect


@pytest.fixture
def sqlite() -> SQLiteDialect:
    return SQLiteDialect()


@pytest.fixture
def engine() -> sa.Engine:
    e = sa.create_engine("sqlite://")
    with e.begin() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.exec_driver_sql('CREATE TABLE "Parent" ("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL UNIQUE)')
    return e


def _integrity_error(engine: sa.Engine, sql: str) -> IntegrityError:
    with pytest.raises(IntegrityError) as info:
        with engine.begin() as conn:
            conn.exec_driver_sql(sql)
    return info.value


class TestProtocol:
    def test_isinstance(self, sqlite: SQLiteDialect) -> None:
        assert isinstance(sqlite, Dialect)
        assert sqlite.name == "sqlite"

    def test_registry(self) -> None:
        assert isinstance(get_dialect("SQLite"), SQLiteDialect)
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("oracle")

    def test_register_custom(self) -> None:
        custom = SQLiteDialect()
        register_dialect("custom", custom)
        assert get_dialect("custom") is custom


class TestColumnType:
    def test_kinds(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.column_type("text") == "TEXT"
        assert sqlite.column_type("int") == "INTEGER"


class TestIsConflict:
    def test_primary_key(self, sqlite: SQLiteDialect, engine: sa.Engine) -> None:
        with engine.begin() as conn:
            conn.exec_driver_sql("INSERT INTO \"Parent\" VALUES (1, 'a')")
        err = _integrity_error(engine, "INSERT INTO \"Parent\" VALUES (1, 'b')")
        assert sqlite.is_conflict(err)

    def test_unique(self, sqlite: SQLiteDialect, engine: sa.Engine) -> None:
        with engine.begin() as conn:
            conn.exec_driver_sql("INSERT INTO \"Parent\" VALUES (1, 'a')")
        err = _integrity_error(engine, "INSERT INTO \"Parent\" VALUES (2, 'a')")
        assert sqlite.is_conflict(err)

    def test_not_null_is_not_conflict(self, sqlite: SQLiteDialect, engine: sa.Engine) -> None:
        err = _integrity_error(engine, "INSERT INTO \"Parent\" VALUES (1, NULL)")
        assert not sqlite.is_conflict(err)

    def test_other_errors(self, sqlite: SQLiteDialect) -> None:
        assert not sqlite.is_conflict(ValueError("UNIQUE constraint failed"))


class TestOnConnect:
    def test_pragmas(self, sqlite: SQLiteDialect) -> None:
        conn = sqlite3.connect(":memory:")
        try:
            sqlite.on_connect(conn, foreign_keys=True, wal=False)
            assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
            sqlite.on_connect(conn, foreign_keys=False, wal=False)
            assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 0
        finally:
            conn.close()
