"""
Shared pytest fixtures for mig-spine tests.

- ``store`` / ``table``: in-memory store, fresh per test
- ``file_store`` / ``file_table``: store backed by a temp file
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from migspine.core.settings import MigSpineSettings
from migspine.model import Store, Table, open_store


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host MIGSPINE_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("MIGSPINE_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def settings() -> MigSpineSettings:
    return MigSpineSettings(_env_file=None)


@pytest.fixture
def store(settings: MigSpineSettings) -> Iterator[Store]:
    s = open_store("sqlite://", settings=settings)
    yield s
    s.close()


@pytest.fixture
def table(store: Store) -> Table:
    return Table(store)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "discovery.db"


@pytest.fixture
def file_store(db_path: Path, settings: MigSpineSettings) -> Iterator[Store]:
    s = open_store(f"sqlite:///{db_path}", settings=settings)
    yield s
    s.close()


@pytest.fixture
def file_table(file_store: Store) -> Table:
    return Table(file_store)
