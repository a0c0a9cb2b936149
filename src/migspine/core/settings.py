"""Settings for the discovery cache store.

Configuration is read from ``MIGSPINE_*`` environment variables and an
optional ``.env`` file, validated by pydantic at start-up.

Examples:
    >>> import os
    >>> os.environ["MIGSPINE_DATABASE_URL"] = "sqlite:////var/lib/mig/discovery.db"
    >>> MigSpineSettings().database_url
    'sqlite:////var/lib/mig/discovery.db'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class MigSpineSettings(BaseSettings):
    """Discovery cache settings.

    Fields
    ──────
    database_url : SQLAlchemy URL of the backing SQLite database
    log_level    : Structlog log level
    log_json     : JSON logs (None = auto-detect from TTY)
    sqlite_wal   : Put file databases in WAL journal mode
    foreign_keys : Enforce ``fk:`` tags (``PRAGMA foreign_keys=ON``)
    echo_sql     : Log every statement SQLAlchemy emits
    """

    model_config = SettingsConfigDict(
        env_prefix="MIGSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///:memory:",
        description="SQLAlchemy URL of the discovery database",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    echo_sql: bool = False

    # ── SQLite ───────────────────────────────────────────────────
    sqlite_wal: bool = False
    foreign_keys: bool = True

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LEVELS)}")
        return level

    @field_validator("database_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith("sqlite"):
            raise ValueError("only sqlite:// database URLs are supported")
        return value
