"""mig-spine core -- errors, logging, settings and the SQL dialect.

Architecture::

    errors.py      Structured error hierarchy (MigSpineError and friends)
    logging.py     structlog configuration + get_logger()
    settings.py    MigSpineSettings (pydantic-settings, MIGSPINE_ prefix)
    dialect.py     Dialect protocol + SQLiteDialect
"""

from migspine.core.dialect import Dialect, SQLiteDialect, get_dialect, register_dialect
from migspine.core.errors import (
    ConfigError,
    ConstraintViolation,
    EngineError,
    ErrorCategory,
    ErrorContext,
    InvalidModelError,
    MigSpineError,
    NotFoundError,
    ValidationError,
    categorize_error,
    is_retryable,
)
from migspine.core.logging import LogContext, configure_logging, get_logger
from migspine.core.settings import MigSpineSettings

__all__ = [
    "ConfigError",
    "ConstraintViolation",
    "Dialect",
    "EngineError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidModelError",
    "LogContext",
    "MigSpineError",
    "MigSpineSettings",
    "NotFoundError",
    "SQLiteDialect",
    "ValidationError",
    "categorize_error",
    "configure_logging",
    "get_dialect",
    "get_logger",
    "is_retryable",
    "register_dialect",
]
