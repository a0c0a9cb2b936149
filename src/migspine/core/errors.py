"""
Structured error types for the discovery model layer.

Every failure raised by the mapping engine is a :class:`MigSpineError`
carrying a category, a retry hint, structured context and (when wrapping
a driver failure) the chained cause.  Callers in the reconcile loops branch
on the *type*; logging and alerting use :meth:`MigSpineError.to_dict`.

Manifesto:
    - **Structural errors fail fast:** InvalidModelError / ValidationError
      are raised before any SQL is built or executed
    - **Expected outcomes are typed:** NotFoundError is a normal result the
      caller must handle, not a systemic failure
    - **Driver errors are chained:** EngineError keeps the SQLAlchemy /
      sqlite3 exception as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       MigSpineError                           │
        │        (category, retryable, context, cause)                  │
        ├──────────────────────────────────────────────────────────────┤
        │  InvalidModelError   ValidationError   ConstraintViolation    │
        │  (MODEL)             (VALIDATION)      (CONFLICT)             │
        │                                                                │
        │  NotFoundError       EngineError       ConfigError            │
        │  (NOT_FOUND)         (DATABASE)        (CONFIG)               │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NotFoundError("Widget not found").with_context(table="Widget")
    >>> error.context.table
    'Widget'
    >>> error.to_dict()["category"]
    'NOT_FOUND'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories for classification and routing.

    Attributes:
        MODEL: Input is not a record instance
        VALIDATION: Unsupported field kind, malformed tag, bad option
        CONFLICT: Unique / primary key violation
        NOT_FOUND: No row matched the record key
        DATABASE: Backing store failure (I/O, syntax, locking)
        CONFIG: Invalid settings
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    MODEL = "MODEL"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    DATABASE = "DATABASE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        table: Table (record type) name
        operation: Gateway operation (insert, update, get, ...)
        field: Offending field / column name
        statement: SQL text, when the failure came from the engine
        metadata: Anything else worth logging
    """

    table: str | None = None
    operation: str | None = None
    field: str | None = None
    statement: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding unset fields."""
        result = {}
        for key in ("table", "operation", "field", "statement"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigSpineError(Exception):
    """
    Base exception for all discovery model errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.  Passing ``cause=`` chains the wrapped
    exception (``__cause__``) so tracebacks keep the driver error.

    Examples:
        >>> err = MigSpineError("boom")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ValidationError("bad tag").with_context(table="Widget", field="id")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class InvalidModelError(MigSpineError):
    """The value passed as a record is not a dataclass instance."""

    default_category = ErrorCategory.MODEL


class ValidationError(MigSpineError):
    """A record type or list option cannot be mapped to SQL."""

    default_category = ErrorCategory.VALIDATION


class ConstraintViolation(MigSpineError):
    """Insert collided with a UNIQUE or PRIMARY KEY constraint."""

    default_category = ErrorCategory.CONFLICT


class NotFoundError(MigSpineError):
    """No row matched the record key."""

    default_category = ErrorCategory.NOT_FOUND


class EngineError(MigSpineError):
    """Any other backing store failure."""

    default_category = ErrorCategory.DATABASE


class ConfigError(MigSpineError):
    """Invalid configuration value."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, MigSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, MigSpineError):
        return error.category
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, OSError):
        return ErrorCategory.DATABASE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigSpineError",
    "InvalidModelError",
    "ValidationError",
    "ConstraintViolation",
    "NotFoundError",
    "EngineError",
    "ConfigError",
    "is_retryable",
    "categorize_error",
]
