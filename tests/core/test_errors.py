"""Tests for the structured error hierarchy."""

from __future__ import annotations

import pytest

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


class TestCategories:
    @pytest.mark.parametrize(
        ("cls", "category"),
        [
            (InvalidModelError, ErrorCategory.MODEL),
            (ValidationError, ErrorCategory.VALIDATION),
            (ConstraintViolation, ErrorCategory.CONFLICT),
            (NotFoundError, ErrorCategory.NOT_FOUND),
            (EngineError, ErrorCategory.DATABASE),
            (ConfigError, ErrorCategory.CONFIG),
        ],
    )
    def test_default_category(self, cls: type[MigSpineError], category: ErrorCategory) -> None:
        err = cls("boom")
        assert err.category == category
        assert isinstance(err, MigSpineError)

    def test_override_category(self) -> None:
        err = EngineError("boom", category=ErrorCategory.INTERNAL)
        assert err.category == ErrorCategory.INTERNAL

    def test_base_defaults(self) -> None:
        err = MigSpineError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert str(err) == "boom"


class TestContext:
    def test_with_context_known_keys(self) -> None:
        err = NotFoundError("Widget not found").with_context(table="Widget", operation="get")
        assert err.context.table == "Widget"
        assert err.context.operation == "get"

    def test_with_context_unknown_keys_go_to_metadata(self) -> None:
        err = NotFoundError("x").with_context(key=1)
        assert err.context.metadata == {"key": 1}

    def test_context_to_dict_skips_unset(self) -> None:
        ctx = ErrorContext(table="Widget")
        assert ctx.to_dict() == {"table": "Widget"}


class TestToDict:
    def test_serialises_cause(self) -> None:
        cause = RuntimeError("disk I/O error")
        err = EngineError("write failed", cause=cause).with_context(table="Widget")
        d = err.to_dict()
        assert d["error_type"] == "EngineError"
        assert d["category"] == "DATABASE"
        assert d["context"] == {"table": "Widget"}
        assert d["cause"] == "disk I/O error"
        assert err.__cause__ is cause

    def test_no_context_key_when_empty(self) -> None:
        assert "context" not in ValidationError("bad").to_dict()


class TestHelpers:
    def test_is_retryable(self) -> None:
        assert is_retryable(EngineError("locked", retryable=True))
        assert not is_retryable(NotFoundError("x"))
        assert is_retryable(TimeoutError())
        assert not is_retryable(KeyError("x"))

    def test_categorize_error(self) -> None:
        assert categorize_error(NotFoundError("x")) == ErrorCategory.NOT_FOUND
        assert categorize_error(ValueError("x")) == ErrorCategory.VALIDATION
        assert categorize_error(OSError("x")) == ErrorCategory.DATABASE
        assert categorize_error(KeyError("x")) == ErrorCategory.UNKNOWN
