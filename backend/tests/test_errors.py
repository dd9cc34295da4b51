"""
Error Handling Tests.

Tests for error codes, exceptions and the per-exercise issue collector.
"""
import pytest

from quconvert.core.config import Settings
from quconvert.core.errors import (
    ConversionIssue, ErrorCode, ErrorHandler, MalformedInputError,
    TranspilerError, VariableSchemeExhaustedError, opaque_fallback,
    structural_ambiguity, unsupported_function,
)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_malformed_is_recoverable(self):
        """Test MalformedInputError carries its fragment."""
        error = MalformedInputError("bad", fragment="1 +", position=2)
        assert error.recoverable is True
        assert error.to_dict()["context"] == {"fragment": "1 +", "position": 2}
        assert str(error) == "[E1001] bad"

    def test_exhausted_is_fatal(self):
        """Test VariableSchemeExhaustedError is not recoverable."""
        error = VariableSchemeExhaustedError("full", variable="$q")
        assert error.recoverable is False
        assert error.to_dict()["error"] == "E3002"


class TestIssues:
    """Tests for issue helpers."""

    def test_helpers(self):
        """Test issue codes of the helpers."""
        assert unsupported_function("foo").code == ErrorCode.UNSUPPORTED_FUNCTION
        assert structural_ambiguity("op", "list").code == ErrorCode.STRUCTURAL_AMBIGUITY
        assert opaque_fallback("pi").to_dict() == {
            "error": "E2003",
            "message": "Wrapped as native expression",
            "fragment": "pi",
        }


class TestErrorHandler:
    """Tests for the issue collector."""

    def test_record_and_summary(self):
        """Test issues are counted by code."""
        handler = ErrorHandler()
        handler.record_all([
            unsupported_function("foo"),
            unsupported_function("bar"),
            opaque_fallback("pi"),
        ], "$a")
        summary = handler.summary()
        assert summary["issue_count"] == 3
        assert summary["issue_codes"] == {"E2001": 2, "E2003": 1}

    def test_handle_recoverable(self):
        """Test recoverable errors become issues."""
        handler = ErrorHandler()
        issue = handler.handle(MalformedInputError("bad", fragment="x"))
        assert isinstance(issue, ConversionIssue)
        assert issue.fragment == "x"
        assert handler.summary()["error_count"] == 1

    def test_handle_fatal(self):
        """Test fatal errors are re-raised."""
        with pytest.raises(VariableSchemeExhaustedError):
            ErrorHandler().handle(VariableSchemeExhaustedError("full", variable="$q"))

    def test_handle_unexpected(self):
        """Test foreign exceptions are wrapped."""
        with pytest.raises(TranspilerError) as exc_info:
            ErrorHandler().handle(ValueError("boom"))
        assert exc_info.value.code == ErrorCode.UNKNOWN

    def test_clear(self):
        """Test clear empties the collector."""
        handler = ErrorHandler()
        handler.record(opaque_fallback("pi"))
        handler.clear()
        assert handler.has_issues() is False


class TestSettings:
    """Tests for environment configuration."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        monkeypatch.delenv("NATIVE_FUNCTION", raising=False)
        config = Settings()
        assert config.native_function == "sw_maxima_native"
        assert config.constant_replacement == "float(%pi)"

    def test_environment_override(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("NATIVE_FUNCTION", "native")
        monkeypatch.setenv("MAX_DELEGATION_DEPTH", "3")
        config = Settings()
        assert config.native_function == "native"
        assert config.max_delegation_depth == 3

    def test_invalid_integer_falls_back(self, monkeypatch):
        """Test a non-numeric limit uses the default."""
        monkeypatch.setenv("MAX_ALGORITHM_LENGTH", "lots")
        assert Settings().max_algorithm_length == 100_000

    def test_unknown_log_level(self, monkeypatch):
        """Test an unknown log level falls back to INFO."""
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert Settings().log_level == "INFO"
