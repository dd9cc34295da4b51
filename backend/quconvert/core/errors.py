"""
Structured Error Handling for the Question Bank Converter.

Provides:
- Error codes shared by exceptions and recorded conversion issues
- Custom exception hierarchy
- Error context capture
- Per-exercise issue collection
"""
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes."""
    # Input errors (1xxx)
    MALFORMED_INPUT = "E1001"

    # Conversion errors (2xxx)
    UNSUPPORTED_FUNCTION = "E2001"
    STRUCTURAL_AMBIGUITY = "E2002"
    OPAQUE_FALLBACK = "E2003"

    # Limits (3xxx)
    DELEGATION_DEPTH = "E3001"
    SCHEME_EXHAUSTED = "E3002"

    # Unknown
    UNKNOWN = "E9999"


@dataclass
class ErrorContext:
    """Captured context when error occurred."""
    variable: Optional[str] = None
    fragment: Optional[str] = None
    position: Optional[int] = None
    additional: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        if self.variable:
            result["variable"] = self.variable
        if self.fragment:
            result["fragment"] = self.fragment
        if self.position is not None:
            result["position"] = self.position
        if self.additional:
            result.update(self.additional)
        return result


class TranspilerError(Exception):
    """Base exception for all converter errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = recoverable
        self.suggestion = suggestion
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion,
            "context": self.context.to_dict(),
            "timestamp": self.timestamp.isoformat()
        }

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class MalformedInputError(TranspilerError):
    """Expression could not be tokenized or parsed."""

    def __init__(self, message: str, fragment: str = "", position: Optional[int] = None, **kwargs):
        super().__init__(
            message=message,
            code=ErrorCode.MALFORMED_INPUT,
            context=ErrorContext(fragment=fragment, position=position),
            recoverable=True,
            suggestion="The statement is kept as-is and flagged for manual review",
            **kwargs
        )


class VariableSchemeExhaustedError(TranspilerError):
    """More variables than canonical tokens."""

    def __init__(self, message: str, variable: str, **kwargs):
        super().__init__(
            message=message,
            code=ErrorCode.SCHEME_EXHAUSTED,
            context=ErrorContext(variable=variable),
            suggestion="Split the exercise algorithm before converting it",
            **kwargs
        )


# ==================== Conversion Issues ====================

@dataclass
class ConversionIssue:
    """A non-fatal problem met while converting one fragment."""
    code: ErrorCode
    message: str
    fragment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "message": self.message,
            "fragment": self.fragment,
        }

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


def unsupported_function(name: str, fragment: str = "") -> ConversionIssue:
    return ConversionIssue(
        ErrorCode.UNSUPPORTED_FUNCTION,
        f"No mapping for function '{name}'",
        fragment or name,
    )


def structural_ambiguity(name: str, detail: str, fragment: str = "") -> ConversionIssue:
    return ConversionIssue(
        ErrorCode.STRUCTURAL_AMBIGUITY,
        f"Unsupported argument shape for '{name}': {detail}",
        fragment or name,
    )


def opaque_fallback(fragment: str) -> ConversionIssue:
    return ConversionIssue(
        ErrorCode.OPAQUE_FALLBACK,
        "Wrapped as native expression",
        fragment,
    )


# ==================== Error Handler ====================

class ErrorHandler:
    """
    Collects the issues raised while converting one exercise.
    """

    def __init__(self):
        self._issues: List[ConversionIssue] = []
        self._errors: List[TranspilerError] = []

    def record(self, issue: ConversionIssue, variable: Optional[str] = None):
        """Record a conversion issue."""
        self._issues.append(issue)
        where = f" in {variable}" if variable else ""
        logger.warning(f"{issue}{where}: {issue.fragment}")

    def record_all(self, issues: List[ConversionIssue], variable: Optional[str] = None):
        for issue in issues:
            self.record(issue, variable)

    def handle(self, error: Exception, context: Optional[ErrorContext] = None) -> ConversionIssue:
        """
        Turn a recoverable exception into an issue.

        Non-recoverable errors are re-raised.
        """
        if isinstance(error, TranspilerError):
            self._errors.append(error)
            if not error.recoverable:
                logger.error(str(error))
                raise error
            issue = ConversionIssue(error.code, error.message, error.context.fragment or "")
            self.record(issue, context.variable if context else None)
            return issue

        wrapped = TranspilerError(
            message=str(error),
            code=ErrorCode.UNKNOWN,
            context=context,
            cause=error
        )
        self._errors.append(wrapped)
        logger.error(f"Unexpected error: {error}", exc_info=True)
        raise wrapped from error

    @property
    def issues(self) -> List[ConversionIssue]:
        return self._issues.copy()

    def has_issues(self) -> bool:
        return len(self._issues) > 0

    def clear(self):
        self._issues.clear()
        self._errors.clear()

    def summary(self) -> Dict[str, Any]:
        """Get issue summary."""
        counts: Dict[str, int] = {}
        for issue in self._issues:
            counts[issue.code.value] = counts.get(issue.code.value, 0) + 1
        return {
            "issue_count": len(self._issues),
            "error_count": len(self._errors),
            "issue_codes": counts,
        }
