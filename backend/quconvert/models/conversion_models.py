"""
Conversion Models for the Question Bank Converter.

Dataclass-based models for the statements of one exercise algorithm and
the results produced for them. Every model serializes to plain dicts so
results can be returned as JSON.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from quconvert.core.errors import ConversionIssue


class ConversionStatus(str, Enum):
    """Outcome of converting one statement."""
    OK = "ok"                # Structural translation only
    FALLBACK = "fallback"    # An opaque/native wrap was used
    FAILED = "failed"        # Original fragment kept, needs manual work


@dataclass(frozen=True)
class Statement:
    """One `name = expression` assignment of an algorithm."""
    name: str
    raw_expression: str
    order: int
    source: str = ""

    @property
    def text(self) -> str:
        return f"{self.name}={self.raw_expression}" if self.name else self.raw_expression

    def with_expression(self, expression: str) -> "Statement":
        return Statement(self.name, expression, self.order, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "raw_expression": self.raw_expression,
            "order": self.order,
        }


@dataclass
class ConversionResult:
    """Converted definition of one variable."""
    name: str
    canonical_name: str
    target_expression: str
    status: ConversionStatus
    warning: bool
    comment: str
    original_expression: str = ""
    issues: List[ConversionIssue] = field(default_factory=list)

    def as_tuple(self) -> Tuple[str, str, bool, str]:
        """Caller contract: (canonical name, definition, warning, comment)."""
        return (self.canonical_name, self.target_expression, self.warning, self.comment)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "canonical_name": self.canonical_name,
            "definition": self.target_expression,
            "status": self.status.value,
            "warning": self.warning,
            "comment": self.comment,
            "original": self.original_expression,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class ExerciseConversion:
    """All converted variables of one exercise algorithm."""
    results: List[ConversionResult] = field(default_factory=list)
    scheme: Dict[str, str] = field(default_factory=dict)
    conditions: List[str] = field(default_factory=list)
    non_convertibles: List[str] = field(default_factory=list)
    comment: str = ""

    @property
    def warning(self) -> bool:
        return any(result.warning for result in self.results)

    @property
    def statistics(self) -> Dict[str, int]:
        stats = {status.value: 0 for status in ConversionStatus}
        for result in self.results:
            stats[result.status.value] += 1
        stats["total"] = len(self.results)
        stats["warnings"] = sum(1 for r in self.results if r.warning)
        return stats

    def get(self, name: str) -> Optional[ConversionResult]:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "scheme": dict(self.scheme),
            "conditions": list(self.conditions),
            "non_convertibles": list(self.non_convertibles),
            "comment": self.comment,
            "warning": self.warning,
            "statistics": self.statistics,
        }
