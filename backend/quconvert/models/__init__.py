"""Data models for converted question bank algorithms."""
from quconvert.models.conversion_models import (
    ConversionResult,
    ConversionStatus,
    ExerciseConversion,
    Statement,
)

__all__ = [
    "ConversionResult",
    "ConversionStatus",
    "ExerciseConversion",
    "Statement",
]
