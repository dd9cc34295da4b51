"""Canonical variable renaming."""
from .scheme import VariableScheme, build_scheme, CANONICAL_TOKENS

__all__ = ['VariableScheme', 'build_scheme', 'CANONICAL_TOKENS']
