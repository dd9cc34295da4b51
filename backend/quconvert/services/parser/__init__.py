"""
Algorithm Parsing Package.

Splits algorithms into statements and makes implicit products explicit.
"""
from .statement_splitter import split_statements, extract_conditions
from .multiplication import normalize_expression, normalize_statements

__all__ = ['split_statements', 'extract_conditions', 'normalize_expression', 'normalize_statements']
