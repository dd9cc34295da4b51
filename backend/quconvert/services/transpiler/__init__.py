"""
TA Statement Transpiler Module.

Provides:
- formula_parser: Lexer and Parser for TA expressions
- function_mapping: TA to SW function mappings
- ast_rewriter: structural TA to SW rewrites
- formula_printer: AST to SW expression text
"""
from .formula_parser import parse_formula, FormulaLexer, FormulaParser
from .function_mapping import get_rewrite_rule, get_all_function_names
from .ast_rewriter import AstRewriter, RewriteResult, rewrite_expression
from .formula_printer import FormulaPrinter, print_formula

__all__ = [
    "parse_formula",
    "FormulaLexer",
    "FormulaParser",
    "get_rewrite_rule",
    "get_all_function_names",
    "AstRewriter",
    "RewriteResult",
    "rewrite_expression",
    "FormulaPrinter",
    "print_formula",
]
