"""
Formula Printer - AST to SW expression text.

Renders rewritten ASTs with `, ` between arguments, spaced binary
operators and parentheses only where precedence requires them. The same
printer renders the payload of opaque wrappers, which keeps the source
syntax (`^`, bare constants) of the subtree it was given.
"""
import re
import logging
from typing import Dict

from .formula_parser import (
    ASTNode, ASTVisitor, NumberNode, StringNode, VariableNode, ConstantNode,
    ListNode, BinaryOpNode, UnaryOpNode, FunctionCallNode, TernaryNode,
    NativeExpressionNode,
)

logger = logging.getLogger(__name__)


UNESCAPED_QUOTE = re.compile(r'(?<!\\)"')

# Binding strength, loosest first
TERNARY = 1
COMPARISON = 2
RANGE = 3
ADDITIVE = 4
MULTIPLICATIVE = 5
UNARY = 6
POWER = 7
ATOM = 8

BINARY_PRECEDENCE: Dict[str, int] = {
    "=": COMPARISON, "==": COMPARISON, "!=": COMPARISON, "<>": COMPARISON,
    "<": COMPARISON, "<=": COMPARISON, ">": COMPARISON, ">=": COMPARISON,
    "..": RANGE,
    "+": ADDITIVE, "-": ADDITIVE,
    "*": MULTIPLICATIVE, "/": MULTIPLICATIVE, "%": MULTIPLICATIVE,
    "^": POWER,
}


def escape_quotes(text: str) -> str:
    """Escape every double quote not already escaped."""
    return UNESCAPED_QUOTE.sub(r'\\"', text)


def precedence(node: ASTNode) -> int:
    if isinstance(node, TernaryNode):
        return TERNARY
    if isinstance(node, BinaryOpNode):
        return BINARY_PRECEDENCE.get(node.operator, COMPARISON)
    if isinstance(node, UnaryOpNode):
        return UNARY
    return ATOM


class FormulaPrinter(ASTVisitor):
    """Renders an AST as expression text."""

    def print(self, node: ASTNode) -> str:
        return node.accept(self)

    def visit_number(self, node: NumberNode) -> str:
        return node.text or str(node.value)

    def visit_string(self, node: StringNode) -> str:
        return f'"{escape_quotes(node.value)}"'

    def visit_variable(self, node: VariableNode) -> str:
        return f"${node.name}"

    def visit_constant(self, node: ConstantNode) -> str:
        return node.name

    def visit_list(self, node: ListNode) -> str:
        return "[" + ", ".join(self.print(item) for item in node.items) + "]"

    def visit_binary_op(self, node: BinaryOpNode) -> str:
        level = precedence(node)
        right_assoc = node.operator == "^"

        left = self._wrap(node.left, level, strict=right_assoc)
        right = self._wrap(node.right, level, strict=not right_assoc)

        if node.operator in ("^", ".."):
            return f"{left}{node.operator}{right}"
        return f"{left} {node.operator} {right}"

    def visit_unary_op(self, node: UnaryOpNode) -> str:
        return node.operator + self._wrap(node.operand, UNARY, strict=False)

    def visit_function_call(self, node: FunctionCallNode) -> str:
        args = ", ".join(self.print(arg) for arg in node.arguments)
        return f"{node.name}({args})"

    def visit_ternary(self, node: TernaryNode) -> str:
        condition = self._wrap(node.condition, TERNARY, strict=True)
        true_val = self.print(node.true_value)
        false_val = self.print(node.false_value)
        return f"{condition} ? {true_val} : {false_val}"

    def visit_native(self, node: NativeExpressionNode) -> str:
        return f'{node.function}("{escape_quotes(node.payload)}")'

    def _wrap(self, node: ASTNode, level: int, strict: bool) -> str:
        """Parenthesize `node` if it binds looser than `level`."""
        text = self.print(node)
        inner = precedence(node)
        if inner < level or (strict and inner == level):
            return f"({text})"
        return text


def print_formula(node: ASTNode) -> str:
    """Render an AST as expression text."""
    return FormulaPrinter().print(node)
