"""
AST Rewriter - TA statement AST to SW statement AST.

Walks a parsed TA expression and rebuilds it for the SW dialect:
renames, argument reordering, list wrapping, ternaries, `pow()` for the
power operator, and opaque native wrappers where no structural mapping
exists. Rules are looked up in `function_mapping.ALL_RULES`.
"""
import logging
from typing import Callable, Dict, FrozenSet, List, Optional
from dataclasses import dataclass, field

from quconvert.core.config import settings
from quconvert.core.errors import (
    ConversionIssue, opaque_fallback, structural_ambiguity, unsupported_function,
)
from .formula_parser import (
    ASTNode, ASTVisitor, NumberNode, StringNode, VariableNode, ConstantNode,
    ListNode, BinaryOpNode, UnaryOpNode, FunctionCallNode, TernaryNode,
    NativeExpressionNode, parse_formula,
)
from .formula_printer import FormulaPrinter
from .function_mapping import (
    PASSTHROUGH_FUNCTIONS, RewriteRule, Transform, derive_affix_name, get_rewrite_rule,
)

logger = logging.getLogger(__name__)


@dataclass
class RewriteResult:
    """Result of rewriting one statement expression."""
    expression: str
    warning: bool = False
    contains_opaque: bool = False
    issues: List[ConversionIssue] = field(default_factory=list)


class NodeKinds(ASTVisitor):
    """Collects the node classes present in a subtree."""

    def collect(self, node: ASTNode) -> FrozenSet[type]:
        return node.accept(self)

    def visit_number(self, node):
        return frozenset({NumberNode})

    def visit_string(self, node):
        return frozenset({StringNode})

    def visit_variable(self, node):
        return frozenset({VariableNode})

    def visit_constant(self, node):
        return frozenset({ConstantNode})

    def visit_list(self, node):
        kinds = frozenset({ListNode})
        for item in node.items:
            kinds |= item.accept(self)
        return kinds

    def visit_binary_op(self, node):
        return frozenset({BinaryOpNode}) | node.left.accept(self) | node.right.accept(self)

    def visit_unary_op(self, node):
        return frozenset({UnaryOpNode}) | node.operand.accept(self)

    def visit_function_call(self, node):
        kinds = frozenset({FunctionCallNode})
        for arg in node.arguments:
            kinds |= arg.accept(self)
        return kinds

    def visit_ternary(self, node):
        return (
            frozenset({TernaryNode})
            | node.condition.accept(self)
            | node.true_value.accept(self)
            | node.false_value.accept(self)
        )

    def visit_native(self, node):
        return frozenset({NativeExpressionNode})


def is_literal(node: ASTNode) -> bool:
    if isinstance(node, (NumberNode, StringNode)):
        return True
    return isinstance(node, UnaryOpNode) and isinstance(node.operand, NumberNode)


def decrement(node: ASTNode) -> ASTNode:
    """n -> n-1 for integer literals, otherwise `node - 1`."""
    if isinstance(node, NumberNode) and node.is_integer:
        value = node.value - 1
        return NumberNode(value, str(value))
    return BinaryOpNode(node, "-", NumberNode(1, "1"))


class AstRewriter(ASTVisitor):
    """
    Rewrites a TA expression AST into the SW dialect.

    Per-statement state:
        call_depth: > 0 while visiting call arguments
        contains_opaque: set once any native wrapper was emitted
        issues: warnings raised while rewriting
    """

    def __init__(self, native_function: Optional[str] = None):
        self.native_function = native_function or settings.native_function
        self.printer = FormulaPrinter()
        self.kinds = NodeKinds()
        self._reset()

        # Applied before the arguments are visited
        self._enter_handlers: Dict[Transform, Callable[[FunctionCallNode, RewriteRule], ASTNode]] = {
            Transform.OPAQUE_CALL: self._opaque_call,
            Transform.OPAQUE_SUM: self._opaque_sum,
        }
        # Applied to the call with rewritten arguments
        self._leave_handlers: Dict[Transform, Callable[[FunctionCallNode, RewriteRule], ASTNode]] = {
            Transform.RENAME: self._rename,
            Transform.TERNARY: self._ternary,
            Transform.REVERSE_ARGS: self._reverse_args,
            Transform.INDEXED_LIST: self._indexed_list,
            Transform.ZERO_BASED_LIST: self._zero_based_list,
            Transform.RANDOM_INTEGER: self._random_integer,
            Transform.RANDOM_RANGE: self._random_range,
            Transform.AGGREGATE: self._aggregate,
            Transform.DIVISION: self._division,
            Transform.AFFIX: self._affix,
            Transform.LOG_BASE_10: self._log_base_10,
        }

    def _reset(self):
        self.call_depth = 0
        self.contains_opaque = False
        self.issues: List[ConversionIssue] = []

    def rewrite(self, node: ASTNode) -> ASTNode:
        """Rewrite one statement AST; state is reset first."""
        self._reset()
        return node.accept(self)

    # ==================== Leaves ====================

    def visit_number(self, node: NumberNode) -> ASTNode:
        return node

    def visit_string(self, node: StringNode) -> ASTNode:
        return node

    def visit_variable(self, node: VariableNode) -> ASTNode:
        return node

    def visit_constant(self, node: ConstantNode) -> ASTNode:
        if self.call_depth > 0:
            return StringNode(node.name)
        return self._wrap_native(self.printer.print(node))

    def visit_native(self, node: NativeExpressionNode) -> ASTNode:
        return node

    # ==================== Composites ====================

    def visit_list(self, node: ListNode) -> ASTNode:
        return ListNode([item.accept(self) for item in node.items])

    def visit_binary_op(self, node: BinaryOpNode) -> ASTNode:
        kinds = self.kinds.collect(node)
        if ConstantNode in kinds and FunctionCallNode not in kinds:
            return self._wrap_native(self.printer.print(node))

        left = node.left.accept(self)
        right = node.right.accept(self)

        if node.operator == "^":
            return FunctionCallNode("pow", [left, right])
        return BinaryOpNode(left, node.operator, right)

    def visit_unary_op(self, node: UnaryOpNode) -> ASTNode:
        return UnaryOpNode(node.operator, node.operand.accept(self))

    def visit_ternary(self, node: TernaryNode) -> ASTNode:
        return TernaryNode(
            node.condition.accept(self),
            node.true_value.accept(self),
            node.false_value.accept(self),
        )

    def visit_function_call(self, node: FunctionCallNode) -> ASTNode:
        rule = get_rewrite_rule(node.name)

        if rule is not None and rule.transform in self._enter_handlers:
            return self._enter_handlers[rule.transform](node, rule)

        self.call_depth += 1
        try:
            args = [arg.accept(self) for arg in node.arguments]
        finally:
            self.call_depth -= 1
        call = FunctionCallNode(node.name, args)

        if rule is None:
            if node.name not in PASSTHROUGH_FUNCTIONS:
                self._record(unsupported_function(node.name, self.printer.print(node)))
            return call

        return self._leave_handlers[rule.transform](call, rule)

    # ==================== Rewrite Rules ====================

    def _rename(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        return FunctionCallNode(rule.target, call.arguments)

    def _ternary(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        if len(call.arguments) != 3:
            return self._ambiguous(call, f"expected 3 arguments, got {len(call.arguments)}")
        return TernaryNode(*call.arguments)

    def _reverse_args(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        return FunctionCallNode(rule.target, list(reversed(call.arguments)))

    def _indexed_list(self, call: FunctionCallNode, rule: RewriteRule, zero_based: bool = False) -> ASTNode:
        if not call.arguments:
            return self._ambiguous(call, "missing index argument")
        index = call.arguments[0]
        if zero_based:
            index = decrement(index)
        return FunctionCallNode(rule.target, [ListNode(call.arguments[1:]), index])

    def _zero_based_list(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        return self._indexed_list(call, rule, zero_based=True)

    def _random_integer(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        args = call.arguments
        if len(args) == 1:
            return FunctionCallNode(rule.target, [NumberNode(0, "0"), decrement(args[0])])
        if len(args) == 2:
            return FunctionCallNode(rule.target, [args[0], decrement(args[1])])
        if len(args) == 3:
            return FunctionCallNode("sw_rand_steps", [args[0], decrement(args[1]), args[2]])
        return self._ambiguous(call, f"expected 1 to 3 arguments, got {len(args)}")

    def _random_range(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        args = call.arguments
        if len(args) == 1:
            return FunctionCallNode(rule.target, [NumberNode(0, "0"), args[0]])
        if len(args) == 2:
            return FunctionCallNode(rule.target, list(args))
        if len(args) == 3:
            return FunctionCallNode("sw_rand_steps", list(args))
        return self._ambiguous(call, f"expected 1 to 3 arguments, got {len(args)}")

    def _aggregate(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        return FunctionCallNode(rule.target, [ListNode(call.arguments)])

    def _division(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        if len(call.arguments) != 2:
            return self._ambiguous(call, f"expected 2 arguments, got {len(call.arguments)}")
        return BinaryOpNode(call.arguments[0], "/", call.arguments[1])

    def _affix(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        return FunctionCallNode(derive_affix_name(call.name) or call.name, call.arguments)

    def _log_base_10(self, call: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        if len(call.arguments) != 1:
            self._ambiguous(call, f"expected 1 argument, got {len(call.arguments)}")
            return FunctionCallNode(rule.target, call.arguments)
        return FunctionCallNode(rule.target, [call.arguments[0], NumberNode(10, "10")])

    def _opaque_call(self, node: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        payload = self.printer.print(node)
        if not all(is_literal(arg) for arg in node.arguments):
            self._record(structural_ambiguity(node.name, "non-literal arguments", payload))
        return self._wrap_native(payload)

    def _opaque_sum(self, node: FunctionCallNode, rule: RewriteRule) -> ASTNode:
        if len(node.arguments) != 4:
            payload = self.printer.print(node)
            self._record(structural_ambiguity(node.name, f"expected 4 arguments, got {len(node.arguments)}", payload))
            return self._wrap_native(payload)

        var, lower, upper, body = (self.printer.print(arg) for arg in node.arguments)
        return self._wrap_native(f"sum(({body}),{var}, {lower}, {upper})")

    # ==================== Helpers ====================

    def _wrap_native(self, payload: str) -> NativeExpressionNode:
        self.contains_opaque = True
        self._record(opaque_fallback(payload))
        return NativeExpressionNode(payload, self.native_function)

    def _ambiguous(self, call: FunctionCallNode, detail: str) -> ASTNode:
        self._record(structural_ambiguity(call.name, detail, self.printer.print(call)))
        return call

    def _record(self, issue: ConversionIssue):
        logger.debug(f"Rewrite issue: {issue}")
        self.issues.append(issue)


def rewrite_expression(expression: str, native_function: Optional[str] = None) -> RewriteResult:
    """
    Rewrite one TA expression into the SW dialect.

    Args:
        expression: Normalized TA expression, e.g. 'rint(2,10)'
        native_function: Opaque wrapper name (defaults to settings)

    Returns:
        RewriteResult with the SW text and the issues met

    Raises:
        MalformedInputError: if the expression cannot be parsed
    """
    ast = parse_formula(expression)

    rewriter = AstRewriter(native_function)
    rewritten = rewriter.rewrite(ast)

    return RewriteResult(
        expression=rewriter.printer.print(rewritten),
        warning=bool(rewriter.issues),
        contains_opaque=rewriter.contains_opaque,
        issues=list(rewriter.issues),
    )
