"""
Maple call-tree converter.

Renames Maple functions to Maxima through the 1:1 table and restructures
the calls that need more than a rename:

    int(f, x=a..b)      → integrate(f,x,a,b)
    seq(a..b)           → makelist(x,x,a,b)
    seq(f, v=a..b)      → makelist(f,v,a,b)
    op(i, e)            → part(e,i)
    convert(e, string)  → string(e)
    evalb(e) / evalf(e) → ev(e,pred) / ev(e,float)
    sort(L, ascending)  → sort(L,orderlessp)
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from quconvert.core.errors import (
    ConversionIssue, MalformedInputError, structural_ambiguity, unsupported_function,
)
from .call_tree import Call, Chain, ExpressionNode, Leaf, TreeRenderer, TreeVisitor, parse_tree
from .maple_mapping import get_maxima_name

logger = logging.getLogger(__name__)


RANGE_ASSIGNMENT = re.compile(r"^(.+?)=(.+?)\.\.(.+)$", re.DOTALL)
NEGATIVE_ARGUMENT = re.compile(r",([-+])")

SORT_ORDERS = {
    "ascending": "orderlessp",
    "descending": "ordergreatp",
}


def argument(text: str) -> Leaf:
    """A rebuilt argument; a leading sign stays with it."""
    return Leaf(text.strip(), standalone=True)


@dataclass
class TreeConversion:
    """Result of converting one Maple expression."""
    definition: str
    warning: bool = False
    issues: List[ConversionIssue] = field(default_factory=list)


class TreeConverter(TreeVisitor):
    """Rewrites a call tree bottom-up; every node is visited."""

    def __init__(self):
        self.renderer = TreeRenderer()
        self.issues: List[ConversionIssue] = []
        self._special: Dict[str, Callable[[Call], ExpressionNode]] = {
            "int": self._integral,
            "Int": self._integral,
            "seq": self._sequence,
            "op": self._part,
            "convert": self._convert,
            "evalb": self._evalb,
            "evalf": self._evalf,
            "sort": self._sort,
        }

    def convert(self, nodes: List[ExpressionNode]) -> List[ExpressionNode]:
        return [node.accept(self) for node in nodes]

    def visit_leaf(self, node: Leaf) -> ExpressionNode:
        return node

    def visit_chain(self, node: Chain) -> ExpressionNode:
        return Chain([part.accept(self) for part in node.parts])

    def visit_call(self, node: Call) -> ExpressionNode:
        call = Call(node.name, [arg.accept(self) for arg in node.args])
        name = call.name.strip()

        if not name:
            return call
        if name in self._special:
            return self._special[name](call)

        target = get_maxima_name(name)
        if target is None:
            self._record(unsupported_function(name, self.renderer.render(call)))
            return call
        return Call(target, call.args)

    # ==================== Special Cases ====================

    def _integral(self, call: Call) -> ExpressionNode:
        if call.name == "Int":
            self._ambiguous(call, "inert integral evaluated as integrate")

        args = list(call.args)
        if len(args) >= 2:
            bounds = self._split_range(args[1])
            if bounds:
                args[1:2] = bounds
        return Call("integrate", args)

    def _sequence(self, call: Call) -> ExpressionNode:
        if len(call.args) == 1:
            text = self.renderer.render(call.args[0])
            if ".." in text:
                lower, upper = text.split("..", 1)
                return Call("makelist", [
                    Leaf("x"), Leaf("x"),
                    argument(lower), argument(upper),
                ])
        elif len(call.args) == 2:
            bounds = self._split_range(call.args[1])
            if bounds:
                return Call("makelist", [call.args[0]] + bounds)

        return self._ambiguous(call, "expected seq(a..b) or seq(f, v=a..b)")

    def _part(self, call: Call) -> ExpressionNode:
        if call.args and self.renderer.render(call.args[0]).lstrip().startswith("["):
            return self._ambiguous(call, "list as first argument")

        args = list(call.args)
        if len(args) > 1:
            args = [argument(self.renderer.render(arg)) for arg in reversed(args)]
        return Call("part", args)

    def _convert(self, call: Call) -> ExpressionNode:
        if len(call.args) == 2 and self.renderer.render(call.args[1]).strip() == "string":
            return Call("string", [call.args[0]])
        return self._ambiguous(call, "only convert(e, string) is supported")

    def _evalb(self, call: Call) -> ExpressionNode:
        return Call("ev", list(call.args) + [Leaf("pred")])

    def _evalf(self, call: Call) -> ExpressionNode:
        return Call("ev", list(call.args) + [Leaf("float")])

    def _sort(self, call: Call) -> ExpressionNode:
        if len(call.args) == 1:
            return call
        if len(call.args) == 2:
            order = self.renderer.render(call.args[1]).strip()
            if order in SORT_ORDERS:
                return Call("sort", [call.args[0], Leaf(SORT_ORDERS[order])])
        return self._ambiguous(call, "only sort(L, ascending|descending) is supported")

    # ==================== Helpers ====================

    def _split_range(self, node: ExpressionNode) -> List[ExpressionNode]:
        """`v=a..b` → [v, a, b]; the parts were already converted."""
        match = RANGE_ASSIGNMENT.match(self.renderer.render(node).strip())
        if not match:
            return []
        return [argument(part) for part in match.groups()]

    def _ambiguous(self, call: Call, detail: str) -> ExpressionNode:
        self._record(structural_ambiguity(call.name, detail, self.renderer.render(call)))
        return call

    def _record(self, issue: ConversionIssue):
        logger.debug(f"Tree issue: {issue}")
        self.issues.append(issue)


def convert_definition(definition: str) -> TreeConversion:
    """
    Convert one Maple expression to Maxima syntax.

    Args:
        definition: e.g. 'seq(i^2, i=1..5)'

    Returns:
        TreeConversion with the best-effort text and a warning flag
    """
    if not isinstance(definition, str):
        raise TypeError(f"Expected str, got {type(definition).__name__}")

    if "(" not in definition:
        return TreeConversion(definition)

    text = NEGATIVE_ARGUMENT.sub(r", \1", definition)
    try:
        nodes = parse_tree(text)
    except MalformedInputError as e:
        logger.warning(f"Could not build call tree: {e}")
        return TreeConversion(definition, warning=True, issues=[
            ConversionIssue(e.code, e.message, definition)
        ])

    converter = TreeConverter()
    converted = converter.convert(nodes)
    result = converter.renderer.render_sequence(converted)

    return TreeConversion(
        definition=result,
        warning=bool(converter.issues),
        issues=list(converter.issues),
    )
