"""
Function-call tree for Maple expressions.

A Maple payload is read as a sequence of arguments, each built from:
- Leaf: plain text without parentheses (`2*x+`)
- Call: `name(arg, arg, ...)`; an empty name is a bare group `( ... )`
- Chain: pieces juxtaposed into one argument (`2*`, `sin(x)`, `+1`)

Commas split arguments only outside (), [] and {}.
"""
import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List

from quconvert.core.errors import MalformedInputError

logger = logging.getLogger(__name__)


TRAILING_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*$")
OPERATOR_PREFIXES = ("*", "/", "-", "+", "^")


# ==================== Nodes ====================

class ExpressionNode(ABC):
    """Base class for call-tree nodes."""

    @abstractmethod
    def accept(self, visitor: "TreeVisitor") -> Any:
        pass


@dataclass
class Leaf(ExpressionNode):
    """Plain text. A standalone leaf is always its own argument, even `-1`."""
    text: str
    standalone: bool = False

    def accept(self, visitor: "TreeVisitor") -> Any:
        return visitor.visit_leaf(self)


@dataclass
class Call(ExpressionNode):
    name: str
    args: List[ExpressionNode] = field(default_factory=list)

    def accept(self, visitor: "TreeVisitor") -> Any:
        return visitor.visit_call(self)


@dataclass
class Chain(ExpressionNode):
    parts: List[ExpressionNode] = field(default_factory=list)

    def accept(self, visitor: "TreeVisitor") -> Any:
        return visitor.visit_chain(self)


class TreeVisitor(ABC):
    """Base visitor for call trees."""

    @abstractmethod
    def visit_leaf(self, node: Leaf) -> Any:
        pass

    @abstractmethod
    def visit_call(self, node: Call) -> Any:
        pass

    @abstractmethod
    def visit_chain(self, node: Chain) -> Any:
        pass


# ==================== Parser ====================

class CallTreeParser:
    """Recursive descent over an index cursor."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> List[ExpressionNode]:
        """Parse the whole text as a comma-separated sequence."""
        nodes = self._arguments(closing=None)
        if self.pos < len(self.text):
            self._error(f"Unmatched {self.text[self.pos]!r}")
        return nodes

    def _arguments(self, closing) -> List[ExpressionNode]:
        args = [self._argument()]
        while self.pos < len(self.text) and self.text[self.pos] == ",":
            self.pos += 1
            args.append(self._argument())

        if closing is not None:
            if self.pos >= len(self.text) or self.text[self.pos] != closing:
                self._error("Expected ')'")
            self.pos += 1
        return args

    def _argument(self) -> ExpressionNode:
        """One argument: pieces up to a top-level ',' or ')'."""
        parts: List[ExpressionNode] = []
        run: List[str] = []
        brackets = 0

        while self.pos < len(self.text):
            char = self.text[self.pos]

            if char in "[{":
                brackets += 1
            elif char in "]}":
                brackets -= 1
            elif char == ")" or (char == "," and brackets <= 0):
                break
            elif char == "(":
                prefix = "".join(run)
                match = TRAILING_NAME.search(prefix)
                name = match.group(0) if match else ""
                if len(prefix) > len(name):
                    parts.append(Leaf(prefix[:len(prefix) - len(name)]))
                run = []
                self.pos += 1
                parts.append(Call(name, self._arguments(closing=")")))
                continue

            run.append(char)
            self.pos += 1

        if run:
            parts.append(Leaf("".join(run)))

        if not parts:
            return Leaf("")
        if len(parts) == 1:
            return parts[0]
        return Chain(parts)

    def _error(self, message: str):
        raise MalformedInputError(
            f"{message} at position {self.pos}",
            fragment=self.text,
            position=self.pos,
        )


# ==================== Renderer ====================

class TreeRenderer(TreeVisitor):
    """Depth-first serialization back to text."""

    def render(self, node: ExpressionNode) -> str:
        return node.accept(self)

    def render_sequence(self, nodes: List[ExpressionNode]) -> str:
        """Join arguments with ','.

        An argument starting with an operator continues the previous one,
        unless it is a standalone leaf. Empty arguments collapse.
        """
        out = ""
        for node in nodes:
            text = self.render(node)
            if not text.strip():
                continue
            continuation = text.startswith(OPERATOR_PREFIXES) and not (
                isinstance(node, Leaf) and node.standalone
            )
            if out and not continuation:
                out += ","
            out += text
        return out

    def visit_leaf(self, node: Leaf) -> str:
        return node.text

    def visit_call(self, node: Call) -> str:
        return f"{node.name}({self.render_sequence(node.args)})"

    def visit_chain(self, node: Chain) -> str:
        return "".join(self.render(part) for part in node.parts)


def parse_tree(text: str) -> List[ExpressionNode]:
    """
    Parse a Maple expression into call-tree nodes.

    Raises:
        MalformedInputError: on unbalanced parentheses
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected str, got {type(text).__name__}")
    return CallTreeParser(text).parse()


def render_tree(nodes: List[ExpressionNode]) -> str:
    return TreeRenderer().render_sequence(nodes)
