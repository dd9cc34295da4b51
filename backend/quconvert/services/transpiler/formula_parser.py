"""
TA Formula Parser - AST for algorithm statement expressions.

Parses the right-hand side of a TA statement:
- $name → variable reference
- name(args) → helper function call
- bare identifiers (pi, true, ...) → constant fetch
- [a, b] and (a, b) → lists

Architecture:
    Tokenizer → Parser → AST → Rewriter → Printer
"""
import logging
from enum import Enum, auto
from dataclasses import dataclass, field
from typing import List, Any, Union
from abc import ABC, abstractmethod

from quconvert.core.errors import MalformedInputError

logger = logging.getLogger(__name__)


# ==================== Token Types ====================

class TokenType(Enum):
    """Token types for the TA expression lexer."""
    # Literals
    NUMBER = auto()
    STRING = auto()

    # Identifiers
    VARIABLE = auto()        # $name
    IDENTIFIER = auto()      # function names and constants

    # Operators
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MODULO = auto()
    POWER = auto()
    RANGE = auto()           # ..

    # Comparison
    EQ = auto()
    NE = auto()
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    QUESTION = auto()  # Ternary
    COLON = auto()

    # Special
    EOF = auto()


@dataclass
class Token:
    """Single token from lexer."""
    type: TokenType
    value: Any
    line: int = 1
    column: int = 0

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r})"


# ==================== Lexer ====================

class FormulaLexer:
    """
    Tokenizer for TA expressions.

    Handles:
    - Variables: $name
    - Literals: numbers, double-quoted strings with backslash escapes
    - Operators, comparisons and the `..` range operator

    Any other character is malformed input.
    """

    OPERATORS = {
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.MULTIPLY,
        "/": TokenType.DIVIDE,
        "%": TokenType.MODULO,
        "^": TokenType.POWER,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        ",": TokenType.COMMA,
        "?": TokenType.QUESTION,
        ":": TokenType.COLON,
    }

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenize the entire input."""
        while self.pos < len(self.text):
            self._scan_token()

        self.tokens.append(Token(TokenType.EOF, None, self.line, self.column))
        return self.tokens

    def _scan_token(self):
        """Scan next token."""
        self._skip_whitespace()

        if self.pos >= len(self.text):
            return

        char = self.text[self.pos]

        if char == "$":
            self._scan_variable()
        elif char == '"':
            self._scan_string()
        elif char.isdigit() or (char == "." and self._peek_is_digit()):
            self._scan_number()
        elif char == "." and self._peek() == ".":
            self._add_token(TokenType.RANGE, "..")
            self._advance(2)
        elif char.isalpha() or char == "_":
            self._scan_identifier()
        elif char in "=!<>":
            self._scan_comparison()
        elif char in self.OPERATORS:
            self._add_token(self.OPERATORS[char], char)
            self._advance()
        elif char == "\n":
            self.line += 1
            self.column = 0
            self._advance()
        else:
            self._error(f"Unexpected character {char!r}")

    def _scan_variable(self):
        """Scan $name."""
        self._advance()  # Skip $
        start = self.pos

        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self._advance()

        if self.pos == start:
            self._error("Expected variable name after '$'")
        self._add_token(TokenType.VARIABLE, self.text[start:self.pos])

    def _scan_string(self):
        """Scan string literal, keeping escapes as written."""
        self._advance()  # Skip opening quote
        start = self.pos

        while self.pos < len(self.text) and self.text[self.pos] != '"':
            if self.text[self.pos] == "\\":
                self._advance()  # Skip escape
            self._advance()

        if self.pos >= len(self.text):
            self._error("Unterminated string literal")

        value = self.text[start:self.pos]
        self._advance()  # Skip closing quote
        self._add_token(TokenType.STRING, value)

    def _scan_number(self):
        """Scan numeric literal; stops before a `..` range."""
        start = self.pos

        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char.isdigit():
                self._advance()
            elif char == "." and self._peek() != "." and "." not in self.text[start:self.pos]:
                self._advance()
            else:
                break

        self._add_token(TokenType.NUMBER, self.text[start:self.pos])

    def _scan_identifier(self):
        """Scan identifier."""
        start = self.pos

        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self._advance()

        self._add_token(TokenType.IDENTIFIER, self.text[start:self.pos])

    def _scan_comparison(self):
        """Scan comparison operators."""
        pair = self.text[self.pos:self.pos + 2]

        if pair in ("==", "!=", "<=", ">=", "<>"):
            token_type = {
                "==": TokenType.EQ,
                "!=": TokenType.NE,
                "<>": TokenType.NE,
                "<=": TokenType.LE,
                ">=": TokenType.GE,
            }[pair]
            self._add_token(token_type, pair)
            self._advance(2)
        elif pair[0] == "<":
            self._add_token(TokenType.LT, "<")
            self._advance()
        elif pair[0] == ">":
            self._add_token(TokenType.GT, ">")
            self._advance()
        elif pair[0] == "=":
            self._add_token(TokenType.EQ, "=")
            self._advance()
        else:
            self._error("Unexpected '!'")

    def _skip_whitespace(self):
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r":
            self._advance()

    def _advance(self, count: int = 1):
        self.pos += count
        self.column += count

    def _add_token(self, token_type: TokenType, value: Any):
        self.tokens.append(Token(token_type, value, self.line, self.column))

    def _peek(self) -> str:
        return self.text[self.pos + 1] if self.pos + 1 < len(self.text) else ""

    def _peek_is_digit(self) -> bool:
        return self._peek().isdigit()

    def _error(self, message: str):
        raise MalformedInputError(
            f"{message} at line {self.line}, column {self.column}",
            fragment=self.text,
            position=self.pos,
        )


# ==================== AST Nodes ====================

class ASTNode(ABC):
    """Base class for AST nodes."""

    @abstractmethod
    def accept(self, visitor: "ASTVisitor") -> Any:
        pass


@dataclass
class NumberNode(ASTNode):
    """Numeric literal; `text` keeps the literal as written."""
    value: Union[int, float]
    text: str = ""

    @property
    def is_integer(self) -> bool:
        return isinstance(self.value, int)

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_number(self)


@dataclass
class StringNode(ASTNode):
    """String literal (escapes kept as written)."""
    value: str

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_string(self)


@dataclass
class VariableNode(ASTNode):
    """Variable reference: $name."""
    name: str

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_variable(self)


@dataclass
class ConstantNode(ASTNode):
    """Bare identifier outside a call: pi, true, infinity..."""
    name: str

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_constant(self)


@dataclass
class ListNode(ASTNode):
    """List literal: [a, b, c]."""
    items: List[ASTNode] = field(default_factory=list)

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_list(self)


@dataclass
class BinaryOpNode(ASTNode):
    """Binary operation."""
    left: ASTNode
    operator: str
    right: ASTNode

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_binary_op(self)


@dataclass
class UnaryOpNode(ASTNode):
    """Unary operation."""
    operator: str
    operand: ASTNode

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_unary_op(self)


@dataclass
class FunctionCallNode(ASTNode):
    """Function call."""
    name: str
    arguments: List[ASTNode]

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_function_call(self)


@dataclass
class TernaryNode(ASTNode):
    """Ternary conditional: cond ? true : false."""
    condition: ASTNode
    true_value: ASTNode
    false_value: ASTNode

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_ternary(self)


@dataclass
class NativeExpressionNode(ASTNode):
    """Opaque payload evaluated by the target's native engine: fn("payload")."""
    payload: str
    function: str = "sw_maxima_native"

    def accept(self, visitor: "ASTVisitor") -> Any:
        return visitor.visit_native(self)


# ==================== Parser ====================

class FormulaParser:
    """
    Recursive descent parser for TA expressions.

    Grammar:
        expression     → ternary
        ternary        → comparison ("?" expression ":" expression)?
        comparison     → range (("=" | "==" | "!=" | "<" | ">" | "<=" | ">=") range)*
        range          → term (".." term)?
        term           → factor (("+" | "-") factor)*
        factor         → unary (("*" | "/" | "%") unary)*
        unary          → ("-" | "+") unary | power
        power          → primary ("^" unary)?
        primary        → NUMBER | STRING | VARIABLE call? | IDENTIFIER call?
                       | "[" items "]" | "(" items ")"
    """

    COMPARISONS = (
        TokenType.EQ, TokenType.NE,
        TokenType.LT, TokenType.LE, TokenType.GT, TokenType.GE,
    )

    def __init__(self, tokens: List[Token], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def parse(self) -> ASTNode:
        """Parse tokens into AST; the whole input must be consumed."""
        if self._is_at_end():
            self._error("Empty expression")
        expr = self._expression()
        if not self._is_at_end():
            self._error(f"Unexpected token {self._peek().value!r}")
        return expr

    def _expression(self) -> ASTNode:
        return self._ternary()

    def _ternary(self) -> ASTNode:
        expr = self._comparison()

        if self._match(TokenType.QUESTION):
            true_val = self._expression()
            self._consume(TokenType.COLON, "Expected ':' in ternary")
            false_val = self._expression()
            return TernaryNode(expr, true_val, false_val)

        return expr

    def _comparison(self) -> ASTNode:
        left = self._range()

        while self._match(*self.COMPARISONS):
            op = self._previous().value
            right = self._range()
            left = BinaryOpNode(left, op, right)

        return left

    def _range(self) -> ASTNode:
        left = self._term()

        if self._match(TokenType.RANGE):
            right = self._term()
            left = BinaryOpNode(left, "..", right)

        return left

    def _term(self) -> ASTNode:
        left = self._factor()

        while self._match(TokenType.PLUS, TokenType.MINUS):
            op = self._previous().value
            right = self._factor()
            left = BinaryOpNode(left, op, right)

        return left

    def _factor(self) -> ASTNode:
        left = self._unary()

        while self._match(TokenType.MULTIPLY, TokenType.DIVIDE, TokenType.MODULO):
            op = self._previous().value
            right = self._unary()
            left = BinaryOpNode(left, op, right)

        return left

    def _unary(self) -> ASTNode:
        if self._match(TokenType.MINUS, TokenType.PLUS):
            op = self._previous().value
            operand = self._unary()
            return UnaryOpNode(op, operand)

        return self._power()

    def _power(self) -> ASTNode:
        left = self._primary()

        if self._match(TokenType.POWER):
            right = self._unary()
            left = BinaryOpNode(left, "^", right)

        return left

    def _arguments(self, closing: TokenType) -> List[ASTNode]:
        args = []

        if not self._check(closing):
            args.append(self._expression())

            while self._match(TokenType.COMMA):
                args.append(self._expression())

        return args

    def _primary(self) -> ASTNode:
        if self._match(TokenType.NUMBER):
            text = self._previous().value
            value = float(text) if "." in text else int(text)
            return NumberNode(value, text)

        if self._match(TokenType.STRING):
            return StringNode(self._previous().value)

        if self._match(TokenType.VARIABLE, TokenType.IDENTIFIER):
            token = self._previous()

            if self._match(TokenType.LPAREN):
                args = self._arguments(TokenType.RPAREN)
                self._consume(TokenType.RPAREN, "Expected ')' after arguments")
                return FunctionCallNode(token.value, args)

            if token.type == TokenType.VARIABLE:
                return VariableNode(token.value)
            return ConstantNode(token.value)

        if self._match(TokenType.LBRACKET):
            items = self._arguments(TokenType.RBRACKET)
            self._consume(TokenType.RBRACKET, "Expected ']' after list")
            return ListNode(items)

        if self._match(TokenType.LPAREN):
            items = self._arguments(TokenType.RPAREN)
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            if len(items) == 1:
                return items[0]
            if not items:
                self._error("Empty parentheses")
            return ListNode(items)

        if self._is_at_end():
            self._error("Unexpected end of expression")
        self._error(f"Unexpected token {self._peek().value!r}")

    # Helper methods
    def _match(self, *types: TokenType) -> bool:
        for t in types:
            if self._check(t):
                self._advance()
                return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type == token_type

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.pos += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        self._error(message)

    def _error(self, message: str):
        token = self._peek()
        raise MalformedInputError(
            f"{message} at column {token.column}",
            fragment=self.source,
            position=self.pos,
        )


# ==================== Visitor ====================

class ASTVisitor(ABC):
    """Base visitor; one method per node kind."""

    @abstractmethod
    def visit_number(self, node: NumberNode) -> Any:
        pass

    @abstractmethod
    def visit_string(self, node: StringNode) -> Any:
        pass

    @abstractmethod
    def visit_variable(self, node: VariableNode) -> Any:
        pass

    @abstractmethod
    def visit_constant(self, node: ConstantNode) -> Any:
        pass

    @abstractmethod
    def visit_list(self, node: ListNode) -> Any:
        pass

    @abstractmethod
    def visit_binary_op(self, node: BinaryOpNode) -> Any:
        pass

    @abstractmethod
    def visit_unary_op(self, node: UnaryOpNode) -> Any:
        pass

    @abstractmethod
    def visit_function_call(self, node: FunctionCallNode) -> Any:
        pass

    @abstractmethod
    def visit_ternary(self, node: TernaryNode) -> Any:
        pass

    @abstractmethod
    def visit_native(self, node: NativeExpressionNode) -> Any:
        pass


# ==================== Public API ====================

def parse_formula(formula: str) -> ASTNode:
    """
    Parse a TA expression string into an AST.

    Args:
        formula: Expression text, e.g. 'rint(2,10)*$a'

    Returns:
        Root AST node

    Raises:
        MalformedInputError: if the text cannot be tokenized or parsed
    """
    lexer = FormulaLexer(formula)
    tokens = lexer.tokenize()
    parser = FormulaParser(tokens, source=formula)
    return parser.parse()
