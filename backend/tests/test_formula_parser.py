"""
TA Expression Parser Tests.

Tests for tokenizing, parsing and printing TA expressions.
"""
import pytest

from quconvert.core.errors import MalformedInputError
from quconvert.services.transpiler.formula_parser import (
    BinaryOpNode, ConstantNode, FormulaLexer, FunctionCallNode, ListNode,
    NumberNode, StringNode, TernaryNode, TokenType, UnaryOpNode, VariableNode,
    parse_formula,
)
from quconvert.services.transpiler.formula_printer import escape_quotes, print_formula


class TestTokenizer:
    """Tests for the TA tokenizer."""

    def test_variable(self):
        """Test $name tokenization."""
        tokens = FormulaLexer("$speed").tokenize()
        assert tokens[0].type == TokenType.VARIABLE
        assert tokens[0].value == "speed"

    def test_numbers_keep_their_text(self):
        """Test numbers are kept as written."""
        tokens = FormulaLexer("3.50").tokenize()
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == "3.50"

    def test_range_after_number(self):
        """Test 1..5 is NUMBER RANGE NUMBER."""
        types = [t.type for t in FormulaLexer("1..5").tokenize()]
        assert types == [TokenType.NUMBER, TokenType.RANGE, TokenType.NUMBER, TokenType.EOF]

    def test_string_keeps_escapes(self):
        """Test escaped quotes stay inside the string token."""
        tokens = FormulaLexer('"say \\"hi\\""').tokenize()
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == 'say \\"hi\\"'

    @pytest.mark.parametrize("text,token_type", [
        ("==", TokenType.EQ),
        ("=", TokenType.EQ),
        ("!=", TokenType.NE),
        ("<>", TokenType.NE),
        ("<=", TokenType.LE),
        (">", TokenType.GT),
    ])
    def test_comparisons(self, text, token_type):
        """Test comparison operators."""
        assert FormulaLexer(text).tokenize()[0].type == token_type

    @pytest.mark.parametrize("text", ["$a @ 2", "#", "$"])
    def test_bad_characters(self, text):
        """Test unknown characters are malformed input."""
        with pytest.raises(MalformedInputError):
            FormulaLexer(text).tokenize()


class TestParser:
    """Tests for the recursive descent parser."""

    def test_precedence(self):
        """Test 1+2*3 groups the product."""
        ast = parse_formula("1+2*3")
        assert isinstance(ast, BinaryOpNode)
        assert ast.operator == "+"
        assert isinstance(ast.right, BinaryOpNode)
        assert ast.right.operator == "*"

    def test_power_is_right_associative(self):
        """Test 2^3^2 is 2^(3^2)."""
        ast = parse_formula("2^3^2")
        assert ast.operator == "^"
        assert isinstance(ast.left, NumberNode)
        assert isinstance(ast.right, BinaryOpNode)

    def test_unary_minus(self):
        """Test -$a."""
        ast = parse_formula("-$a")
        assert isinstance(ast, UnaryOpNode)
        assert isinstance(ast.operand, VariableNode)

    def test_function_call(self):
        """Test calls with arguments."""
        ast = parse_formula("rint(2,10)")
        assert isinstance(ast, FunctionCallNode)
        assert ast.name == "rint"
        assert [arg.value for arg in ast.arguments] == [2, 10]

    def test_bare_identifier_is_constant(self):
        """Test bare words parse as constants."""
        ast = parse_formula("pi")
        assert isinstance(ast, ConstantNode)
        assert ast.name == "pi"

    def test_string(self):
        """Test string literals."""
        assert parse_formula('"abc"') == StringNode("abc")

    def test_list_and_tuple(self):
        """Test [a, b] and (a, b) both parse as lists."""
        assert isinstance(parse_formula("[1,2]"), ListNode)
        assert isinstance(parse_formula("(1,2)"), ListNode)

    def test_parenthesized_expression(self):
        """Test (1+2) is just the inner expression."""
        assert isinstance(parse_formula("(1+2)"), BinaryOpNode)

    def test_inline_ternary(self):
        """Test c ? a : b."""
        assert isinstance(parse_formula("$a > 1 ? 2 : 3"), TernaryNode)

    def test_range_binds_tighter_than_equals(self):
        """Test x=1..5 is x = (1..5)."""
        ast = parse_formula("x=1..5")
        assert ast.operator == "="
        assert ast.right.operator == ".."

    @pytest.mark.parametrize("text", ["", "1 +", "rint(2,", "()", "1 2", "[1,2"])
    def test_malformed(self, text):
        """Test incomplete expressions raise MalformedInputError."""
        with pytest.raises(MalformedInputError):
            parse_formula(text)


class TestPrinter:
    """Tests for the expression printer."""

    @pytest.mark.parametrize("text,expected", [
        ("1+2*3", "1 + 2 * 3"),
        ("(1+2)*3", "(1 + 2) * 3"),
        ("$a-($b-$c)", "$a - ($b - $c)"),
        ("$a-$b-$c", "$a - $b - $c"),
        ("2^3", "2^3"),
        ("(2^3)^2", "(2^3)^2"),
        ("-(1+2)", "-(1 + 2)"),
        ("f($a,[1,2])", "f($a, [1, 2])"),
        ("1..5", "1..5"),
        ('"x"', '"x"'),
    ])
    def test_round_trip_text(self, text, expected):
        """Test parenthesization and spacing."""
        assert print_formula(parse_formula(text)) == expected

    def test_escape_quotes(self):
        """Test unescaped quotes are escaped exactly once."""
        assert escape_quotes('a"b\\"c') == 'a\\"b\\"c'
