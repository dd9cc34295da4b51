"""
Statement Splitter Tests.

Tests for splitting algorithm strings into name/expression statements.
"""
import pytest

from quconvert.services.parser.statement_splitter import (
    extract_conditions, is_balanced, parse_statement, split_segments, split_statements,
)


class TestSplitSegments:
    """Tests for separator handling."""

    def test_simple_algorithm(self):
        """Test two plain statements."""
        assert split_segments("$a=1;$b=2;") == ["$a=1", "$b=2"]

    def test_semicolon_inside_string(self):
        """Test ';' inside quotes does not split."""
        assert split_segments('$s="a;b";$t=1;') == ['$s="a;b"', "$t=1"]

    def test_semicolon_inside_parentheses(self):
        """Test ';' inside a call does not split."""
        segments = split_segments('$a=maple("f(x);g(x)");$b=2;')
        assert segments == ['$a=maple("f(x);g(x)")', "$b=2"]

    @pytest.mark.parametrize("algorithm", [
        "$a=1;;$b=2;",
        "$a=1; ;$b=2;",
        "$a=1;$b=2;;;",
    ])
    def test_duplicate_separators(self, algorithm):
        """Test repeated separators count as one."""
        assert split_segments(algorithm) == ["$a=1", "$b=2"]

    def test_parenthesis_string_literals(self):
        """Test "(" and ")" literals do not unbalance the statement."""
        segments = split_segments('$a=if(eq($x,1),"(",")");$b=1;')
        assert segments == ['$a=if(eq($x,1),"(",")")', "$b=1"]

    def test_trailing_statement_without_separator(self):
        """Test a final statement without ';' is kept."""
        assert split_segments("$a=1;$b=2") == ["$a=1", "$b=2"]

    def test_unbalanced_input_degrades_to_one_statement(self):
        """Test an unclosed parenthesis swallows the rest of the text."""
        segments = split_segments("$a=(1;$b=2;")
        assert len(segments) == 1
        assert segments[0].startswith("$a=(1")

    def test_resplitting_is_stable(self):
        """Test splitting is idempotent on its own output."""
        algorithm = '$a=rint(2,10);$b=strcat("x;y",$a);$c=$a+$b;'
        segments = split_segments(algorithm)
        assert split_segments(";".join(segments) + ";") == segments

    @pytest.mark.parametrize("algorithm", [
        "$a=rint(2,10);$b=max($a,3);",
        '$s="x;y";$t=(1+2)*3;',
        "$a=decimal(2,($b+1)/3);",
    ])
    def test_every_segment_balanced(self, algorithm):
        """Test every produced segment is balanced."""
        for segment in split_segments(algorithm):
            assert is_balanced(segment)


class TestIsBalanced:
    """Tests for the balance check."""

    @pytest.mark.parametrize("fragment,expected", [
        ("f(x)", True),
        ("f(x", False),
        ('"abc"', True),
        ('"abc', False),
        ('"a\\"b"', True),
    ])
    def test_balance(self, fragment, expected):
        """Test parentheses and quote parity."""
        assert is_balanced(fragment) is expected


class TestConditions:
    """Tests for condition extraction."""

    def test_extracts_condition(self):
        """Test condition clauses are pulled out."""
        algorithm, conditions = extract_conditions("$a=1;condition:gt($a,0);$b=2;")
        assert algorithm == "$a=1;$b=2;"
        assert conditions == ["condition:gt($a,0);"]

    def test_spaced_condition(self):
        """Test 'condition : ...' with spaces."""
        _, conditions = extract_conditions("$a=1;condition : ne($a,2);")
        assert conditions == ["condition : ne($a,2);"]

    def test_no_condition(self):
        """Test algorithms without conditions are unchanged."""
        assert extract_conditions("$a=1;") == ("$a=1;", [])


class TestSplitStatements:
    """Tests for statement parsing."""

    def test_names_and_order(self):
        """Test names, expressions and order."""
        statements = split_statements("$x = rint(5);$y=$x+1;")
        assert [s.name for s in statements] == ["$x", "$y"]
        assert [s.raw_expression for s in statements] == ["rint(5)", "$x+1"]
        assert [s.order for s in statements] == [0, 1]

    def test_splits_at_first_equals(self):
        """Test only the first '=' separates the name."""
        statement = parse_statement("$b=if(1=1,2,3)", 0)
        assert statement.name == "$b"
        assert statement.raw_expression == "if(1=1,2,3)"

    def test_statement_without_equals(self):
        """Test a statement without '=' has an empty name."""
        statement = parse_statement("junk", 3)
        assert statement.name == ""
        assert statement.text == "junk"

    @pytest.mark.parametrize("algorithm", ["", "   ", ";"])
    def test_empty_algorithm(self, algorithm):
        """Test empty algorithms give no statements."""
        assert split_statements(algorithm) == []
