"""
Conversion Pipeline Tests.

End-to-end tests for converting exercise algorithms.
"""
import pytest

from quconvert.core.config import Settings
from quconvert.core.errors import ErrorCode, MalformedInputError, VariableSchemeExhaustedError
from quconvert.models.conversion_models import ConversionStatus
from quconvert.services.pipeline import (
    ConversionPipeline, convert_algorithm, convert_statement,
    protect_maple_calls, restore_maple_calls,
)
from quconvert.services.parser.statement_splitter import split_statements


class TestMapleProtection:
    """Tests for maple call placeholders."""

    def test_protect_and_restore(self):
        """Test payloads are swapped out and back."""
        statements = split_statements('$a=maple("x;y")+maple("2");')
        protected, originals = protect_maple_calls(statements)
        assert protected[0].raw_expression == "maple(0)+maple(1)"
        assert restore_maple_calls("maple(0)+maple(1)", originals) == 'maple("x;y")+maple("2")'

    def test_restore_inside_literal_inlines(self):
        """Test a placeholder inside a native payload is inlined, not restored."""
        originals = ['maple("x+1")', 'maple("y")']
        text = 'sw_maxima_native("csc(maple(0))")+maple(1)'
        restored = restore_maple_calls(text, originals, inline=lambda call: "<" + call + ">")
        assert restored == 'sw_maxima_native("csc(<maple(\\"x+1\\")>)")+maple("y")'


class TestConvertAlgorithm:
    """Tests for whole algorithms."""

    def test_basic_algorithm(self):
        """Test random value and implicit product."""
        conversion = convert_algorithm("$x=rint(2,10);$y=2$x;")

        x, y = conversion.results
        assert (x.name, x.canonical_name, x.target_expression) == ("$x", "$a", "rand(2, 9)")
        assert (y.name, y.canonical_name, y.target_expression) == ("$y", "$b", "2 * $a")
        assert x.status == ConversionStatus.OK
        assert conversion.warning is False
        assert conversion.scheme == {"$x": "$a", "$y": "$b"}

    def test_result_tuple(self):
        """Test the (name, definition, warning, comment) contract."""
        result = convert_algorithm("$x=rint(2,10);").results[0]
        assert result.as_tuple() == ("$a", "rand(2, 9)", False, "Original variable:\n$x=rint(2,10)")

    def test_sample_algorithm(self, sample_algorithm):
        """Test a small exercise end to end."""
        conversion = convert_algorithm(sample_algorithm)

        assert [r.canonical_name for r in conversion.results] == ["$a", "$b", "$c", "$d"]
        assert conversion.get("$dist").target_expression == "$a * $b"
        assert conversion.get("$ans").target_expression == "round($c / 3, 2)"
        assert conversion.conditions == ["condition:gt($dist,4);"]
        assert "$speed => $a" in conversion.comment
        assert "Conditions:\ncondition:gt($dist,4);" in conversion.comment

    def test_redefinition_keeps_first_position(self):
        """Test a redefined variable replaces its earlier result."""
        conversion = convert_algorithm("$a=1;$b=2;$a=3;")
        assert [r.name for r in conversion.results] == ["$a", "$b"]
        assert conversion.results[0].target_expression == "3"

    def test_opaque_fallback(self):
        """Test constant expressions are wrapped and flagged."""
        result = convert_algorithm("$p=2*pi;").results[0]
        assert result.target_expression == 'sw_maxima_native("2 * pi")'
        assert result.status == ConversionStatus.FALLBACK
        assert result.warning is True
        assert result.comment.endswith("Needs manual review")

    def test_renaming_inside_native_payload(self):
        """Test variables inside wrappers are renamed too."""
        conversion = convert_algorithm("$n=rint(5);$p=$n*pi;")
        assert conversion.get("$p").target_expression == 'sw_maxima_native("$a * pi")'

    def test_empty_algorithm(self):
        """Test an empty algorithm converts to nothing."""
        conversion = convert_algorithm("")
        assert conversion.results == []
        assert conversion.comment == ""


class TestMapleStatements:
    """Tests for statements that call maple."""

    def test_maple_delegated(self):
        """Test maple payloads are converted and wrapped."""
        result = convert_algorithm('$m=maple("arccos(x)");').results[0]
        assert result.target_expression == 'sw_maxima_native("acos(x)")'
        assert result.status == ConversionStatus.FALLBACK
        assert result.warning is False

    def test_maple_with_semicolon(self):
        """Test ';' inside a maple payload does not split the statement."""
        conversion = convert_algorithm('$m=maple("a:=1; a+1");$n=2;')
        assert len(conversion.results) == 2

    def test_maple_variable_renamed(self):
        """Test variables referenced in a payload are renamed."""
        conversion = convert_algorithm('$x=rint(5);$m=maple("$x^2");')
        assert conversion.get("$m").target_expression == 'sw_maxima_native("$a^2")'

    @pytest.mark.parametrize("algorithm,expected", [
        ('$a=csc(maple("x+1"));', 'sw_maxima_native("csc(x+1)")'),
        ('$a=sum(i,1,5,maple("i^2"));', 'sw_maxima_native("sum((i^2),i, 1, 5)")'),
        ('$a=cot(maple("arccos(x)"));', 'sw_maxima_native("cot(acos(x))")'),
    ])
    def test_maple_inside_native_payload(self, algorithm, expected):
        """Test a maple call inside a native payload is inlined once."""
        result = convert_algorithm(algorithm).results[0]
        assert result.target_expression == expected
        assert result.status == ConversionStatus.FALLBACK

    def test_maple_inside_native_payload_too_deep(self, shallow_settings):
        """Test a too deeply nested call inside a native payload fails."""
        result = convert_algorithm('$a=csc(maple("1+maple(\\"x\\")"));', shallow_settings).results[0]
        assert result.status == ConversionStatus.FAILED
        assert result.issues[-1].code == ErrorCode.DELEGATION_DEPTH

    def test_maple_too_deep(self):
        """Test a maple call nested too deeply fails."""
        config = Settings(max_delegation_depth=1)
        result = convert_algorithm('$m=maple("1+maple(\\"x\\")");', config).results[0]
        assert result.status == ConversionStatus.FAILED
        assert result.comment.startswith("This maple function could not be converted:\n$m=")
        assert result.warning is True


class TestFailures:
    """Tests for statements that cannot be converted."""

    def test_parse_failure(self):
        """Test an unparsable statement keeps its text."""
        conversion = convert_algorithm("$a=1 +;$b=2;")
        failed = conversion.get("$a")

        assert failed.status == ConversionStatus.FAILED
        assert failed.target_expression == "1 +"
        assert failed.comment.startswith("Variable conversion failed. Original variable: $a=1 +")
        assert failed.issues[0].code == ErrorCode.MALFORMED_INPUT
        assert conversion.non_convertibles == ["$a"]
        assert "could not be converted:\n$a" in conversion.comment
        assert conversion.get("$b").status == ConversionStatus.OK

    def test_statement_without_name(self):
        """Test a statement without '=' fails but does not stop the rest."""
        conversion = convert_algorithm("$a=1;junk;")
        assert len(conversion.results) == 2
        assert conversion.results[1].status == ConversionStatus.FAILED
        assert conversion.results[1].canonical_name == ""
        assert "junk" in conversion.non_convertibles

    def test_algorithm_too_long(self):
        """Test the length limit."""
        with pytest.raises(MalformedInputError):
            convert_algorithm("$a=1;" * 10, Settings(max_algorithm_length=20))

    def test_too_many_variables(self):
        """Test more than 125 variables raises."""
        algorithm = "".join(f"$v{n}={n};" for n in range(126))
        with pytest.raises(VariableSchemeExhaustedError):
            convert_algorithm(algorithm)

    def test_issue_summary(self):
        """Test issues are collected on the pipeline."""
        pipeline = ConversionPipeline(Settings())
        pipeline.convert("$a=rint(1,2,3,4);$b=pi;")
        summary = pipeline.errors.summary()
        assert summary["issue_codes"]["E2002"] == 1
        assert summary["issue_codes"]["E2003"] == 1

    def test_parse_failure_counted_once(self, pipeline):
        """Test a malformed statement is handled as one error and one issue."""
        pipeline.convert("$a=1 +;$b=2;")
        summary = pipeline.errors.summary()
        assert summary["error_count"] == 1
        assert summary["issue_count"] == 1
        assert summary["issue_codes"] == {"E1001": 1}
        assert pipeline.errors.issues[0].fragment == "1 +"

    def test_pipeline_reset_between_runs(self, pipeline):
        """Test issues do not leak between exercises."""
        pipeline.convert("$a=foo(1);")
        pipeline.convert("$a=1;")
        assert pipeline.errors.has_issues() is False


class TestConvertStatement:
    """Tests for single expressions."""

    def test_statement(self):
        """Test one expression without a name."""
        result = convert_statement("rint(5)")
        assert result.target_expression == "rand(0, 4)"
        assert result.name == ""
        assert result.comment == "Original expression:\nrint(5)"

    def test_statement_with_warning(self):
        """Test the review note on flagged expressions."""
        result = convert_statement("foo(1)")
        assert result.warning is True
        assert result.comment.endswith("Needs manual review")

    def test_statement_implicit_product(self):
        """Test multiplication is normalized."""
        assert convert_statement("2$x").target_expression == "2 * $x"
