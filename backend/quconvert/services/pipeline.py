"""
Conversion Pipeline - one exercise algorithm end to end.

    conditions → split → protect maple("...") → normalize multiplication
    → rewrite each statement → restore and delegate maple calls
    → canonical variable names → comments
"""
import re
import logging
from typing import Callable, Dict, List, Optional, Tuple

from quconvert.core.config import Settings, settings as default_settings
from quconvert.core.errors import (
    ConversionIssue, ErrorContext, ErrorHandler, MalformedInputError,
)
from quconvert.models.conversion_models import (
    ConversionResult, ConversionStatus, ExerciseConversion, Statement,
)
from quconvert.services.expression.delegator import Delegator, find_maple_calls
from quconvert.services.expression.tree_converter import TreeConversion, convert_definition
from quconvert.services.parser.multiplication import (
    STRING_LITERAL, normalize_expression, normalize_statements,
)
from quconvert.services.parser.statement_splitter import extract_conditions, split_statements
from quconvert.services.transpiler.ast_rewriter import rewrite_expression
from quconvert.services.transpiler.formula_printer import escape_quotes
from quconvert.services.variables.scheme import build_scheme

logger = logging.getLogger(__name__)


PLACEHOLDER = re.compile(r"maple\((\d+)\)")
MAPLE_CALL = re.compile(r"(?<![\w$])maple\s*\(")

MANUAL_REVIEW = "Needs manual review"


def protect_maple_calls(statements: List[Statement]) -> Tuple[List[Statement], List[str]]:
    """Replace every maple("...") by a numbered `maple(N)` placeholder."""
    originals: List[str] = []
    protected = []
    for statement in statements:
        text = statement.raw_expression
        pieces = []
        last = 0
        for call in find_maple_calls(text):
            pieces.append(text[last:call.start])
            pieces.append(f"maple({len(originals)})")
            originals.append(text[call.start:call.end])
            last = call.end
        pieces.append(text[last:])
        protected.append(statement.with_expression("".join(pieces)))
    return protected, originals


def restore_maple_calls(
    text: str,
    originals: List[str],
    inline: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Put the protected maple("...") calls back.

    A placeholder inside a string literal (the payload of a native wrapper)
    is replaced by `inline(call)`, quote-escaped, so the literal stays one
    literal. Without `inline` the call text is restored everywhere.
    """
    def restore(segment: str, in_literal: bool) -> str:
        def replace(match):
            index = int(match.group(1))
            if index >= len(originals):
                return match.group(0)
            if in_literal and inline is not None:
                return escape_quotes(inline(originals[index]))
            return originals[index]
        return PLACEHOLDER.sub(replace, segment)

    pieces = []
    last = 0
    for match in STRING_LITERAL.finditer(text):
        pieces.append(restore(text[last:match.start()], False))
        pieces.append(restore(match.group(0), True))
        last = match.end()
    pieces.append(restore(text[last:], False))
    return "".join(pieces)


class ConversionPipeline:
    """
    Converts the algorithm of one exercise.

    A pipeline instance can be reused; all per-exercise state is reset by
    `convert`.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.delegator = Delegator(self.settings)
        self.errors = ErrorHandler()

    def convert(self, algorithm: str) -> ExerciseConversion:
        """
        Convert a TA algorithm.

        Args:
            algorithm: e.g. '$a=rint(2,10);$b=2$a;'

        Returns:
            ExerciseConversion with one result per variable

        Raises:
            MalformedInputError: if the algorithm exceeds MAX_ALGORITHM_LENGTH
            VariableSchemeExhaustedError: if it defines more than 125 variables
        """
        self.errors.clear()

        if len(algorithm) > self.settings.max_algorithm_length:
            raise MalformedInputError(
                f"Algorithm of {len(algorithm)} characters exceeds "
                f"the limit of {self.settings.max_algorithm_length}",
            )

        algorithm, conditions = extract_conditions(algorithm)
        statements = split_statements(algorithm)
        logger.info(f"Converting {len(statements)} statements")

        protected, originals = protect_maple_calls(statements)
        normalized = normalize_statements(protected)

        results: List[ConversionResult] = []
        positions: Dict[str, int] = {}
        for source, statement in zip(statements, normalized):
            result = self._convert_handled(source, statement, originals)

            # A redefinition replaces the earlier result in place
            if source.name and source.name in positions:
                results[positions[source.name]] = result
            else:
                if source.name:
                    positions[source.name] = len(results)
                results.append(result)

        scheme = build_scheme(result.name for result in results)
        for result in results:
            result.canonical_name = scheme.get(result.name) or ""
            result.target_expression = scheme.substitute(result.target_expression)

        conversion = ExerciseConversion(
            results=results,
            scheme=scheme.mapping,
            conditions=conditions,
            non_convertibles=[
                r.canonical_name or r.original_expression for r in results if r.status == ConversionStatus.FAILED
            ],
        )
        conversion.comment = self._exercise_comment(conversion, scheme.describe())

        stats = conversion.statistics
        logger.info(
            f"Converted {stats['total']} variables: {stats['ok']} ok, "
            f"{stats['fallback']} fallback, {stats['failed']} failed"
        )
        return conversion

    def _convert_handled(
        self,
        source: Statement,
        statement: Statement,
        originals: List[str],
    ) -> ConversionResult:
        """Convert one statement; a malformed one becomes a failed result."""
        variable = source.name or None
        try:
            result = self._convert_statement(source, statement, originals)
        except MalformedInputError as e:
            issue = self.errors.handle(e, ErrorContext(variable=variable))
            return self._failed(source, [issue])

        self.errors.record_all(result.issues, variable)
        return result

    def _convert_statement(
        self,
        source: Statement,
        statement: Statement,
        originals: List[str],
    ) -> ConversionResult:
        """
        Rewrite and delegate one normalized statement.

        Raises:
            MalformedInputError: if the statement has no '=' or does not parse
        """
        name = source.name
        original = source.raw_expression

        if not name:
            raise MalformedInputError("Statement without '='", fragment=source.text)

        try:
            rewritten = rewrite_expression(statement.raw_expression, self.settings.native_function)
        except MalformedInputError as e:
            e.context.fragment = original
            raise

        issues = list(rewritten.issues)
        warning = rewritten.warning
        fallback = rewritten.contains_opaque
        inlined = []

        def inline(call: str) -> str:
            delegation = self.delegator.inline(call)
            inlined.append(delegation)
            return delegation.definition

        text = restore_maple_calls(rewritten.expression, originals, inline=inline)
        for delegation in inlined:
            issues.extend(delegation.issues)
            warning = warning or delegation.warning
        if any(not delegation.converted for delegation in inlined):
            return self._failed(source, issues, maple=True)

        if MAPLE_CALL.search(text):
            delegation = self.delegator.delegate(text)
            issues.extend(delegation.issues)
            warning = warning or delegation.warning
            if not delegation.converted or MAPLE_CALL.search(delegation.definition):
                return self._failed(source, issues, maple=True)
            text = delegation.definition
            fallback = True

        status = ConversionStatus.FALLBACK if fallback else ConversionStatus.OK
        comment = f"Original variable:\n{name}={original}"
        if warning:
            comment += f"\n{MANUAL_REVIEW}"

        return ConversionResult(
            name=name,
            canonical_name="",
            target_expression=text,
            status=status,
            warning=warning,
            comment=comment,
            original_expression=original,
            issues=issues,
        )

    def _failed(self, source: Statement, issues: List[ConversionIssue], maple: bool = False) -> ConversionResult:
        original = source.raw_expression
        if maple:
            comment = f"This maple function could not be converted:\n{source.name}={original}"
        else:
            comment = f"Variable conversion failed. Original variable: {source.text}"
        logger.warning(f"Conversion failed for {source.text!r}")

        return ConversionResult(
            name=source.name,
            canonical_name="",
            target_expression=original,
            status=ConversionStatus.FAILED,
            warning=True,
            comment=f"{comment}\n{MANUAL_REVIEW}",
            original_expression=original,
            issues=issues,
        )

    def _exercise_comment(self, conversion: ExerciseConversion, scheme_lines: List[str]) -> str:
        sections = []
        if scheme_lines:
            sections.append("Variable replacement scheme:\n" + "\n".join(scheme_lines))
        if conversion.conditions:
            sections.append("Conditions:\n" + "\n".join(conversion.conditions))
        if conversion.non_convertibles:
            sections.append(
                "The following variables could not be converted:\n"
                + ", ".join(sorted(conversion.non_convertibles))
            )
        return "\n\n".join(sections)


def convert_algorithm(algorithm: str, config: Optional[Settings] = None) -> ExerciseConversion:
    """Convert the algorithm of one exercise."""
    return ConversionPipeline(config).convert(algorithm)


def convert_statement(expression: str, config: Optional[Settings] = None) -> ConversionResult:
    """
    Convert one TA expression outside of an exercise.

    No variable is known, so multiplication is normalized without any
    protected names and no canonical renaming takes place.
    """
    pipeline = ConversionPipeline(config)
    statement = Statement(name="$_", raw_expression=expression.strip(), order=0)

    protected, originals = protect_maple_calls([statement])
    normalized = protected[0].with_expression(
        normalize_expression(protected[0].raw_expression)
    )
    result = pipeline._convert_handled(statement, normalized, originals)
    result.name = ""
    result.comment = f"Original expression:\n{statement.raw_expression}"
    if result.warning:
        result.comment += f"\n{MANUAL_REVIEW}"
    return result


__all__ = [
    "ConversionPipeline",
    "TreeConversion",
    "convert_algorithm",
    "convert_definition",
    "convert_statement",
]
