"""
Algorithm Statement Splitter.

Splits a raw algorithm string into ordered `name=expression` statements:
- `;` separates statements unless it sits inside parentheses or quotes
- Duplicate separators (`;;`, `; ;`) count as one
- The string literals "(" and ")" never disturb the bracket count
- `condition:` clauses are pulled out before splitting
"""
import re
import logging
from typing import List, Tuple

from quconvert.models.conversion_models import Statement

logger = logging.getLogger(__name__)


DUPLICATE_SEPARATOR = re.compile(r';(?:\s*;)+')
CONDITION_PATTERN = re.compile(r'(condition ?: ?.*?;)')
UNESCAPED_QUOTE = re.compile(r'(?<!\\)"')

# Literal parenthesis strings are masked while counting brackets
MASKS = (
    ('"("', '\x00OBR\x00'),
    ('")"', '\x00CBR\x00'),
)


def extract_conditions(algorithm: str) -> Tuple[str, List[str]]:
    """
    Remove `condition: ...;` clauses from an algorithm.

    Returns:
        Tuple of (algorithm without conditions, list of conditions)
    """
    conditions = CONDITION_PATTERN.findall(algorithm)
    for condition in conditions:
        algorithm = algorithm.replace(condition, '')
    return algorithm, conditions


def is_balanced(fragment: str) -> bool:
    """True if parentheses match and unescaped quotes are paired."""
    if fragment.count('(') != fragment.count(')'):
        return False
    return len(UNESCAPED_QUOTE.findall(fragment)) % 2 == 0


def _mask(text: str) -> str:
    for literal, marker in MASKS:
        text = text.replace(literal, marker)
    return text


def _unmask(text: str) -> str:
    for literal, marker in MASKS:
        text = text.replace(marker, literal)
    return text


def split_segments(algorithm: str) -> List[str]:
    """Split an algorithm into raw statement strings."""
    text = _mask(DUPLICATE_SEPARATOR.sub(';', algorithm))

    segments = []
    start = 0
    cursor = 0
    while True:
        pos = text.find(';', cursor)
        if pos == -1:
            break
        if is_balanced(text[start:pos]):
            segments.append(text[start:pos])
            start = pos + 1
        cursor = pos + 1

    # A tail without closing ';' is still a statement
    tail = text[start:]
    if tail.strip():
        if segments and not is_balanced(tail):
            logger.debug(f"Unbalanced trailing statement kept as-is: {tail!r}")
        segments.append(tail)

    return [_unmask(segment).strip() for segment in segments if segment.strip()]


def parse_statement(segment: str, order: int) -> Statement:
    """Split one segment at its first '=' into name and expression."""
    name, sep, expression = segment.partition('=')
    if not sep:
        return Statement(name='', raw_expression=segment.strip(), order=order, source=segment)
    return Statement(
        name=name.strip(),
        raw_expression=expression.strip(),
        order=order,
        source=segment,
    )


def split_statements(algorithm: str) -> List[Statement]:
    """
    Split an algorithm string into statements.

    Args:
        algorithm: Raw algorithm, e.g. '$a=rint(5);$b=$a+1;'

    Returns:
        Ordered list of Statement
    """
    if not algorithm or not algorithm.strip():
        return []

    statements = [
        parse_statement(segment, order)
        for order, segment in enumerate(split_segments(algorithm))
    ]
    logger.debug(f"Split algorithm into {len(statements)} statements")
    return statements
