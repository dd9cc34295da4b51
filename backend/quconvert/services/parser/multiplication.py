"""
Implicit Multiplication Normalizer.

TA accepts `2$a`, `$a$b`, `3(x+1)` and `2 sin(x)`; SW needs every product
spelled out. Function names and string literals are shielded by sentinels
while a single cursor scan inserts the missing `*`.

Adjacency cases, previous character → next character:
1. letter run (`$ab`, `xy2`): split into single atoms unless it is a
   known variable or a protected constant
2. `)` or letter → `$`, function, alphanumeric or `(`
3. digit → `(`, `$`, letter or function
4. alphanumeric or `)`, space, then function, alphanumeric or `(`
"""
import re
import logging
from typing import Iterable, List, Set, Tuple

from quconvert.models.conversion_models import Statement
from quconvert.services.transpiler.function_mapping import (
    PROTECTED_CONSTANTS, get_all_function_names,
)

logger = logging.getLogger(__name__)


FUNCTION_SENTINEL = "\ue000"
STRING_SENTINEL = "\ue001"

STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"')

# Longest first, so `le(` never matches inside `maple(`
FUNCTION_CALL = re.compile(
    "(?:" + "|".join(re.escape(name) for name in get_all_function_names()) + r")\("
)

END_MARKERS = frozenset("-+/*^ ;()$,[]{}<>=!.:?%\t\n\"") | {FUNCTION_SENTINEL, STRING_SENTINEL}


def _protect(pattern: re.Pattern, sentinel: str, text: str) -> Tuple[str, List[str]]:
    found = pattern.findall(text)
    return pattern.sub(sentinel, text), found


def _restore(sentinel: str, text: str, originals: List[str]) -> str:
    pieces = text.split(sentinel)
    if len(pieces) - 1 != len(originals):
        raise ValueError(f"Sentinel mismatch: {len(pieces) - 1} slots for {len(originals)} values")
    restored = [pieces[0]]
    for original, piece in zip(originals, pieces[1:]):
        restored.append(original)
        restored.append(piece)
    return "".join(restored)


def _split_run(run: str) -> str:
    """`$abc` -> `$a*b*c`, `x12` -> `x*12`."""
    head = 2 if run.startswith("$") else 1
    parts = [run[:head]]
    for prev, char in zip(run[head - 1:], run[head:]):
        if not (prev.isdigit() and char.isdigit()):
            parts.append("*")
        parts.append(char)
    return "".join(parts)


def _needs_star(prev: str, char: str) -> bool:
    # Case 2
    if (prev == ")" or prev.isalpha()) and (
        char in "$(" or char == FUNCTION_SENTINEL or char.isalnum()
    ):
        return True
    # Case 3
    if prev.isdigit() and (
        char in "($" or char == FUNCTION_SENTINEL or char.isalpha()
    ):
        return True
    return False


def _scan(text: str, known_names: Set[str]) -> str:
    """Insert `*` over sentinel-protected text."""
    out: List[str] = []

    def emit(piece: str):
        if out and out[-1] and _needs_star(out[-1][-1], piece[0]):
            out.append("*")
        out.append(piece)

    i = 0
    n = len(text)
    while i < n:
        char = text[i]

        if char == " ":
            # Case 4
            prev = out[-1][-1] if out else ""
            nxt = text[i + 1] if i + 1 < n else ""
            if (prev.isalnum() or prev == ")") and (
                nxt == FUNCTION_SENTINEL or nxt.isalnum() or nxt == "("
            ):
                out.append("*")
            else:
                out.append(char)
            i += 1
        elif char == "$" or char.isalpha():
            # Case 1
            end = i + 1
            while end < n and text[end] not in END_MARKERS:
                end += 1
            run = text[i:end]
            if run in known_names or run in PROTECTED_CONSTANTS:
                emit(run)
            else:
                emit(_split_run(run))
            i = end
        elif char.isdigit() or (char == "." and text[i + 1:i + 2].isdigit()):
            end = i + 1
            while end < n and (
                text[end].isdigit()
                or (text[end] == "." and text[end + 1:end + 2] != "." and text[i:end].count(".") == 0)
            ):
                end += 1
            emit(text[i:end])
            i = end
        else:
            emit(char)
            i += 1

    return "".join(out)


def normalize_expression(expression: str, known_names: Iterable[str] = ()) -> str:
    """
    Make every implicit multiplication of one expression explicit.

    Args:
        expression: TA expression body (right-hand side of a statement)
        known_names: variable names that must never be split, e.g. {'$ab'}

    Returns:
        Expression with `*` inserted and `**` collapsed to `^`
    """
    text, strings = _protect(STRING_LITERAL, STRING_SENTINEL, expression)
    text, functions = _protect(FUNCTION_CALL, FUNCTION_SENTINEL, text)

    text = _scan(text, set(known_names))
    text = text.replace("**", "^")

    text = _restore(FUNCTION_SENTINEL, text, functions)
    return _restore(STRING_SENTINEL, text, strings)


def normalize_statements(statements: List[Statement]) -> List[Statement]:
    """
    Normalize a batch of statements in definition order.

    A statement's own name and every earlier name count as known variables.
    """
    known: Set[str] = set()
    normalized = []

    for statement in statements:
        if statement.name:
            known.add(statement.name)
        body = normalize_expression(statement.raw_expression, known)
        if body != statement.raw_expression:
            logger.debug(f"Normalized {statement.name}: {statement.raw_expression!r} -> {body!r}")
        normalized.append(statement.with_expression(body))

    return normalized
