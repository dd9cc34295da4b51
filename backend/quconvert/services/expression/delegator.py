"""
Opaque-Expression Delegator.

Turns `maple("...")` calls into SW native wrappers. The payload is Maple
text for an external CAS; it is passed through as opaque text, after the
cheapest conversion that makes it Maxima-compatible:

    (d) ExportPresentation(e)  → sw_maxima("e")
    (a) no calls, lists, sets or ranges → sw_maxima_native("payload")
    (b) only 1:1-mappable calls → names substituted, wrapped native
    (c) anything else → each top-level call through the tree converter,
        wrapped native, flagged for review

Maple calls nested inside a payload are flattened recursively up to
`MAX_DELEGATION_DEPTH`.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from quconvert.core.config import Settings, settings as default_settings
from quconvert.core.errors import ConversionIssue, ErrorCode, opaque_fallback
from quconvert.services.transpiler.formula_printer import escape_quotes
from .maple_mapping import get_maxima_name, is_one_to_one
from .tree_converter import convert_definition

logger = logging.getLogger(__name__)


MAPLE_CALL_START = re.compile(r'(?<![\w$])maple\s*\(\s*"')
FUNCTION_NAME = re.compile(r"(?<![\w.$])([A-Za-z_]\w*)\s*\(")
EXPORT_PRESENTATION = re.compile(r"ExportPresentation\]?\s*\(")
STRUCTURED_SYNTAX = ("[", "{", "..")


@dataclass
class MapleCall:
    """A `maple("payload")` occurrence: text[start:end]."""
    start: int
    end: int
    payload: str


@dataclass
class DelegationResult:
    """Result of delegating every maple call of a definition."""
    definition: str
    warning: bool = False
    converted: bool = True
    issues: List[ConversionIssue] = field(default_factory=list)


def find_maple_calls(text: str) -> List[MapleCall]:
    """Locate `maple("...")` calls; escaped quotes stay inside the payload."""
    calls = []
    pos = 0
    while True:
        match = MAPLE_CALL_START.search(text, pos)
        if not match:
            break

        i = match.end()
        while i < len(text) and text[i] != '"':
            if text[i] == "\\":
                i += 1
            i += 1
        if i >= len(text):
            break

        j = i + 1
        while j < len(text) and text[j].isspace():
            j += 1
        if j < len(text) and text[j] == ")":
            calls.append(MapleCall(match.start(), j + 1, text[match.end():i]))
            pos = j + 1
        else:
            pos = match.end()
    return calls


def find_closing(text: str, open_index: int) -> Optional[int]:
    """Index of the `)` matching the `(` at `open_index`."""
    depth = 0
    for i in range(open_index, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def top_level_calls(text: str) -> List[Tuple[int, int]]:
    """Spans of the calls not nested inside another call."""
    spans = []
    last_end = 0
    for match in FUNCTION_NAME.finditer(text):
        if match.start() < last_end:
            continue
        close = find_closing(text, match.end() - 1)
        if close is None:
            continue
        spans.append((match.start(), close + 1))
        last_end = close + 1
    return spans


class Delegator:
    """Converts the maple calls of one definition."""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.constant_pattern = re.compile(
            r"(?<![\w$])" + re.escape(self.settings.constant_placeholder) + r"(?!\w)"
        )

    def delegate(self, definition: str) -> DelegationResult:
        """
        Replace every maple("...") call with a native wrapper.

        Args:
            definition: SW definition that may contain maple("...") calls

        Returns:
            DelegationResult; `converted` is False if a call was left as-is
        """
        text = self._strip_decorations(definition)
        calls = find_maple_calls(text)
        if not calls:
            return DelegationResult(text)

        result = DelegationResult(text)
        pieces = []
        last = 0
        for call in calls:
            pieces.append(text[last:call.start])
            pieces.append(self._delegate_call(text[call.start:call.end], call.payload, result))
            last = call.end
        pieces.append(text[last:])

        result.definition = "".join(pieces)
        return result

    def inline(self, call_text: str) -> DelegationResult:
        """
        Convert one maple("...") call to bare payload text, without a wrapper.

        Used where the call sits inside another native payload.
        """
        text = self._strip_decorations(call_text)
        calls = find_maple_calls(text)
        result = DelegationResult(text)
        if not calls:
            return result

        call = calls[0]
        payload = self._prepare(text[call.start:call.end], call.payload, result)
        if payload is not None:
            result.definition = self._convert_payload(payload, result)
        return result

    def _strip_decorations(self, text: str) -> str:
        text = text.replace("`", "")
        return self.constant_pattern.sub(lambda m: self.settings.constant_replacement, text)

    def _prepare(self, original: str, payload: str, result: DelegationResult) -> Optional[str]:
        """Unescape the payload and flatten nested calls; None past the depth limit."""
        flattened = self._flatten(payload.replace('\\"', '"'), depth=1)
        if flattened is None:
            logger.warning(f"Delegation depth exceeded: {original}")
            result.converted = False
            result.warning = True
            result.issues.append(ConversionIssue(
                ErrorCode.DELEGATION_DEPTH,
                f"Nested maple calls deeper than {self.settings.max_delegation_depth}",
                original,
            ))
        return flattened

    def _delegate_call(self, original: str, payload: str, result: DelegationResult) -> str:
        payload = self._prepare(original, payload, result)
        if payload is None:
            return original

        # (d) presentation idiom
        if EXPORT_PRESENTATION.search(payload):
            return self._presentation(original, payload, result)

        return self._wrap(self._convert_payload(payload, result))

    def _convert_payload(self, payload: str, result: DelegationResult) -> str:
        names = FUNCTION_NAME.findall(payload)
        structured = any(token in payload for token in STRUCTURED_SYNTAX)

        # (a) plain pass-through
        if not names and not structured:
            logger.debug(f"Native pass-through: {payload}")
            return payload

        # (b) 1:1 substitution
        if all(is_one_to_one(name) for name in names):
            substituted = FUNCTION_NAME.sub(
                lambda m: m.group(0).replace(m.group(1), get_maxima_name(m.group(1)), 1),
                payload,
            )
            logger.debug(f"1:1 substitution: {payload} -> {substituted}")
            return substituted

        # (c) tree conversion of each top-level call
        pieces = []
        last = 0
        for start, end in top_level_calls(payload):
            converted = convert_definition(payload[start:end])
            result.issues.extend(converted.issues)
            pieces.append(payload[last:start])
            pieces.append(converted.definition)
            last = end
        pieces.append(payload[last:])
        converted_payload = "".join(pieces)

        result.warning = True
        result.issues.append(opaque_fallback(payload))
        logger.debug(f"Tree conversion: {payload} -> {converted_payload}")
        return converted_payload

    def _presentation(self, original: str, payload: str, result: DelegationResult) -> str:
        match = EXPORT_PRESENTATION.search(payload)
        close = find_closing(payload, match.end() - 1)
        if close is None:
            result.converted = False
            result.warning = True
            result.issues.append(ConversionIssue(
                ErrorCode.MALFORMED_INPUT, "Unbalanced ExportPresentation call", original,
            ))
            return original

        argument = payload[match.end():close]
        result.warning = True
        result.issues.append(opaque_fallback(argument))
        return f'{self.settings.presentation_function}("{escape_quotes(argument)}")'

    def _flatten(self, payload: str, depth: int) -> Optional[str]:
        """Inline nested maple("...") calls; None once the depth limit is hit."""
        calls = find_maple_calls(payload)
        if not calls:
            return payload
        if depth >= self.settings.max_delegation_depth:
            return None

        pieces = []
        last = 0
        for call in calls:
            inner = self._flatten(call.payload.replace('\\"', '"'), depth + 1)
            if inner is None:
                return None
            pieces.append(payload[last:call.start])
            pieces.append(inner)
            last = call.end
        pieces.append(payload[last:])
        return "".join(pieces)

    def _wrap(self, payload: str) -> str:
        return f'{self.settings.native_function}("{escape_quotes(payload)}")'


def delegate_definition(definition: str, config: Optional[Settings] = None) -> DelegationResult:
    """Convenience wrapper around Delegator.delegate."""
    return Delegator(config).delegate(definition)
