"""
Canonical variable renaming.

Every exercise maps its source variables onto a fixed token sequence:
a-h, j-v, then wa-wz, xa-xz, ya-yz, za-zz. `i` is kept free for loop
indices; w-z only appear as prefixes.
"""
import re
import logging
from string import ascii_lowercase
from typing import Dict, Iterable, List, Optional

from quconvert.core.errors import VariableSchemeExhaustedError

logger = logging.getLogger(__name__)


def canonical_tokens() -> List[str]:
    singles = [c for c in ascii_lowercase if c != "i" and c not in "wxyz"]
    doubles = [prefix + c for prefix in "wxyz" for c in ascii_lowercase]
    return singles + doubles


CANONICAL_TOKENS = canonical_tokens()


class VariableScheme:
    """
    Ordered source → canonical mapping for one exercise.

    Names keep their sigil: `$speed` maps to `$a`.
    """

    def __init__(self, sigil: str = "$"):
        self.sigil = sigil
        self._mapping: Dict[str, str] = {}
        self._pattern: Optional[re.Pattern] = None

    def __len__(self):
        return len(self._mapping)

    def __contains__(self, name: str) -> bool:
        return name in self._mapping

    def assign(self, name: str) -> str:
        """Canonical name for `name`, assigning the next token if new."""
        if name in self._mapping:
            return self._mapping[name]

        index = len(self._mapping)
        if index >= len(CANONICAL_TOKENS):
            raise VariableSchemeExhaustedError(
                f"No canonical token left for {name} ({len(CANONICAL_TOKENS)} in use)",
                variable=name,
            )

        canonical = self.sigil + CANONICAL_TOKENS[index]
        self._mapping[name] = canonical
        self._pattern = None
        logger.debug(f"Scheme: {name} => {canonical}")
        return canonical

    def assign_all(self, names: Iterable[str]) -> "VariableScheme":
        for name in names:
            if name:
                self.assign(name)
        return self

    def get(self, name: str) -> Optional[str]:
        return self._mapping.get(name)

    @property
    def mapping(self) -> Dict[str, str]:
        return dict(self._mapping)

    def substitute(self, text: str) -> str:
        """Replace whole-name occurrences of every mapped variable in one pass."""
        if not self._mapping:
            return text
        if self._pattern is None:
            alternatives = list(reversed(list(self._mapping)))
            self._pattern = re.compile(
                "(" + "|".join(re.escape(name) for name in alternatives) + r")(?!\w)"
            )
        return self._pattern.sub(lambda m: self._mapping[m.group(1)], text)

    def describe(self) -> List[str]:
        """Lines like `$speed => $a`."""
        return [f"{name} => {canonical}" for name, canonical in self._mapping.items()]


def build_scheme(names: Iterable[str]) -> VariableScheme:
    """Build a scheme from statement names in definition order."""
    return VariableScheme().assign_all(names)
