"""
Maple → Maxima function names.

1:1 renames used inside `maple("...")` payloads. Names that need argument
restructuring (int, seq, op, ...) are handled by the tree converter and
are deliberately absent from the rename table.
"""
from typing import Dict, Optional

MAPLE_TO_MAXIMA: Dict[str, str] = {
    "add": "sum",
    "arccos": "acos",
    "arcsin": "asin",
    "arctan": "atan",
    "ceil": "ceiling",
    "degree": "hipow",
    "ifactor": "ifactors",
    "igcd": "gcd",
    "ilcm": "lcm",
    "indets": "listofvars",
    "Insert": "sinsert",
    "Limit": "limit",
    "Matrix": "matrix",
    "modp": "mod",
    "nops": "length",
    "Quo": "quotient",
    "rand": "random",
    "select": "sublist",
    "simplify": "radcan",
    "subs": "subst",
    "trunc": "truncate",
    "Vector": "vector",
    "ln": "log",
}

# Same name in both systems
SHARED_FUNCTIONS = frozenset({
    "sin", "cos", "tan", "sec", "csc", "cot",
    "sinh", "cosh", "tanh",
    "exp", "log", "sqrt", "abs", "floor", "round", "signum",
    "max", "min", "sum", "product",
    "factor", "expand", "diff", "solve", "limit",
    "numer", "denom", "binomial", "factorial", "float",
})

def get_maxima_name(name: str) -> Optional[str]:
    """Maxima name for a 1:1-mappable Maple function, else None."""
    if name in MAPLE_TO_MAXIMA:
        return MAPLE_TO_MAXIMA[name]
    if name in SHARED_FUNCTIONS:
        return name
    return None


def is_one_to_one(name: str) -> bool:
    return get_maxima_name(name) is not None
