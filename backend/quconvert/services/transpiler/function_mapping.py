"""
TA Function Mapping to the SW dialect.

Maps the helper functions of TA algorithm statements to their SW
equivalents. Each entry names the target and the structural transform the
AST rewriter applies; plain renames carry no transform.
Used by the multiplication normalizer (function registry) and the rewriter.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional


class Transform(Enum):
    """Structural rewrite applied on top of (or instead of) renaming."""
    RENAME = auto()
    TERNARY = auto()              # if(c, a, b) -> c ? a : b
    REVERSE_ARGS = auto()         # decimal(n, x) -> round(x, n)
    INDEXED_LIST = auto()         # rank(i, a, b) -> sw_rank([a, b], i)
    ZERO_BASED_LIST = auto()      # switch(i, a, b) -> sw_alist([a, b], i - 1)
    RANDOM_INTEGER = auto()       # rint(a, b) -> rand(a, b - 1)
    RANDOM_RANGE = auto()         # range(n) -> rand(0, n)
    AGGREGATE = auto()            # max(a, b) -> sw_max([a, b])
    OPAQUE_CALL = auto()          # csc(x) -> sw_maxima_native("csc(x)")
    OPAQUE_SUM = auto()           # sum(v, lo, hi, e) -> sw_maxima_native("sum((e),v, lo, hi)")
    DIVISION = auto()             # frac(a, b) -> a / b
    AFFIX = auto()                # arcsin -> asin, hypsin -> sinh
    LOG_BASE_10 = auto()          # log(x) -> log(x, 10)


@dataclass
class RewriteRule:
    """Mapping from a TA function to the SW dialect."""
    target: str = ""
    transform: Transform = Transform.RENAME
    description: str = ""


# ==================== Comparison & Logic ====================

COMPARISON_FUNCTIONS: Dict[str, RewriteRule] = {
    "eq": RewriteRule("sw_eq", description="Equal"),
    "ne": RewriteRule("sw_ne", description="Not equal"),
    "gt": RewriteRule("sw_gt", description="Greater than"),
    "ge": RewriteRule("sw_ge", description="Greater or equal"),
    "lt": RewriteRule("sw_lt", description="Less than"),
    "le": RewriteRule("sw_le", description="Less or equal"),
    "not": RewriteRule("sw_not", description="Logical NOT"),
    "if": RewriteRule(transform=Transform.TERNARY, description="Inline if"),
}


# ==================== Numeric ====================

NUMERIC_FUNCTIONS: Dict[str, RewriteRule] = {
    "decimal": RewriteRule("round", Transform.REVERSE_ARGS, "Round to n decimals"),
    "sig": RewriteRule("sw_round_sig", Transform.REVERSE_ARGS, "Round to n significant digits"),
    "lsu": RewriteRule("sw_lsu", Transform.REVERSE_ARGS, "Last significant unit"),
    "int": RewriteRule("sw_int", description="Integer part"),
    "fact": RewriteRule("sw_fact", description="Factorial"),
    "gcd": RewriteRule("sw_gcd", description="Greatest common divisor"),
    "numfmt": RewriteRule("numfmt", description="Number formatting"),
    "frac": RewriteRule("/", Transform.DIVISION, "Fraction"),
    "ln": RewriteRule("log", description="Natural logarithm"),
    "log": RewriteRule("log", Transform.LOG_BASE_10, "Base-10 logarithm"),
    "binomial": RewriteRule(transform=Transform.OPAQUE_CALL, description="Binomial coefficient"),
    "sum": RewriteRule(transform=Transform.OPAQUE_SUM, description="Summation"),
}


# ==================== Random ====================

RANDOM_FUNCTIONS: Dict[str, RewriteRule] = {
    "rint": RewriteRule("rand", Transform.RANDOM_INTEGER, "Random integer, upper bound exclusive"),
    "range": RewriteRule("rand", Transform.RANDOM_RANGE, "Random integer, upper bound inclusive"),
    "rand": RewriteRule("sw_rand_float", description="Random float"),
}


# ==================== Lists ====================

LIST_FUNCTIONS: Dict[str, RewriteRule] = {
    "switch": RewriteRule("sw_alist", Transform.ZERO_BASED_LIST, "Select n-th argument"),
    "indexof": RewriteRule("sw_ilist", Transform.INDEXED_LIST, "Position of value in list"),
    "rank": RewriteRule("sw_rank", Transform.INDEXED_LIST, "Rank of value in list"),
    "max": RewriteRule("sw_max", Transform.AGGREGATE, "Maximum"),
    "min": RewriteRule("sw_min", Transform.AGGREGATE, "Minimum"),
    "strcat": RewriteRule("sw_concat", Transform.AGGREGATE, "String concatenation"),
}


# ==================== Trigonometry ====================

TRIG_FUNCTIONS: Dict[str, RewriteRule] = {
    "csc": RewriteRule(transform=Transform.OPAQUE_CALL, description="Cosecant"),
    "sec": RewriteRule(transform=Transform.OPAQUE_CALL, description="Secant"),
    "cot": RewriteRule(transform=Transform.OPAQUE_CALL, description="Cotangent"),
    "arcsin": RewriteRule(transform=Transform.AFFIX),
    "arccos": RewriteRule(transform=Transform.AFFIX),
    "arctan": RewriteRule(transform=Transform.AFFIX),
    "hypsin": RewriteRule(transform=Transform.AFFIX),
    "hypcos": RewriteRule(transform=Transform.AFFIX),
    "hyptan": RewriteRule(transform=Transform.AFFIX),
    "archypsin": RewriteRule(transform=Transform.AFFIX),
    "archypcos": RewriteRule(transform=Transform.AFFIX),
    "archyptan": RewriteRule(transform=Transform.AFFIX),
}

# Longest prefix first: archyp must win over arc
AFFIX_RULES = [
    (re.compile(r"^archyp(\w{3})$"), r"a\1h"),
    (re.compile(r"^hyp(\w{3})$"), r"\1h"),
    (re.compile(r"^arc(\w{3})$"), r"a\1"),
]


# Functions shared by both dialects
PASSTHROUGH_FUNCTIONS = frozenset({
    "sin", "cos", "tan", "abs", "sqrt", "exp",
    "erf", "inverf", "studentst", "invstudentst",
    "maple",
})

# Recognised by TA but without any SW counterpart
UNSUPPORTED_FUNCTIONS = frozenset({"java", "mathml", "plotmaple"})

# Bare words that are never split into implicit products
PROTECTED_CONSTANTS = frozenset({"Pi", "pi", "true", "false", "infinity", "I"})


# ==================== Master Function Mapping ====================

ALL_RULES: Dict[str, RewriteRule] = {
    **COMPARISON_FUNCTIONS,
    **NUMERIC_FUNCTIONS,
    **RANDOM_FUNCTIONS,
    **LIST_FUNCTIONS,
    **TRIG_FUNCTIONS,
}

# Every TA function name, used to shield names from implicit multiplication
TA_FUNCTIONS = frozenset(ALL_RULES) | PASSTHROUGH_FUNCTIONS | UNSUPPORTED_FUNCTIONS


def get_rewrite_rule(name: str) -> Optional[RewriteRule]:
    """Get the rewrite rule of a TA function (case-sensitive)."""
    return ALL_RULES.get(name)


def derive_affix_name(name: str) -> Optional[str]:
    """Derive the SW name of an arc/hyperbolic function, e.g. archypsin -> asinh."""
    for pattern, replacement in AFFIX_RULES:
        if pattern.match(name):
            return pattern.sub(replacement, name)
    return None


def get_all_function_names() -> List[str]:
    """Get all TA function names, longest first."""
    return sorted(TA_FUNCTIONS, key=lambda name: (-len(name), name))


FUNCTION_COUNT = len(TA_FUNCTIONS)
