"""Single-operator arithmetic used by the ``calculate`` tool.

Deliberately tiny: one binary operator, no precedence, no parentheses.
Problems with the input are reported as result text, never raised.
"""

from __future__ import annotations

import math
import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
# Leading numeric prefix, the way a lenient float parser reads it ("3abc" -> 3).
_NUMBER_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|^[+-]?Infinity")

NO_OPERATOR = "No valid operator found (+, -, *, /)"
INVALID_FORMAT = "Invalid expression format"
INVALID_NUMBERS = "Invalid numbers in expression"
DIVIDE_BY_ZERO = "Cannot divide by zero"


def _pick_operator(expr: str) -> Optional[str]:
    # Checked in this order; a leading '-' is a sign, not an operator.
    if "+" in expr:
        return "+"
    if "-" in expr and expr.index("-") > 0:
        return "-"
    if "*" in expr:
        return "*"
    if "/" in expr:
        return "/"
    return None


def _parse_number(text: str) -> Optional[float]:
    match = _NUMBER_PREFIX_RE.match(text)
    if match is None:
        return None
    return float(match.group(0).replace("Infinity", "inf"))


def format_number(value: float) -> str:
    """Render *value* without a trailing ``.0`` for integral results."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def evaluate_expression(expression: str) -> str:
    """Evaluate ``a <op> b`` and return the result (or a problem) as text."""
    clean = _WHITESPACE_RE.sub("", expression)

    operator = _pick_operator(clean)
    if operator is None:
        return NO_OPERATOR

    parts = clean.split(operator)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return INVALID_FORMAT

    a = _parse_number(parts[0])
    b = _parse_number(parts[1])
    if a is None or b is None:
        return INVALID_NUMBERS

    if operator == "+":
        return format_number(a + b)
    if operator == "-":
        return format_number(a - b)
    if operator == "*":
        return format_number(a * b)
    if b == 0:
        return DIVIDE_BY_ZERO
    return format_number(a / b)
