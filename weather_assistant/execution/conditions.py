"""
Step run-conditions.

A condition has the shape `<template> <operator> <literal>`, for example
`{{parseLocation.confidence}} > 0.5`. The left side is interpolated against the
RunContext; the literal is a number, a quoted string or a bare word.

- Numeric operators (>, <, >=, <=) coerce both sides to float. When the left
  side is not numeric the condition is False and a warning is recorded; it
  never raises for unexpected data.
- == and != compare numerically when both sides are numbers, otherwise they
  compare the rendered left side with the literal text as strings.
"""

import logging
import math
import operator
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Tuple, Union

from ..exceptions import ConditionEvaluationError, ConditionSyntaxError
from ..state.models import RunContext
from .interpolation import CLOSE, OPEN, interpolate_value, parse_template, to_text

logger = logging.getLogger(__name__)

# Longest operators first so ">=" is not read as ">".
OPERATORS = (">=", "<=", "==", "!=", ">", "<")
NUMERIC_OPERATORS = frozenset({">", "<", ">=", "<="})

_COMPARATORS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_QUOTES = ("'", '"')


@dataclass(frozen=True)
class Condition:
    left: str
    operator: str
    literal: Union[float, str]
    literal_text: str
    quoted: bool
    source: str


# ==========================================================================
# Parsing
# ==========================================================================

def _find_operator(text: str) -> Tuple[int, Optional[str]]:
    """Returns (index, operator) of the first operator outside placeholders."""
    i = 0
    while i < len(text):
        if text.startswith(OPEN, i):
            end = text.find(CLOSE, i + len(OPEN))
            if end == -1:
                raise ConditionSyntaxError(f"Unclosed placeholder in condition '{text}'.")
            i = end + len(CLOSE)
            continue
        for op in OPERATORS:
            if text.startswith(op, i):
                return i, op
        i += 1
    return -1, None


def _parse_literal(text: str, source: str) -> Tuple[Union[float, str], str, bool]:
    """Returns (value, literal text, quoted)."""
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        inner = text[1:-1]
        return inner, inner, True

    if any(op in text for op in OPERATORS) or any(ch.isspace() for ch in text):
        raise ConditionSyntaxError(
            f"Invalid literal '{text}' in condition '{source}'. Quote string literals."
        )

    number = _try_number(text)
    if number is not None:
        return number, text, False
    return text, text, False


@lru_cache(maxsize=256)
def parse_condition(text: str) -> Condition:
    """
    Raises:
        ConditionSyntaxError: if the expression is not `<template> <op> <literal>`,
            or a numeric operator is paired with a non-numeric literal.
        TemplateSyntaxError: if the left-hand template is malformed.
    """
    index, op = _find_operator(text)
    if op is None:
        raise ConditionSyntaxError(f"No comparison operator in condition '{text}'.")

    left = text[:index].strip()
    right = text[index + len(op):].strip()
    if not left:
        raise ConditionSyntaxError(f"Missing left-hand side in condition '{text}'.")
    if not right:
        raise ConditionSyntaxError(f"Missing literal in condition '{text}'.")

    parse_template(left)
    literal, literal_text, quoted = _parse_literal(right, text)
    if op in NUMERIC_OPERATORS and (quoted or not isinstance(literal, float)):
        raise ConditionSyntaxError(
            f"Operator '{op}' needs a numeric literal, got '{right}' in condition '{text}'."
        )
    return Condition(
        left=left,
        operator=op,
        literal=literal,
        literal_text=literal_text,
        quoted=quoted,
        source=text,
    )


# ==========================================================================
# Evaluation
# ==========================================================================

def _try_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_number(value: Any) -> float:
    number = _try_number(value)
    if number is None:
        raise ConditionEvaluationError(f"Value {value!r} is not a number.")
    return number


def compare(condition: Condition, left_value: Any) -> bool:
    """
    Raises:
        ConditionEvaluationError: numeric operator with a non-numeric side.
    """
    op = condition.operator
    if op in NUMERIC_OPERATORS:
        return _COMPARATORS[op](to_number(left_value), to_number(condition.literal))

    left_number = _try_number(left_value)
    right_number = None if condition.quoted else _try_number(condition.literal)
    if left_number is not None and right_number is not None:
        return _COMPARATORS[op](left_number, right_number)
    return _COMPARATORS[op](to_text(left_value), condition.literal_text)


def evaluate_condition(condition: Optional[str], context: RunContext) -> bool:
    """
    Decides whether a step should run. No condition means "always run".

    Raises:
        ValidationError: only for a malformed condition string.
    """
    if condition is None or not condition.strip():
        return True

    parsed = parse_condition(condition)
    left_value = interpolate_value(parsed.left, context)
    try:
        outcome = compare(parsed, left_value)
    except ConditionEvaluationError as e:
        context.warn(
            "condition_not_numeric",
            f"Condition '{parsed.source}' treated as false: {e}",
        )
        return False

    logger.debug(f"Condition '{parsed.source}' with left={left_value!r} -> {outcome}")
    return outcome
