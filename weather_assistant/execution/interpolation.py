"""
Template Interpolation

Resolves `{{ dotted.path }}` placeholders against a RunContext. This is the
only templating construct: there are no loops, filters or conditionals.

A template is parsed once into literal segments and placeholders:

    "Weather: {{getWeather.weather.temperature}} in {{ input }}"
      -> ["Weather: ", Placeholder(getWeather.weather.temperature), " in ", Placeholder(input)]

Path segments walk mappings by key, lists and tuples by integer index, and
models or plain objects by public attribute.

Missing values: a path that does not resolve (or that reaches the NOT_RUN
marker of a skipped/failed step) renders as the empty string and adds an
"unresolved_placeholder" warning to the run. Interpolation never raises for
missing data; it only raises TemplateSyntaxError for malformed templates.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Sequence, Tuple, Union

from pydantic import BaseModel

from ..exceptions import TemplateSyntaxError
from ..state.models import NOT_RUN, RunContext

logger = logging.getLogger(__name__)

OPEN = "{{"
CLOSE = "}}"

PathSegment = Union[str, int]

# Sentinel for "path did not resolve"; distinct from a stored None.
_MISSING = object()


@dataclass(frozen=True)
class Placeholder:
    path: Tuple[PathSegment, ...]
    source: str

    def __str__(self) -> str:
        return f"{OPEN}{self.source}{CLOSE}"


Segment = Union[str, Placeholder]


@dataclass(frozen=True)
class ParsedTemplate:
    segments: Tuple[Segment, ...]

    @property
    def placeholders(self) -> Tuple[Placeholder, ...]:
        return tuple(s for s in self.segments if isinstance(s, Placeholder))

    @property
    def is_single_placeholder(self) -> bool:
        return len(self.segments) == 1 and isinstance(self.segments[0], Placeholder)


# ==========================================================================
# Parsing
# ==========================================================================

def parse_path(text: str) -> Tuple[PathSegment, ...]:
    """
    Splits "a.b.0.c" into ("a", "b", 0, "c").

    Raises:
        TemplateSyntaxError: on an empty path or empty segment, or a segment
            containing whitespace or braces.
    """
    stripped = text.strip()
    if not stripped:
        raise TemplateSyntaxError("Empty placeholder '{{}}'.")

    segments = []
    pos = 0
    while pos < len(text):
        start = text.find(OPEN, pos)
        literal = text[pos:] if start == -1 else text[pos:start]
        stray = literal.find(CLOSE)
        if stray != -1:
            raise TemplateSyntaxError(f"Unmatched '{CLOSE}' at position {pos + stray}: '{text[:60]}'")
        if literal:
            segments.append(literal)
        if start == -1:
            break

        end = text.find(CLOSE, start + len(OPEN))
        if end == -1:
            snippet = text[start:start + 30]
            raise TemplateSyntaxError(f"Unclosed placeholder at position {start}: '{snippet}'")

        inner = text[start + len(OPEN):end]
        segments.append(Placeholder(path=parse_path(inner), source=inner.strip()))
        pos = end + len(CLOSE)

    return ParsedTemplate(segments=tuple(segments))


# ==========================================================================
# Resolution
# ==========================================================================

def resolve_path(root: Any, path: Sequence[PathSegment]) -> Any:
    """
    Walks `path` from `root`. Returns _MISSING if any segment fails to
    resolve or if the walk reaches NOT_RUN.
    """
    current = root
    for segment in path:
        current = _step_into(current, segment)
        if current is _MISSING or current is NOT_RUN:
            return _MISSING
    return current


def _step_into(value: Any, segment: PathSegment) -> Any:
    if isinstance(value, Mapping):
        if segment in value:
            return value[segment]
        if isinstance(segment, int) and str(segment) in value:
            return value[str(segment)]
        return _MISSING

    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return _MISSING

    if isinstance(value, Sequence):
        if isinstance(segment, int) and segment < len(value):
            return value[segment]
        return _MISSING

    if isinstance(segment, str) and not segment.startswith("_"):
        if isinstance(value, BaseModel):
            if segment in type(value).model_fields:
                return getattr(value, segment)
            return _MISSING
        attr = getattr(value, segment, _MISSING)
        if callable(attr):
            return _MISSING
        return attr

    return _MISSING


def to_text(value: Any) -> str:
    """Renders a resolved value into template text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(mode="json"), ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False, default=str)


def _lookup(placeholder: Placeholder, context: RunContext) -> Any:
    value = resolve_path(context.values, placeholder.path)
    if value is _MISSING:
        context.warn(
            "unresolved_placeholder",
            f"Placeholder '{placeholder}' did not resolve; rendered as empty string.",
        )
        return ""
    return value


# ==========================================================================
# Public API
# ==========================================================================

def interpolate(template: str, context: RunContext) -> str:
    """Renders every placeholder in `template` as text."""
    parsed = parse_template(template)
    parts = []
    for segment in parsed.segments:
        if isinstance(segment, Placeholder):
            parts.append(to_text(_lookup(segment, context)))
        else:
            parts.append(segment)
    return "".join(parts)


def interpolate_value(template: str, context: RunContext) -> Any:
    """
    Like interpolate(), but a template made of exactly one placeholder
    returns the raw underlying value (a dict stays a dict, 0.95 stays a float).
    """
    parsed = parse_template(template)
    if parsed.is_single_placeholder:
        return _lookup(parsed.segments[0], context)
    return interpolate(template, context)
