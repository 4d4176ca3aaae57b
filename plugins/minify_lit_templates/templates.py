"""
Split template literals into literal segments and interpolations, and swap the
interpolations for placeholder tokens the minifiers leave alone.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Tuple

from tree_sitter import Node

from .source import ParsedSource
from .tags import TemplateKind

# Tokens look like `__LIT_EXPRESSION_0__`. The prefix is assumed never to occur in
# real markup; encode() checks that assumption for every template it sees.
PLACEHOLDER_PREFIX = "__LIT_EXPRESSION_"
PLACEHOLDER_SUFFIX = "__"

PlaceholderMap = Mapping[int, str]


class SpanResolutionError(Exception):
    """The boundaries of a template or one of its interpolations are unavailable."""


class PlaceholderError(Exception):
    """A placeholder collides with the markup or did not survive minification."""


@dataclass(frozen=True)
class TemplateNode:
    """A markup-bearing template literal, backtick to backtick."""

    start: int
    end: int
    kind: TemplateKind
    segments: Tuple[str, ...]
    interpolations: Tuple[Tuple[int, int], ...]

    def __post_init__(self):
        if len(self.segments) != len(self.interpolations) + 1:
            raise ValueError(
                f"{len(self.segments)} segments cannot surround {len(self.interpolations)} interpolations"
            )


def placeholder(index: int) -> str:
    return f"{PLACEHOLDER_PREFIX}{index}{PLACEHOLDER_SUFFIX}"


def _delimiters(substitution: Node) -> Tuple[Node, Node]:
    children = substitution.children
    if len(children) < 2:
        raise SpanResolutionError("interpolation has no delimiters")
    opening, closing = children[0], children[-1]
    if opening.type != "${" or closing.type != "}" or opening.is_missing or closing.is_missing:
        raise SpanResolutionError("interpolation delimiters are incomplete")
    return opening, closing


def decompose(template: Node, kind: TemplateKind, source: ParsedSource) -> TemplateNode:
    """Break a `template_string` node into raw segments and interpolation spans.

    Segments are the raw text exactly as written (escape sequences untouched);
    interpolation spans cover the expression source between `${` and `}`.
    Raises SpanResolutionError when any boundary cannot be located.
    """
    children = template.children
    if template.type != "template_string" or len(children) < 2:
        raise SpanResolutionError(f"not a template literal: {template.type}")

    opening, closing = children[0], children[-1]
    if opening.type != "`" or closing.type != "`" or closing.is_missing:
        raise SpanResolutionError("template literal is not closed")

    text = source.text
    segments: List[str] = []
    interpolations: List[Tuple[int, int]] = []
    cursor = source.char_offset(opening.end_byte)

    for child in children:
        if child.type != "template_substitution":
            continue
        dollar_brace, close_brace = _delimiters(child)
        segments.append(text[cursor:source.char_offset(child.start_byte)])
        interpolations.append(
            (source.char_offset(dollar_brace.end_byte), source.char_offset(close_brace.start_byte))
        )
        cursor = source.char_offset(child.end_byte)

    segments.append(text[cursor:source.char_offset(closing.start_byte)])

    start, end = source.node_range(template)
    return TemplateNode(start, end, kind, tuple(segments), tuple(interpolations))


def build_placeholder_map(template: TemplateNode, text: str) -> PlaceholderMap:
    """Capture each interpolation's raw source, keyed by its index."""
    return MappingProxyType(
        {index: text[start:end] for index, (start, end) in enumerate(template.interpolations)}
    )


def encode(segments: Tuple[str, ...], placeholders: PlaceholderMap) -> str:
    """Interleave the segments with one placeholder token per interpolation."""
    if len(segments) != len(placeholders) + 1:
        raise ValueError("segments and placeholders are out of step")

    for segment in segments:
        if PLACEHOLDER_PREFIX in segment:
            raise PlaceholderError(f"template already contains {PLACEHOLDER_PREFIX!r}")

    parts = [segments[0]]
    for index, segment in enumerate(segments[1:]):
        parts.append(placeholder(index))
        parts.append(segment)
    return "".join(parts)


def ensure_embeddable(minified: str) -> None:
    """Check that minified text can sit between backticks as raw template text.

    A bare backtick or `${` would end the literal or open a new interpolation,
    a backslash right before a token would escape the restored `${`, and a
    trailing backslash would escape the closing backtick.
    """
    index = 0
    length = len(minified)
    while index < length:
        char = minified[index]
        if char == "\\":
            if index + 1 >= length:
                raise PlaceholderError("minified text ends with a dangling backslash")
            if minified.startswith(PLACEHOLDER_PREFIX, index + 1):
                raise PlaceholderError("backslash precedes a placeholder")
            index += 2
            continue
        if char == "`":
            raise PlaceholderError(f"unescaped backtick at offset {index}")
        if char == "$" and minified.startswith("{", index + 1):
            raise PlaceholderError(f"unescaped '${{' at offset {index}")
        index += 1


def decode(minified: str, placeholders: PlaceholderMap) -> str:
    """Replace every placeholder token with `${<original source>}`.

    Each token has to appear exactly once. All tokens are located before any
    replacement happens, so interpolation source that looks like a token is
    never scanned again.
    """
    found: List[Tuple[int, int]] = []
    for index in placeholders:
        token = placeholder(index)
        position = minified.find(token)
        if position == -1:
            raise PlaceholderError(f"{token} missing from minified output")
        if minified.find(token, position + len(token)) != -1:
            raise PlaceholderError(f"{token} appears more than once in minified output")
        found.append((position, index))

    found.sort()
    parts: List[str] = []
    cursor = 0
    for position, index in found:
        if position < cursor:
            raise PlaceholderError(f"{placeholder(index)} overlaps another placeholder")
        parts.append(minified[cursor:position])
        parts.append("${" + placeholders[index] + "}")
        cursor = position + len(placeholder(index))
    parts.append(minified[cursor:])
    return "".join(parts)
