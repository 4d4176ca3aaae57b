"""
Minifier adapters for the markup kinds found in tagged templates.

Each adapter returns a MinifyOutcome instead of raising, so the caller can
apply one policy: a node whose outcome is blocking keeps its original text.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

import csscompressor
import htmlmin
from packaging import version

from .tags import TemplateKind
from .templates import PLACEHOLDER_PREFIX

# htmlmin defaults for template fragments. Whitespace between elements collapses
# to one space and is never dropped. Attribute quotes and character references
# are kept as written so bound values stay intact.
HTML_DEFAULTS: Dict[str, Any] = {
    "remove_comments": True,
    "remove_empty_space": False,
    "remove_all_empty_space": False,
    "reduce_empty_attributes": False,
    "reduce_boolean_attributes": False,
    "remove_optional_attribute_quotes": False,
    "convert_charrefs": False,
    "keep_pre": False,
    "pre_tags": ("pre", "textarea"),
    "pre_attr": "pre",
}

CSS_DEFAULTS: Dict[str, Any] = {
    "max_linelen": 0,
    "preserve_exclamation_comments": True,
}

DEFAULT_OPTIONS: Dict[TemplateKind, Dict[str, Any]] = {
    TemplateKind.HTML: HTML_DEFAULTS,
    TemplateKind.CSS: CSS_DEFAULTS,
}

# Compatibility: csscompressor<=0.9.5. Preserve whitespace in url() to avoid breaking SVG data URIs.
if version.parse(csscompressor.__version__) <= version.parse("0.9.5"):
    # See https://github.com/sprymix/csscompressor/issues/9#issuecomment-1024417374
    _preserve_call_tokens_original = csscompressor._preserve_call_tokens
    _url_re = csscompressor._url_re

    def _preserve_url_whitespace(*args, **kwargs):
        """Switch remove_ws off for url() tokens so embedded SVG survives."""
        if _url_re == args[1]:
            kwargs["remove_ws"] = False
        return _preserve_call_tokens_original(*args, **kwargs)

    csscompressor._preserve_call_tokens = _preserve_url_whitespace

_TAG_RE = re.compile(r"<(?P<name>[A-Za-z][^\s/>]*)(?P<attrs>[^<>]*)>")
_ATTR_RE = re.compile(
    r"""(?P<name>[^\s"'>/=]+)(?:\s*=\s*(?P<value>"[^"]*"|'[^']*'|[^\s"'>]+))?"""
)
_BINDING_PREFIXES = (".", "@", "?")


@dataclass(frozen=True)
class MinifyOutcome:
    code: str
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


def case_sensitive_bindings(text: str) -> List[str]:
    """Return bound attribute names whose case htmlmin would fold.

    htmlmin lowercases attribute names. That is harmless for plain HTML, but
    the template runtime reads binding names (`.prop`, `@event`, `?attr`, or
    any attribute whose value holds a placeholder) straight from the literal.
    """
    names: List[str] = []
    for tag in _TAG_RE.finditer(text):
        for attr in _ATTR_RE.finditer(tag.group("attrs")):
            name = attr.group("name")
            if name == name.lower():
                continue
            value = attr.group("value") or ""
            if name.startswith(_BINDING_PREFIXES) or PLACEHOLDER_PREFIX in value:
                names.append(name)
    return names


def minify_html(text: str, options: Mapping[str, Any]) -> MinifyOutcome:
    bindings = case_sensitive_bindings(text)
    if bindings:
        return MinifyOutcome(
            text,
            errors=tuple(f"attribute name {name!r} would be lowercased" for name in bindings),
        )

    try:
        return MinifyOutcome(htmlmin.minify(text, **options))
    except Exception as e:
        return MinifyOutcome(text, errors=(f"htmlmin: {type(e).__name__}: {e}",))


def css_structure_warnings(text: str) -> List[str]:
    """Scan CSS for unterminated comments and strings and unbalanced brackets.

    csscompressor never complains about broken input; it quietly rewrites it.
    """
    warnings: List[str] = []
    closers = {"{": "}", "(": ")", "[": "]"}
    stack: List[Tuple[str, int]] = []
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if text.startswith("/*", index):
            end = text.find("*/", index + 2)
            if end == -1:
                warnings.append(f"unterminated comment at offset {index}")
                break
            index = end + 2
            continue
        if char in "\"'":
            end = index + 1
            while end < length and text[end] != char and text[end] != "\n":
                end += 2 if text[end] == "\\" else 1
            if end >= length or text[end] != char:
                warnings.append(f"unterminated string at offset {index}")
                break
            index = end + 1
            continue
        if char in closers:
            stack.append((char, index))
        elif char in closers.values():
            if not stack or closers[stack[-1][0]] != char:
                warnings.append(f"unexpected {char!r} at offset {index}")
            else:
                stack.pop()
        index += 1

    for opener, position in stack:
        warnings.append(f"unclosed {opener!r} at offset {position}")
    return warnings


def minify_css(text: str, options: Mapping[str, Any]) -> MinifyOutcome:
    warnings = css_structure_warnings(text)
    if warnings:
        return MinifyOutcome(text, warnings=tuple(warnings))

    try:
        return MinifyOutcome(csscompressor.compress(text, **options))
    except Exception as e:
        return MinifyOutcome(text, errors=(f"csscompressor: {type(e).__name__}: {e}",))


# Minifier dispatch table, one adapter per markup kind.
MINIFIERS: Dict[TemplateKind, Callable[[str, Mapping[str, Any]], MinifyOutcome]] = {
    TemplateKind.HTML: minify_html,
    TemplateKind.CSS: minify_css,
}


def minify(kind: TemplateKind, text: str, options: Mapping[str, Any]) -> MinifyOutcome:
    return MINIFIERS[kind](text, options)


def is_blocking(kind: TemplateKind, outcome: MinifyOutcome) -> bool:
    """Errors block every kind; CSS warnings block as well."""
    if outcome.errors:
        return True
    return kind is TemplateKind.CSS and bool(outcome.warnings)
