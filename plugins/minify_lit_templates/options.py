"""
Option resolution: deep-merge user settings over defaults and build the file filter.
"""

import copy
import fnmatch
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .minifiers import DEFAULT_OPTIONS
from .tags import TemplateKind

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

DEFAULT_INCLUDE: Tuple[str, ...] = (
    "*.js",
    "*.mjs",
    "*.cjs",
    "*.jsx",
    "*.ts",
    "*.mts",
    "*.cts",
    "*.tsx",
)

Patterns = Union[str, Iterable[str], None]


def is_plain_object(value: Any) -> bool:
    """True only for plain dicts; subclasses, lists and other objects are leaves."""
    return type(value) is dict


def merge_options(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Deeply merge `source` over `target` and return a new dict.

    Nested plain dicts present on both sides merge recursively. Lists, tuples,
    dates, class instances and scalars from `source` replace the target value
    wholesale. Neither input is mutated.
    """
    merged = copy.deepcopy(dict(target))

    for key, source_value in source.items():
        target_value = target.get(key)
        if is_plain_object(source_value) and key in target and is_plain_object(target_value):
            merged[key] = merge_options(target_value, source_value)
        else:
            merged[key] = copy.deepcopy(source_value)

    return merged


def normalize_patterns(patterns: Patterns) -> Tuple[str, ...]:
    """Accept a single glob or a list of globs."""
    if not patterns:
        return ()
    if isinstance(patterns, str):
        return (patterns,)
    return tuple(patterns)


def normalize_file_id(file_id: str) -> str:
    file_id = file_id.replace("\\", "/")
    while file_id.startswith("./"):
        file_id = file_id[2:]
    return file_id


@dataclass(frozen=True)
class ResolvedOptions:
    """Session-wide settings; built once and shared read-only across files."""

    include: Tuple[str, ...]
    exclude: Tuple[str, ...]
    html: Mapping[str, Any]
    css: Mapping[str, Any]

    def minifier_options(self, kind: TemplateKind) -> Mapping[str, Any]:
        return self.html if kind is TemplateKind.HTML else self.css

    def is_eligible(self, file_id: str) -> bool:
        """A file qualifies when it matches an include glob and no exclude glob."""
        path = normalize_file_id(file_id)
        if not any(fnmatch.fnmatch(path, pattern) for pattern in self.include):
            return False
        return not any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude)


def _resolve_minifier_options(kind: TemplateKind, selected: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    defaults = DEFAULT_OPTIONS[kind]
    merged = merge_options(defaults, selected or {})
    for key in list(merged):
        if key not in defaults:
            logger.warning("%s minifier option '%s' not recognized", kind.value, key)
            del merged[key]
    return MappingProxyType(merged)


def resolve_options(
    include: Patterns = DEFAULT_INCLUDE,
    exclude: Patterns = None,
    html_options: Optional[Mapping[str, Any]] = None,
    css_options: Optional[Mapping[str, Any]] = None,
) -> ResolvedOptions:
    return ResolvedOptions(
        include=normalize_patterns(include),
        exclude=normalize_patterns(exclude),
        html=_resolve_minifier_options(TemplateKind.HTML, html_options),
        css=_resolve_minifier_options(TemplateKind.CSS, css_options),
    )
