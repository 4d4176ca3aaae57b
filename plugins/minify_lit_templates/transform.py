"""
Minify the markup inside tagged template literals of one source file.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from tree_sitter import Node

from .minifiers import is_blocking, minify
from .options import ResolvedOptions, resolve_options
from .rewrite import Edit, RangeEditor
from .source import ParsedSource, SourceParseError, dialect_for, parse
from .tags import TemplateKind, classify_tag
from .templates import (
    PlaceholderError,
    SpanResolutionError,
    build_placeholder_map,
    decode,
    decompose,
    encode,
    ensure_embeddable,
)

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")


@dataclass(frozen=True)
class TransformResult:
    code: str
    map: Dict[str, Any]
    stats: Dict[str, int] = field(default_factory=dict)


class TemplateMinifier:
    """Rewrites one file at a time; holds nothing but read-only options.

    Per template: classify the tag, decompose the literal, swap interpolations
    for placeholders, minify, restore the interpolations and record an edit.
    Any failure along the way leaves that template as written.
    """

    def __init__(self, options: Optional[ResolvedOptions] = None, debug: bool = False):
        self.options = options if options is not None else resolve_options()
        self.debug = debug

    def _dbg(self, msg: str, *args) -> None:
        """Debug log gated by the `debug` option."""
        if not self.debug:
            return

        logger.debug("[minify_lit_templates] " + msg, *args)

    @staticmethod
    def candidates(parsed: ParsedSource) -> Iterator[Tuple[Node, TemplateKind]]:
        """Yield markup-bearing template literals in document order.

        The search does not descend into a markup template, so templates nested
        in its interpolations stay part of the interpolation source.
        """
        stack = [parsed.root_node]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                arguments = node.child_by_field_name("arguments")
                if arguments is not None and arguments.type == "template_string":
                    kind = classify_tag(node.child_by_field_name("function"))
                    if kind is not None:
                        yield arguments, kind
                        continue
            stack.extend(reversed(node.children))

    def minify_template(self, node: Node, kind: TemplateKind, parsed: ParsedSource) -> Optional[Edit]:
        """Return the edit for one template literal, or None to leave it untouched."""
        try:
            template = decompose(node, kind, parsed)
        except SpanResolutionError as e:
            self._dbg("skip template at %d:%d: %s", *parsed.position(parsed.char_offset(node.start_byte)), e)
            return None

        where = "%d:%d" % parsed.position(template.start)
        placeholders = build_placeholder_map(template, parsed.text)

        try:
            text = encode(template.segments, placeholders)
        except PlaceholderError as e:
            self._dbg("skip %s template at %s: %s", kind.value, where, e)
            return None

        outcome = minify(kind, text, self.options.minifier_options(kind))
        if is_blocking(kind, outcome):
            self._dbg(
                "skip %s template at %s: errors=%s warnings=%s",
                kind.value,
                where,
                list(outcome.errors),
                list(outcome.warnings),
            )
            return None

        try:
            ensure_embeddable(outcome.code)
            body = decode(outcome.code, placeholders)
        except PlaceholderError as e:
            self._dbg("skip %s template at %s: %s", kind.value, where, e)
            return None

        replacement = f"`{body}`"
        if len(replacement) >= template.end - template.start:
            self._dbg("keep %s template at %s: no size reduction", kind.value, where)
            return None

        return Edit(template.start, template.end, replacement)

    def transform(self, code: str, file_id: str) -> Optional[TransformResult]:
        """Minify every markup template in `code`.

        Returns None when nothing changed, including when the file does not
        parse; a parse failure is logged and the caller keeps its text.
        """
        try:
            parsed = parse(code, dialect_for(file_id))
        except SourceParseError as e:
            logger.error("[minify_lit_templates] cannot parse %s: %s", file_id, e)
            return None

        editor = RangeEditor(code, file_id)
        for node, kind in self.candidates(parsed):
            edit = self.minify_template(node, kind, parsed)
            if edit is not None:
                editor.add_edit(edit)

        applied = editor.apply_edits()
        if applied is None:
            self._dbg("%s unchanged", file_id)
            return None

        new_code, source_map = applied
        stats = editor.get_edit_summary()
        self._dbg("%s: %d templates rewritten, %d chars saved", file_id, stats["edits_applied"], stats["chars_saved"])
        return TransformResult(new_code, source_map, stats)
