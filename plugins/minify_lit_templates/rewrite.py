"""
Range-based rewriting of the original text, with a v3 source map of the result.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .source import line_starts

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_vlq(value: int) -> str:
    """Base64 VLQ encoding used by source map `mappings`."""
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & 31
        vlq >>= 5
        if vlq:
            digit |= 32
        out.append(_BASE64[digit])
        if not vlq:
            return "".join(out)


@dataclass(frozen=True)
class Edit:
    """Replace original[start:end] with `replacement`; offsets are characters."""

    start: int
    end: int
    replacement: str

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Invalid range: start ({self.start}) > end ({self.end})")

    def overlaps(self, other: "Edit") -> bool:
        return not (self.end <= other.start or other.end <= self.start)


class SourceMapBuilder:
    """Collect generated -> original positions and serialize them as a v3 map."""

    def __init__(self, file_id: str, original_text: str):
        self.file_id = file_id
        self.original_text = original_text
        self._line_starts = line_starts(original_text)
        self._lines: List[List[Tuple[int, int, int]]] = [[]]

    def original_position(self, offset: int) -> Tuple[int, int]:
        """0-based (line, column) of a character offset in the original text."""
        line = bisect_right(self._line_starts, offset) - 1
        return line, offset - self._line_starts[line]

    def new_line(self) -> None:
        self._lines.append([])

    def add(self, generated_column: int, original_offset: int) -> None:
        line, column = self.original_position(original_offset)
        segments = self._lines[-1]
        # A later mapping for the same generated column supersedes the earlier one.
        if segments and segments[-1][0] == generated_column:
            segments.pop()
        segments.append((generated_column, line, column))

    def mappings(self) -> str:
        encoded_lines = []
        previous_line = previous_column = 0
        for segments in self._lines:
            previous_generated = 0
            encoded = []
            for generated_column, line, column in segments:
                encoded.append(
                    encode_vlq(generated_column - previous_generated)
                    + encode_vlq(0)
                    + encode_vlq(line - previous_line)
                    + encode_vlq(column - previous_column)
                )
                previous_generated = generated_column
                previous_line, previous_column = line, column
            encoded_lines.append(",".join(encoded))
        return ";".join(encoded_lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": 3,
            "file": self.file_id,
            "sources": [self.file_id],
            "sourcesContent": [self.original_text],
            "names": [],
            "mappings": self.mappings(),
        }


class RangeEditor:
    """Accumulate disjoint edits over one file and apply them in a single pass."""

    def __init__(self, original_text: str, file_id: str):
        self.original_text = original_text
        self.file_id = file_id
        self.edits: List[Edit] = []

    def add_edit(self, edit: Edit) -> None:
        if edit.end > len(self.original_text):
            raise ValueError(f"Edit end ({edit.end}) exceeds text length ({len(self.original_text)})")
        self.edits.append(edit)

    def _sorted_edits(self) -> List[Edit]:
        edits = sorted(self.edits, key=lambda e: e.start)
        # Templates are visited once each, so overlaps mean the traversal is broken.
        assert all(not a.overlaps(b) for a, b in zip(edits, edits[1:])), "overlapping edits"
        return edits

    def get_edit_summary(self) -> Dict[str, int]:
        removed = sum(edit.end - edit.start for edit in self.edits)
        added = sum(len(edit.replacement) for edit in self.edits)
        return {
            "edits_applied": len(self.edits),
            "chars_removed": removed,
            "chars_added": added,
            "chars_saved": removed - added,
        }

    def apply_edits(self) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return (new_text, source_map), or None when there is nothing to apply."""
        if not self.edits:
            return None

        builder = SourceMapBuilder(self.file_id, self.original_text)
        parts: List[str] = []
        column = 0

        def emit(text: str, original_offset: int, track_lines: bool) -> int:
            col = column
            builder.add(col, original_offset)
            start = 0
            newline = text.find("\n")
            while newline != -1:
                builder.new_line()
                col = 0
                start = newline + 1
                if start < len(text):
                    # Unchanged text maps line by line; replacements map to their origin.
                    builder.add(0, original_offset + start if track_lines else original_offset)
                newline = text.find("\n", start)
            parts.append(text)
            return col + len(text) - start

        cursor = 0
        for edit in self._sorted_edits():
            if edit.start > cursor:
                column = emit(self.original_text[cursor:edit.start], cursor, True)
            if edit.replacement:
                column = emit(edit.replacement, edit.start, False)
            cursor = edit.end
        if cursor < len(self.original_text):
            column = emit(self.original_text[cursor:], cursor, True)

        return "".join(parts), builder.to_dict()
