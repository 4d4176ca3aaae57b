"""
Tree-sitter front end: parse JS/TS source and translate byte offsets into text positions.
"""

from bisect import bisect_right
from enum import Enum
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Tree

# Extensions parsed with the plain TypeScript grammar; everything else goes through TSX,
# which also accepts JavaScript and JSX.
TYPESCRIPT_EXTENSIONS: Tuple[str, ...] = (".ts", ".mts", ".cts")

# Characters per checkpoint in the byte-to-character offset index.
OFFSET_STRIDE = 1024


class Dialect(Enum):
    TYPESCRIPT = "typescript"
    TSX = "tsx"


class SourceParseError(Exception):
    """Raised when the source text does not parse cleanly."""

    def __init__(self, message: str, line: int, column: int) -> None:
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at {line}:{column}")


def dialect_for(file_id: str) -> Dialect:
    """Pick the grammar for a file from its extension."""
    if file_id.lower().endswith(TYPESCRIPT_EXTENSIONS):
        return Dialect.TYPESCRIPT
    return Dialect.TSX


@lru_cache(maxsize=None)
def _language(dialect: Dialect) -> Language:
    if dialect is Dialect.TYPESCRIPT:
        return Language(tsts.language_typescript())
    return Language(tsts.language_tsx())


class ParsedSource:
    """A parsed document with helpers to read node text by character position.

    Tree-sitter reports UTF-8 byte offsets; edits are applied to the decoded
    `str`, so every offset handed out here is a character offset.
    """

    def __init__(self, text: str, tree: Tree):
        self.text = text
        self.tree = tree
        self._text_bytes = text.encode("utf8")
        self._ascii = len(self._text_bytes) == len(text)
        self._line_starts: Optional[List[int]] = None
        self._byte_checkpoints: Optional[List[int]] = None

    @property
    def root_node(self) -> Node:
        return self.tree.root_node

    def char_offset(self, byte_pos: int) -> int:
        """Convert a byte offset from the tree into a character offset."""
        if self._ascii:
            return byte_pos
        if byte_pos <= 0:
            return 0
        if byte_pos >= len(self._text_bytes):
            return len(self.text)
        checkpoints = self._offset_index()
        block = bisect_right(checkpoints, byte_pos) - 1
        # A position inside a multi-byte character resolves to the start of that character.
        tail = self._text_bytes[checkpoints[block]:byte_pos].decode("utf8", errors="ignore")
        return block * OFFSET_STRIDE + len(tail)

    def _offset_index(self) -> List[int]:
        """Byte offset of every OFFSET_STRIDE-th character, built once per document."""
        if self._byte_checkpoints is None:
            checkpoints = [0]
            for start in range(OFFSET_STRIDE, len(self.text), OFFSET_STRIDE):
                chunk = self.text[start - OFFSET_STRIDE:start]
                checkpoints.append(checkpoints[-1] + len(chunk.encode("utf8")))
            self._byte_checkpoints = checkpoints
        return self._byte_checkpoints

    def node_range(self, node: Node) -> Tuple[int, int]:
        return self.char_offset(node.start_byte), self.char_offset(node.end_byte)

    def node_text(self, node: Node) -> str:
        return self._text_bytes[node.start_byte:node.end_byte].decode("utf8")

    def position(self, offset: int) -> Tuple[int, int]:
        """Return the 1-based (line, column) of a character offset."""
        if self._line_starts is None:
            self._line_starts = line_starts(self.text)
        line = bisect_right(self._line_starts, offset) - 1
        return line + 1, offset - self._line_starts[line] + 1

    def walk(self) -> Iterator[Node]:
        """Yield every node in document order without recursion."""
        stack = [self.root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def first_error(self) -> Optional[Node]:
        for node in self.walk():
            if node.type == "ERROR" or node.is_missing:
                return node
        return None


def line_starts(text: str) -> List[int]:
    """Character offsets at which each line of `text` begins."""
    starts = [0]
    index = text.find("\n")
    while index != -1:
        starts.append(index + 1)
        index = text.find("\n", index + 1)
    return starts


def parse(text: str, dialect: Dialect = Dialect.TSX) -> ParsedSource:
    """Parse `text` with the grammar for `dialect`.

    Tree-sitter always produces a tree; a tree carrying ERROR or MISSING nodes
    is reported as a SourceParseError pointing at the first offending node.
    """
    parser = Parser(_language(dialect))
    tree = parser.parse(text.encode("utf8"))
    parsed = ParsedSource(text, tree)

    if parsed.root_node.has_error:
        node = parsed.first_error()
        offset = parsed.char_offset(node.start_byte) if node is not None else 0
        line, column = parsed.position(offset)
        if node is not None and node.is_missing:
            message = f"syntax error: missing {node.type!r}"
        else:
            message = "syntax error: unexpected input"
        raise SourceParseError(message, line, column)

    return parsed
