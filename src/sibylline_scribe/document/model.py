"""Editable rich-text document tree with ProseMirror-style positions.

Positions count every character of a text node as 1, every inline leaf
(hard break, image) as 1, and every block node as its content plus 2 (one
for entering, one for leaving). The first character of the first paragraph
therefore sits at offset 1.

The *plain-text projection* flattens the tree: textblocks are joined by a
block separator and hard breaks become ``"\\n"``. It is the unit sent to the
analysis service, and :meth:`RichDocument.iter_projection` pairs each of its
characters with the document offset it came from.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from ..errors import InputValidationError

DEFAULT_BLOCK_SEPARATOR = "\n\n"

TEXTBLOCK_TYPES = frozenset({"paragraph", "heading", "code_block"})
CONTAINER_TYPES = frozenset({"blockquote", "bullet_list", "ordered_list", "list_item"})
INLINE_LEAF_TYPES = frozenset({"hard_break", "image"})

# Text emitted into the projection for inline leaves
LEAF_TEXT: dict[str, str] = {"hard_break": "\n", "image": ""}


@dataclass(frozen=True, slots=True)
class Mark:
    """Inline formatting applied to a text node."""

    type: str
    attrs: tuple[tuple[str, str], ...] = ()

    def attr(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.attrs:
            if key == name:
                return value
        return default


@dataclass(slots=True)
class Node:
    """A single node of the document tree."""

    type: str
    content: list[Node] = field(default_factory=list)
    text: str = ""
    marks: tuple[Mark, ...] = ()
    attrs: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def text_node(text: str, marks: tuple[Mark, ...] = ()) -> Node:
        return Node(type="text", text=text, marks=marks)

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    @property
    def is_leaf(self) -> bool:
        return self.type in INLINE_LEAF_TYPES

    @property
    def is_textblock(self) -> bool:
        return self.type in TEXTBLOCK_TYPES

    @property
    def is_block(self) -> bool:
        return self.type in TEXTBLOCK_TYPES or self.type in CONTAINER_TYPES

    @property
    def node_size(self) -> int:
        if self.is_text:
            return len(self.text)
        if self.is_leaf:
            return 1
        return 2 + sum(child.node_size for child in self.content)

    def copy(self) -> Node:
        return Node(
            type=self.type,
            content=[child.copy() for child in self.content],
            text=self.text,
            marks=self.marks,
            attrs=dict(self.attrs),
        )


class _Projector:
    """Walks a node list and yields ``(char, offset)`` pairs in projection order.

    ``offset`` is the document position of a text character, or ``None`` for
    characters that have no text counterpart in the document (block
    separators and leaf text such as hard breaks).
    """

    __slots__ = ("start", "end", "separator", "separated")

    def __init__(self, start: int, end: int, separator: str) -> None:
        self.start = start
        self.end = end
        self.separator = separator
        self.separated = True

    def walk(self, nodes: list[Node], base: int) -> Iterator[tuple[str, int | None]]:
        pos = base
        for node in nodes:
            node_end = pos + node.node_size
            if node_end <= self.start:
                pos = node_end
                continue
            if pos >= self.end:
                break

            if node.is_text:
                lo = max(self.start, pos) - pos
                hi = min(self.end, node_end) - pos
                for i in range(lo, hi):
                    yield node.text[i], pos + i
                if hi > lo:
                    self.separated = not self.separator
            elif node.is_leaf:
                leaf_text = LEAF_TEXT.get(node.type, "")
                for ch in leaf_text:
                    yield ch, None
                self.separated = not self.separator
            else:
                if not self.separated:
                    for ch in self.separator:
                        yield ch, None
                    self.separated = True
                yield from self.walk(node.content, pos + 1)

            pos = node_end


class RichDocument:
    """A rich-text document: an ordered list of top-level block nodes."""

    __slots__ = ("blocks",)

    def __init__(self, blocks: list[Node] | None = None) -> None:
        self.blocks = blocks if blocks is not None else []

    # ------------------------------------------------------------------
    # Construction / serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_html(cls, html: str) -> RichDocument:
        from .html import parse_html

        return cls(parse_html(html))

    @classmethod
    def from_text(cls, text: str) -> RichDocument:
        """Build a document with one paragraph per ``\\n\\n``-separated chunk."""
        blocks = []
        for chunk in text.split(DEFAULT_BLOCK_SEPARATOR):
            para = Node(type="paragraph")
            lines = chunk.split("\n")
            for i, line in enumerate(lines):
                if i:
                    para.content.append(Node(type="hard_break"))
                if line:
                    para.content.append(Node.text_node(line))
            blocks.append(para)
        return cls(blocks)

    def to_html(self) -> str:
        from .html import serialize_html

        return serialize_html(self)

    def copy(self) -> RichDocument:
        return RichDocument([block.copy() for block in self.blocks])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RichDocument):
            return NotImplemented
        return self.to_html() == other.to_html()

    def __repr__(self) -> str:
        return f"RichDocument({self.to_html()!r})"

    # ------------------------------------------------------------------
    # Positions and text
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return sum(block.node_size for block in self.blocks)

    def iter_projection(
        self,
        start: int = 0,
        end: int | None = None,
        block_separator: str = DEFAULT_BLOCK_SEPARATOR,
    ) -> Iterator[tuple[str, int | None]]:
        """Yield ``(char, doc_offset | None)`` for the projection of ``[start, end)``."""
        if end is None:
            end = self.size
        projector = _Projector(start, end, block_separator)
        yield from projector.walk(self.blocks, 0)

    def text_between(
        self,
        start: int,
        end: int,
        block_separator: str = DEFAULT_BLOCK_SEPARATOR,
    ) -> str:
        """Plain-text projection of the document range ``[start, end)``."""
        return "".join(ch for ch, _ in self.iter_projection(start, end, block_separator))

    def plain_text(self, block_separator: str = DEFAULT_BLOCK_SEPARATOR) -> str:
        return self.text_between(0, self.size, block_separator)

    def text_runs(self) -> Iterator[tuple[int, str]]:
        """Yield ``(doc_offset, text)`` for maximal runs of contiguous text characters.

        Adjacent text nodes with different marks form a single run because
        their characters occupy consecutive positions. Any non-text node
        (leaf or block boundary) ends the current run.
        """
        run_start: int | None = None
        parts: list[str] = []

        def flush():
            nonlocal run_start, parts
            if run_start is not None and parts:
                yield run_start, "".join(parts)
            run_start = None
            parts = []

        def walk(nodes: list[Node], base: int):
            nonlocal run_start
            pos = base
            for node in nodes:
                if node.is_text:
                    if run_start is None:
                        run_start = pos
                    parts.append(node.text)
                else:
                    yield from flush()
                    if not node.is_leaf:
                        yield from walk(node.content, pos + 1)
                        yield from flush()
                pos += node.node_size

        yield from walk(self.blocks, 0)
        yield from flush()

    def word_count(self) -> int:
        return len(self.plain_text().split())

    def character_count(self) -> int:
        """Character count with markup stripped and no block separators."""
        return len(self.plain_text(block_separator=""))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _find_textblock(self, start: int, end: int) -> tuple[Node, int] | None:
        """Return ``(textblock, content_start)`` whose content contains ``[start, end]``."""

        def walk(nodes: list[Node], base: int):
            pos = base
            for node in nodes:
                node_end = pos + node.node_size
                if node.is_textblock:
                    content_start = pos + 1
                    content_end = node_end - 1
                    if content_start <= start and end <= content_end:
                        return node, content_start
                elif node.is_block and pos < start and end < node_end:
                    found = walk(node.content, pos + 1)
                    if found is not None:
                        return found
                pos = node_end
            return None

        return walk(self.blocks, 0)

    def replace_range(self, start: int, end: int, text: str) -> None:
        """Replace the document range ``[start, end)`` with plain *text*.

        The range must lie inside a single textblock. The inserted text
        inherits the marks of the character at *start* (or the one just
        before it when inserting at the end of a text node).

        Raises:
            InputValidationError: If the range is inverted, out of bounds,
                or crosses textblock boundaries.
        """
        if start < 0 or end < start or end > self.size:
            raise InputValidationError(f"Invalid range [{start}, {end}) for size {self.size}")

        found = self._find_textblock(start, end)
        if found is None:
            raise InputValidationError(
                f"Range [{start}, {end}) does not lie inside a single textblock"
            )
        block, content_start = found

        # Flatten inline content into per-position atoms
        atoms: list[tuple[str, tuple[Mark, ...]] | Node] = []
        for child in block.content:
            if child.is_text:
                atoms.extend((ch, child.marks) for ch in child.text)
            else:
                atoms.append(child)

        lo = start - content_start
        hi = end - content_start

        marks: tuple[Mark, ...] = ()
        for probe in (lo, lo - 1):
            if 0 <= probe < len(atoms) and isinstance(atoms[probe], tuple):
                marks = atoms[probe][1]
                break

        atoms[lo:hi] = [(ch, marks) for ch in text]
        block.content = _regroup(atoms)


def _regroup(atoms: list) -> list[Node]:
    """Merge consecutive character atoms with equal marks into text nodes."""
    nodes: list[Node] = []
    buf: list[str] = []
    buf_marks: tuple[Mark, ...] | None = None

    for atom in atoms:
        if isinstance(atom, tuple):
            ch, marks = atom
            if buf and marks != buf_marks:
                nodes.append(Node.text_node("".join(buf), buf_marks or ()))
                buf = []
            buf.append(ch)
            buf_marks = marks
        else:
            if buf:
                nodes.append(Node.text_node("".join(buf), buf_marks or ()))
                buf = []
            nodes.append(atom)

    if buf:
        nodes.append(Node.text_node("".join(buf), buf_marks or ()))
    return nodes
