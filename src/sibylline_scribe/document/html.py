"""HTML parsing and serialization for :class:`RichDocument`.

Parsing accepts the HTML an editor emits (``<p>``, headings, lists,
blockquotes, ``<pre>``, inline formatting tags, ``<br>``, ``<img>``) and is
lenient about everything else: unknown inline tags are transparent, unknown
block wrappers (``<div>``, ``<section>``) are flattened, and bare top-level
text is wrapped in a paragraph.

Serialization can optionally apply decorations, wrapping decorated text in
``<span>`` elements split at decoration boundaries.
"""

from __future__ import annotations

import html as _html
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag

from .model import Mark, Node, RichDocument

if TYPE_CHECKING:
    from ..analysis.decorations import Decoration


_BLOCK_TAGS: dict[str, str] = {
    "p": "paragraph",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "pre": "code_block",
    "blockquote": "blockquote",
    "ul": "bullet_list",
    "ol": "ordered_list",
    "li": "list_item",
}

_MARK_TAGS: dict[str, str] = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "s": "strike",
    "strike": "strike",
    "del": "strike",
    "code": "code",
    "a": "link",
    "mark": "highlight",
}

_TRANSPARENT_BLOCKS = frozenset({"div", "section", "article", "main", "body", "html"})
_SKIPPED_TAGS = frozenset({"script", "style", "head", "title"})

_BLOCK_HTML: dict[str, str] = {
    "paragraph": "p",
    "blockquote": "blockquote",
    "bullet_list": "ul",
    "ordered_list": "ol",
    "list_item": "li",
}

_MARK_HTML: dict[str, str] = {
    "bold": "strong",
    "italic": "em",
    "underline": "u",
    "strike": "s",
    "code": "code",
    "highlight": "mark",
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_html(markup: str) -> list[Node]:
    """Parse editor HTML into a list of top-level block nodes."""
    soup = BeautifulSoup(markup or "", "html.parser")
    return _parse_blocks(soup.contents)


def _is_ignorable(el: object) -> bool:
    return isinstance(el, (Comment, Doctype))


def _parse_blocks(elements: Iterable) -> list[Node]:
    blocks: list[Node] = []
    pending: list[Node] = []

    def flush() -> None:
        if any(n.is_leaf or n.text.strip() for n in pending):
            blocks.append(Node(type="paragraph", content=_merge_text(pending)))
        pending.clear()

    for el in elements:
        if _is_ignorable(el):
            continue
        if isinstance(el, NavigableString):
            pending.extend(_parse_inline([el], ()))
            continue
        if not isinstance(el, Tag):
            continue

        name = el.name.lower()
        if name in _SKIPPED_TAGS:
            continue
        if name in _BLOCK_TAGS:
            flush()
            blocks.append(_parse_block(el, name))
        elif name in _TRANSPARENT_BLOCKS:
            flush()
            blocks.extend(_parse_blocks(el.contents))
        else:
            pending.extend(_parse_inline([el], ()))

    flush()
    return blocks


def _parse_block(el: Tag, name: str) -> Node:
    node_type = _BLOCK_TAGS[name]
    node = Node(type=node_type)

    if node.is_textblock:
        node.content = _merge_text(_parse_inline(el.contents, (), in_pre=name == "pre"))
        if node_type == "heading":
            node.attrs["level"] = name[1]
    else:
        node.content = _parse_blocks(el.contents)
    return node


def _parse_inline(
    elements: Iterable,
    marks: tuple[Mark, ...],
    in_pre: bool = False,
) -> list[Node]:
    out: list[Node] = []

    for el in elements:
        if _is_ignorable(el):
            continue
        if isinstance(el, NavigableString):
            text = str(el)
            if text:
                out.append(Node.text_node(text, marks))
            continue
        if not isinstance(el, Tag):
            continue

        name = el.name.lower()
        if name in _SKIPPED_TAGS:
            continue
        if name == "br":
            out.append(Node(type="hard_break"))
        elif name == "img":
            out.append(
                Node(
                    type="image",
                    attrs={"src": el.get("src", ""), "alt": el.get("alt", "")},
                )
            )
        elif name in _MARK_TAGS and not (in_pre and name == "code"):
            attrs = (("href", el.get("href", "")),) if name == "a" else ()
            mark = Mark(type=_MARK_TAGS[name], attrs=attrs)
            child_marks = marks if mark in marks else marks + (mark,)
            out.extend(_parse_inline(el.contents, child_marks, in_pre))
        else:
            out.extend(_parse_inline(el.contents, marks, in_pre))

    return out


def _merge_text(nodes: list[Node]) -> list[Node]:
    """Join adjacent text nodes that carry identical marks."""
    merged: list[Node] = []
    for node in nodes:
        if node.is_text and not node.text:
            continue
        if node.is_text and merged and merged[-1].is_text and merged[-1].marks == node.marks:
            merged[-1] = Node.text_node(merged[-1].text + node.text, node.marks)
        else:
            merged.append(node)
    return merged


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_html(
    document: RichDocument,
    decorations: Sequence[Decoration] | None = None,
) -> str:
    """Serialize *document* to HTML, optionally wrapping decorated ranges."""
    decos = list(decorations or ())
    parts: list[str] = []
    pos = 0
    for block in document.blocks:
        parts.append(_block_html(block, pos, decos))
        pos += block.node_size
    return "".join(parts)


def _block_html(node: Node, pos: int, decos: list[Decoration]) -> str:
    if node.is_textblock:
        inner = _inline_html(node.content, pos + 1, decos)
        if node.type == "heading":
            level = node.attrs.get("level", "1")
            return f"<h{level}>{inner}</h{level}>"
        if node.type == "code_block":
            return f"<pre><code>{inner}</code></pre>"
        return f"<p>{inner}</p>"

    tag = _BLOCK_HTML.get(node.type, "div")
    parts: list[str] = []
    child_pos = pos + 1
    for child in node.content:
        parts.append(_block_html(child, child_pos, decos))
        child_pos += child.node_size
    return f"<{tag}>{''.join(parts)}</{tag}>"


def _inline_html(nodes: list[Node], pos: int, decos: list[Decoration]) -> str:
    parts: list[str] = []
    for node in nodes:
        if node.is_text:
            parts.append(_text_html(node, pos, decos))
        elif node.type == "hard_break":
            parts.append("<br>")
        elif node.type == "image":
            src = _html.escape(node.attrs.get("src", ""))
            alt = _html.escape(node.attrs.get("alt", ""))
            parts.append(f'<img src="{src}" alt="{alt}">')
        pos += node.node_size
    return "".join(parts)


def _wrap_marks(text: str, marks: tuple[Mark, ...]) -> str:
    for mark in reversed(marks):
        if mark.type == "link":
            href = _html.escape(mark.attr("href", "") or "")
            text = f'<a href="{href}">{text}</a>'
        else:
            tag = _MARK_HTML.get(mark.type, "span")
            text = f"<{tag}>{text}</{tag}>"
    return text


def _open_span(attrs: Iterable[tuple[str, str]]) -> str:
    rendered = " ".join(f'{key}="{_html.escape(value)}"' for key, value in attrs)
    return f"<span {rendered}>"


def _text_html(node: Node, pos: int, decos: list[Decoration]) -> str:
    node_end = pos + len(node.text)
    overlapping = [d for d in decos if d.start < node_end and d.end > pos]
    if not overlapping:
        return _wrap_marks(_html.escape(node.text, quote=False), node.marks)

    # Split the text node at every decoration boundary inside it
    cuts = {pos, node_end}
    for deco in overlapping:
        cuts.update(c for c in (deco.start, deco.end) if pos < c < node_end)
    bounds = sorted(cuts)

    parts: list[str] = []
    for seg_start, seg_end in zip(bounds, bounds[1:]):
        segment = node.text[seg_start - pos : seg_end - pos]
        rendered = _wrap_marks(_html.escape(segment, quote=False), node.marks)
        covering = sorted(
            (d for d in overlapping if d.start <= seg_start and seg_end <= d.end),
            key=lambda d: (d.start, -d.end, d.index),
        )
        # Outermost decoration first; wrap from the innermost outwards
        for deco in reversed(covering):
            rendered = f"{_open_span(deco.attrs)}{rendered}</span>"
        parts.append(rendered)
    return "".join(parts)
