"""Inline decorations for highlighted issues.

One decoration per valid span: a category-coloured bottom border, plus a
highlight fill for the selected span. Rendering never touches the
document; :func:`render_html` produces a decorated copy of its HTML.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from ..document.html import serialize_html
from ..document.model import RichDocument
from .spans import IssueKind, TextSpan

logger = logging.getLogger(__name__)

DECORATION_CLASS = "grammar-mark"

_FALLBACK_COLORS = {
    "border": "rgba(156, 163, 175, 0.7)",
    "highlight": "rgba(156, 163, 175, 0.2)",
}

# Matches the shipped defaults in config_data/_defaults/settings.yaml
DEFAULT_PALETTE: dict[str, dict[str, str]] = {
    "grammar": {"border": "rgba(239, 68, 68, 0.7)", "highlight": "rgba(239, 68, 68, 0.2)"},
    "spelling": {"border": "rgba(239, 68, 68, 0.7)", "highlight": "rgba(239, 68, 68, 0.2)"},
    "style": {"border": "rgba(59, 130, 246, 0.7)", "highlight": "rgba(59, 130, 246, 0.2)"},
    "clarity": {"border": "rgba(253, 224, 71, 0.7)", "highlight": "rgba(253, 224, 71, 0.2)"},
}


@dataclass(frozen=True, slots=True)
class Decoration:
    """An inline style decoration over document range ``[start, end)``."""

    start: int
    end: int
    index: int
    """Position of the originating span in the rendered span list."""

    kind: IssueKind
    attrs: tuple[tuple[str, str], ...]
    """HTML attributes (``class``, ``data-issue-index``, ``style``)."""

    @property
    def style(self) -> str:
        return dict(self.attrs).get("style", "")


class DecorationSet:
    """Immutable, comparable collection of decorations."""

    __slots__ = ("_items",)

    def __init__(self, items: Sequence[Decoration] = ()) -> None:
        self._items = tuple(items)

    def __iter__(self) -> Iterator[Decoration]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Decoration:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecorationSet):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"DecorationSet({list(self._items)!r})"

    def find(self, index: int) -> Decoration | None:
        """Decoration for span *index*, if it was rendered."""
        for deco in self._items:
            if deco.index == index:
                return deco
        return None


class DecorationRenderer:
    """Turn document-coordinate spans into decorations."""

    def __init__(self, palette: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._palette = {k: dict(v) for k, v in (palette or DEFAULT_PALETTE).items()}

    def colors(self, kind: IssueKind) -> dict[str, str]:
        colors = dict(_FALLBACK_COLORS)
        colors.update(self._palette.get(kind.value, {}))
        return colors

    def render(
        self,
        document: RichDocument,
        spans: Sequence[TextSpan],
        selected_index: int | None = None,
    ) -> DecorationSet:
        """Build decorations for *spans* against the current *document*.

        Spans that are empty, negative or past the end of the document are
        skipped; the document may have changed since the spans were mapped.
        """
        size = document.size
        decorations: list[Decoration] = []

        for idx, span in enumerate(spans):
            if span.start >= span.end or span.start < 0 or span.end > size:
                logger.warning(
                    "Skipping decoration %d: invalid positions [%d, %d) for document size %d",
                    idx,
                    span.start,
                    span.end,
                    size,
                )
                continue

            colors = self.colors(span.kind)
            style = f"border-bottom: 2px solid {colors['border']};"
            if selected_index == idx:
                style += f"background: {colors['highlight']};"

            decorations.append(
                Decoration(
                    start=span.start,
                    end=span.end,
                    index=idx,
                    kind=span.kind,
                    attrs=(
                        ("class", DECORATION_CLASS),
                        ("data-issue-index", str(idx)),
                        ("style", style),
                    ),
                )
            )

        return DecorationSet(decorations)


def render_html(document: RichDocument, decorations: DecorationSet | Sequence[Decoration]) -> str:
    """Serialize *document* with *decorations* applied as ``<span>`` wrappers.

    Text is split at decoration boundaries; overlapping decorations nest.
    """
    return serialize_html(document, list(decorations))
