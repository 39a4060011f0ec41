"""Plain-text to document offset mapping.

The analysis service only ever sees the flattened plain-text projection of
a document, so its offsets must be re-derived against the live document
tree before anything is drawn. Mapping is rebuilt for every response and
every mapped span is verified by re-extracting the document text, because
the document may have changed between request dispatch and response
arrival.

Fallback search note: when a direct lookup fails, the first occurrence of
the span's text in the document is assumed to be the right one. When the
same text appears several times this is a heuristic, not a guarantee, and
a decoration may land on an earlier duplicate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..document.model import DEFAULT_BLOCK_SEPARATOR, RichDocument
from .spans import TextSpan

logger = logging.getLogger(__name__)


class PositionMap:
    """Plain-text index to document offset table.

    ``offsets[i]`` is the document position of plain-text character ``i``,
    or ``None`` when the character has no counterpart (a block separator, a
    hard break, or a character lost to drift).
    """

    __slots__ = ("offsets", "drift_count", "first_drift")

    def __init__(
        self,
        offsets: list[int | None],
        drift_count: int = 0,
        first_drift: int | None = None,
    ) -> None:
        self.offsets = offsets
        self.drift_count = drift_count
        self.first_drift = first_drift

    def __len__(self) -> int:
        return len(self.offsets)

    def __getitem__(self, index: int) -> int | None:
        return self.offsets[index]

    def lookup(self, index: int) -> int | None:
        """Bounds-checked lookup; out-of-range indices are undefined."""
        if 0 <= index < len(self.offsets):
            return self.offsets[index]
        return None

    def resolve(self, start: int, end: int) -> tuple[int, int] | None:
        """Map plain ``[start, end)`` to document ``[doc_start, doc_end)``.

        The end is resolved through the last included character
        (``map[end - 1] + 1``) because ``map[end]`` is out of bounds when the
        span reaches the end of the buffer.
        """
        doc_start = self.lookup(start)
        last = self.lookup(end - 1)
        if doc_start is None or last is None:
            return None
        return doc_start, last + 1


def build_position_map(
    document: RichDocument,
    plain_text: str,
    block_separator: str = DEFAULT_BLOCK_SEPARATOR,
) -> PositionMap:
    """Align *plain_text* against the document's projection.

    Characters that don't match the expected plain-text character at the
    running index are skipped without advancing the index, so a local
    divergence does not abort the whole walk.
    """
    offsets: list[int | None] = [None] * len(plain_text)
    index = 0
    drift = 0
    first_drift: int | None = None

    for ch, doc_offset in document.iter_projection(block_separator=block_separator):
        if index < len(plain_text) and plain_text[index] == ch:
            if doc_offset is not None:
                offsets[index] = doc_offset
            index += 1
            continue

        drift += 1
        if first_drift is None:
            first_drift = index

    if drift:
        logger.warning(
            "Projection drift: %d document characters skipped (first at plain index %d)",
            drift,
            first_drift,
        )

    return PositionMap(offsets, drift_count=drift, first_drift=first_drift)


def find_in_document(
    document: RichDocument,
    needle: str,
    block_separator: str = DEFAULT_BLOCK_SEPARATOR,
) -> tuple[int, int] | None:
    """First-match search for *needle* in the document text.

    Contiguous text runs are searched first, in document order; a hit at
    offset ``p`` maps to ``[p, p + len(needle))``. Needles that straddle a
    run boundary (a hard break, a block edge) are searched in the full
    projection instead.
    """
    if not needle:
        return None

    for run_start, run_text in document.text_runs():
        idx = run_text.find(needle)
        if idx != -1:
            return run_start + idx, run_start + idx + len(needle)

    chars: list[str] = []
    offsets: list[int | None] = []
    for ch, doc_offset in document.iter_projection(block_separator=block_separator):
        chars.append(ch)
        offsets.append(doc_offset)
    projection = "".join(chars)

    idx = projection.find(needle)
    while idx != -1:
        first = offsets[idx]
        last = offsets[idx + len(needle) - 1]
        if first is not None and last is not None:
            return first, last + 1
        idx = projection.find(needle, idx + 1)
    return None


@dataclass
class MappingStats:
    direct: int = 0
    fallback: int = 0
    discarded: int = 0
    verification_failed: int = 0


class PositionMapper:
    """Translate plain-text spans into verified document spans."""

    def __init__(self, block_separator: str = DEFAULT_BLOCK_SEPARATOR) -> None:
        self.block_separator = block_separator
        self.stats = MappingStats()

    def map_spans(
        self,
        document: RichDocument,
        plain_text: str,
        spans: Sequence[TextSpan] | Iterable[TextSpan],
    ) -> list[TextSpan]:
        """Map validated plain-text *spans* onto *document*.

        Args:
            document: The live document (mapping uses its current state).
            plain_text: The projection that was sent to the analysis service.
            spans: Spans in *plain_text* coordinates.

        Returns:
            Spans in document coordinates, in input order, with metadata
            unchanged. Spans that cannot be mapped or fail verification are
            dropped.
        """
        spans = list(spans)
        if not spans:
            return []

        position_map = build_position_map(document, plain_text, self.block_separator)
        mapped: list[TextSpan] = []

        for span in spans:
            expected = plain_text[span.start : span.end]

            resolved = position_map.resolve(span.start, span.end)
            if resolved is not None and self._verify(document, resolved, expected):
                self.stats.direct += 1
                mapped.append(span.with_offsets(*resolved))
                continue

            # Lookup undefined or stale: fall back to searching for the text
            found = find_in_document(document, expected, self.block_separator)
            if found is not None and self._verify(document, found, expected):
                self.stats.fallback += 1
                logger.debug(
                    "Span [%d, %d) recovered by search at [%d, %d)",
                    span.start,
                    span.end,
                    *found,
                )
                mapped.append(span.with_offsets(*found))
                continue

            self.stats.discarded += 1
            logger.debug(
                "Discarding span [%d, %d): %r not found in document",
                span.start,
                span.end,
                expected,
            )

        return mapped

    def _verify(self, document: RichDocument, resolved: tuple[int, int], expected: str) -> bool:
        doc_start, doc_end = resolved
        actual = document.text_between(doc_start, doc_end, self.block_separator)
        if actual == expected:
            return True
        self.stats.verification_failed += 1
        logger.debug(
            "Verification failed for [%d, %d): expected %r, found %r",
            doc_start,
            doc_end,
            expected,
            actual,
        )
        return False
