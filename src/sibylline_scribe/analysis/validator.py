"""Span range validation.

A span is accepted iff ``start`` and ``end`` are integers and
``0 <= start < end <= len(text)``. Rejections are silent to the end user
but counted by reason so they can be inspected.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from .spans import TextSpan

logger = logging.getLogger(__name__)

NOT_INTEGER = "not_integer"
NEGATIVE_START = "negative_start"
END_OUT_OF_RANGE = "end_out_of_range"
EMPTY_RANGE = "empty_range"


@dataclass
class ValidationStats:
    """Running counters for accepted and rejected spans."""

    accepted: int = 0
    rejected: int = 0
    by_reason: Counter = field(default_factory=Counter)


def _is_int(value: object) -> bool:
    # bool is an int subclass but never a valid offset
    return isinstance(value, int) and not isinstance(value, bool)


def rejection_reason(start: object, end: object, text_length: int) -> str | None:
    """Return why ``[start, end)`` is invalid for a buffer of *text_length*, or ``None``."""
    if not _is_int(start) or not _is_int(end):
        return NOT_INTEGER
    if start < 0:
        return NEGATIVE_START
    if end > text_length:
        return END_OUT_OF_RANGE
    if start >= end:
        return EMPTY_RANGE
    return None


class SpanValidator:
    """Filter spans whose range is malformed for a given text buffer."""

    def __init__(self) -> None:
        self.stats = ValidationStats()

    def accepts(self, span: TextSpan, text_length: int) -> bool:
        return rejection_reason(span.start, span.end, text_length) is None

    def filter(self, spans: Iterable[TextSpan], text: str) -> list[TextSpan]:
        """Keep only spans valid against *text*, preserving order."""
        return [
            span for span in spans if self._check(span.start, span.end, len(text))
        ]

    def _check(self, start: object, end: object, text_length: int) -> bool:
        reason = rejection_reason(start, end, text_length)
        if reason is None:
            self.stats.accepted += 1
            return True
        self.stats.rejected += 1
        self.stats.by_reason[reason] += 1
        logger.debug("Rejected span [%r, %r) against length %s: %s", start, end, text_length, reason)
        return False

    def reset(self) -> None:
        self.stats = ValidationStats()
