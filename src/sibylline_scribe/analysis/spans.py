"""Analysis result types.

A :class:`TextSpan` is always relative to the buffer it was computed
against. Spans fresh from the analysis service are in plain-text
coordinates; spans returned by the position mapper are in document
coordinates. The two coordinate spaces must never be mixed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum


class IssueKind(Enum):
    GRAMMAR = "grammar"
    SPELLING = "spelling"
    STYLE = "style"
    CLARITY = "clarity"


class Complexity(Enum):
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"

    @classmethod
    def from_score(cls, flesch_reading_ease: float) -> Complexity:
        """Classify a Flesch Reading Ease score (80+ easy, 60-79 moderate)."""
        if flesch_reading_ease >= 80:
            return cls.EASY
        if flesch_reading_ease >= 60:
            return cls.MODERATE
        return cls.DIFFICULT


@dataclass(frozen=True, slots=True)
class TextSpan:
    """A half-open character range ``[start, end)`` tagged with an issue."""

    kind: IssueKind
    start: int
    end: int
    suggestion: str
    """Suggested replacement text."""

    explanation: str
    """Short human-readable reason for the suggestion."""

    def with_offsets(self, start: int, end: int) -> TextSpan:
        """Return a copy moved to another coordinate space; metadata is unchanged."""
        return replace(self, start=start, end=end)

    def to_dict(self) -> dict:
        """Wire shape used by the analysis service."""
        return {
            "type": self.kind.value,
            "start": self.start,
            "end": self.end,
            "suggestion": self.suggestion,
            "explanation": self.explanation,
        }


@dataclass(slots=True)
class ReadabilityMetrics:
    """Readability summary for a block of text."""

    word_count: int
    sentence_count: int
    average_word_length: float
    average_sentence_length: float
    flesch_reading_ease: float
    complexity: Complexity

    def to_dict(self) -> dict:
        data = asdict(self)
        data["complexity"] = self.complexity.value
        return data
