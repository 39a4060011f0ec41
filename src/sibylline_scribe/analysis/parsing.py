"""Defensive decoding of analysis-service payloads.

The service answers with structured data embedded in text, and is not
trusted to get the shape right. Decoding:

1. Try to parse the whole payload as JSON.
2. On failure, locate the outermost delimiters (``[...]`` for span lists,
   ``{...}`` for metrics) inside the surrounding prose and parse that.
3. Validate every element against a strict schema.

The result is a tagged union: :class:`Ok` with the decoded value, or
:class:`Malformed` with a reason. Individual list elements that fail the
schema are dropped and counted rather than failing the whole payload.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .spans import Complexity, IssueKind, ReadabilityMetrics, TextSpan

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PAYLOAD_PREVIEW = 200


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    dropped: int = 0
    """Elements discarded because they did not match the schema."""


@dataclass(frozen=True)
class Malformed:
    reason: str
    payload: str = ""


ParseResult = Ok | Malformed


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class SpanPayload(BaseModel):
    """One issue as returned by the service."""

    model_config = ConfigDict(strict=True, extra="ignore")

    type: Literal["grammar", "spelling", "style", "clarity"]
    start: int
    end: int
    suggestion: str
    explanation: str

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        return _lower(value)

    def to_span(self) -> TextSpan:
        return TextSpan(
            kind=IssueKind(self.type),
            start=self.start,
            end=self.end,
            suggestion=self.suggestion,
            explanation=self.explanation,
        )


class MetricsPayload(BaseModel):
    """Readability metrics as returned by the service."""

    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    word_count: int = Field(alias="wordCount", ge=0)
    sentence_count: int = Field(alias="sentenceCount", ge=0)
    average_word_length: float = Field(alias="averageWordLength", ge=0)
    average_sentence_length: float = Field(alias="averageSentenceLength", ge=0)
    flesch_reading_ease: float = Field(alias="fleschReadingEase")
    complexity: Literal["easy", "moderate", "difficult"]

    @field_validator("complexity", mode="before")
    @classmethod
    def normalize_complexity(cls, value: Any) -> Any:
        return _lower(value)

    def to_metrics(self) -> ReadabilityMetrics:
        return ReadabilityMetrics(
            word_count=self.word_count,
            sentence_count=self.sentence_count,
            average_word_length=self.average_word_length,
            average_sentence_length=self.average_sentence_length,
            flesch_reading_ease=self.flesch_reading_ease,
            complexity=Complexity(self.complexity),
        )


# ---------------------------------------------------------------------------
# Payload extraction
# ---------------------------------------------------------------------------


def _load_structured(payload: str, open_ch: str, close_ch: str) -> Any:
    """Parse *payload* whole, or the outermost ``open_ch ... close_ch`` slice.

    Raises:
        ValueError: If neither attempt yields JSON.
    """
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        pass

    first = payload.find(open_ch)
    last = payload.rfind(close_ch)
    if first == -1 or last <= first:
        raise ValueError(f"no {open_ch}...{close_ch} block in payload")

    logger.debug("Payload was not bare JSON; parsing embedded %s...%s block", open_ch, close_ch)
    try:
        return json.loads(payload[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"embedded block is not valid JSON: {exc.msg}") from exc


def _preview(payload: str) -> str:
    return payload[:_PAYLOAD_PREVIEW]


def parse_span_payload(payload: str | None) -> ParseResult:
    """Decode a proofreading response into plain-text :class:`TextSpan` objects."""
    if not isinstance(payload, str) or not payload.strip():
        return Malformed("empty payload")

    try:
        data = _load_structured(payload, "[", "]")
    except ValueError as exc:
        logger.error("Unparseable span payload (%s): %r", exc, _preview(payload))
        return Malformed(str(exc), _preview(payload))

    if isinstance(data, dict) and isinstance(data.get("issues"), list):
        data = data["issues"]

    if not isinstance(data, list):
        logger.error("Span payload is not a list: %r", _preview(payload))
        return Malformed("payload is not a list", _preview(payload))

    spans: list[TextSpan] = []
    dropped = 0
    for item in data:
        try:
            spans.append(SpanPayload.model_validate(item).to_span())
        except ValidationError as exc:
            dropped += 1
            logger.debug("Dropping malformed span %r: %s", item, exc.errors()[0]["msg"])

    return Ok(spans, dropped=dropped)


def parse_metrics_payload(payload: str | None) -> ParseResult:
    """Decode a readability response into :class:`ReadabilityMetrics`."""
    if not isinstance(payload, str) or not payload.strip():
        return Malformed("empty payload")

    try:
        data = _load_structured(payload, "{", "}")
    except ValueError as exc:
        logger.error("Unparseable metrics payload (%s): %r", exc, _preview(payload))
        return Malformed(str(exc), _preview(payload))

    if isinstance(data, dict) and isinstance(data.get("metrics"), dict):
        data = data["metrics"]

    try:
        return Ok(MetricsPayload.model_validate(data).to_metrics())
    except ValidationError as exc:
        logger.error("Metrics payload failed validation: %s", exc)
        return Malformed("metrics failed validation", _preview(payload))
