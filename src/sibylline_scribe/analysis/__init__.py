"""Span validation, position mapping, decoration and analysis backends."""

from .backends import (
    AnalysisService,
    OpenAIAnalysisService,
    create_service,
    get_backend,
    list_backends,
    register_backend,
)
from .decorations import Decoration, DecorationRenderer, DecorationSet, render_html
from .mapper import PositionMap, PositionMapper, build_position_map, find_in_document
from .parsing import Malformed, Ok, ParseResult, parse_metrics_payload, parse_span_payload
from .readability import estimate_readability
from .spans import Complexity, IssueKind, ReadabilityMetrics, TextSpan
from .validator import SpanValidator, ValidationStats

__all__ = [
    "AnalysisService",
    "OpenAIAnalysisService",
    "create_service",
    "get_backend",
    "list_backends",
    "register_backend",
    "Decoration",
    "DecorationRenderer",
    "DecorationSet",
    "render_html",
    "PositionMap",
    "PositionMapper",
    "build_position_map",
    "find_in_document",
    "Ok",
    "Malformed",
    "ParseResult",
    "parse_span_payload",
    "parse_metrics_payload",
    "estimate_readability",
    "Complexity",
    "IssueKind",
    "ReadabilityMetrics",
    "TextSpan",
    "SpanValidator",
    "ValidationStats",
]
