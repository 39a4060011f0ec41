"""Base class for analysis backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...errors import InputValidationError
from ..spans import ReadabilityMetrics, TextSpan


def validate_text(value: object, max_length: int | None = None, label: str = "Text") -> str:
    """Reject non-string, empty or oversized input before any service call.

    Raises:
        InputValidationError: If *value* is unusable.
    """
    if not isinstance(value, str) or not value:
        raise InputValidationError(f"{label} is required and must be a string")
    if max_length is not None and len(value) > max_length:
        raise InputValidationError(f"{label} exceeds the maximum length of {max_length} characters")
    return value


class AnalysisService(ABC):
    """Abstract text-analysis service.

    Backends are registered in the backend registry and selected by name.
    A single instance is created per process and passed to the sessions
    that use it.
    """

    @classmethod
    @abstractmethod
    def name(cls) -> str:
        """Return the unique name of this backend."""
        ...

    @abstractmethod
    async def proofread(self, text: str) -> list[TextSpan]:
        """Find issues in *text*.

        Returns:
            Spans in plain-text coordinates of *text*. An empty list when
            there are no issues.

        Raises:
            InputValidationError: If *text* is not a usable string.
            AnalysisServiceError: If the service fails or answers garbage.
        """
        ...

    @abstractmethod
    async def readability(self, text: str) -> ReadabilityMetrics:
        """Score the readability of *text*."""
        ...

    @abstractmethod
    async def rewrite(self, text: str, writing_sample: str) -> str:
        """Rewrite *text* in the style of *writing_sample*."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the backend."""
