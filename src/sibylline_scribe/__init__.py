"""Scribe: writing-assistant core with rich-text issue highlighting."""

import logging

from .config import ScribeConfig
from .document import DEFAULT_BLOCK_SEPARATOR, RichDocument
from .errors import (
    AnalysisServiceError,
    InputValidationError,
    NotAuthorizedError,
    NotFoundError,
    PersistenceError,
    ScribeError,
    UploadRejectedError,
)
from .scheduler import (
    AnalysisRequest,
    AnalysisScheduler,
    AsyncioClock,
    DebounceWindows,
    ManualClock,
    TriggerClass,
    classify_edit,
)

__all__ = [
    "ScribeConfig",
    "RichDocument",
    "DEFAULT_BLOCK_SEPARATOR",
    "ScribeError",
    "InputValidationError",
    "UploadRejectedError",
    "AnalysisServiceError",
    "NotFoundError",
    "NotAuthorizedError",
    "PersistenceError",
    "AnalysisRequest",
    "AnalysisScheduler",
    "AsyncioClock",
    "ManualClock",
    "DebounceWindows",
    "TriggerClass",
    "classify_edit",
    "configure_logging",
    "DocumentSession",
    "Notice",
]

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Handler:
    """Attach a stream handler to the package logger. Opt-in; returns the handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger(__name__)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return handler


_SESSION_NAMES = {"DocumentSession", "Notice"}


def __getattr__(name: str):
    # The session pulls in the analysis stack (pydantic, openai, numpy)
    if name in _SESSION_NAMES:
        import sys

        from .session import DocumentSession, Notice

        mod = sys.modules[__name__]
        mod.DocumentSession = DocumentSession
        mod.Notice = Notice
        return getattr(mod, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
