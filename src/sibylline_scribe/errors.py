"""Exception hierarchy.

Every error is local to the operation that raised it. The session turns
service and persistence failures into user-visible notices instead of
letting them escape an edit event.
"""


class ScribeError(Exception):
    """Base class for all sibylline-scribe errors."""


class InputValidationError(ScribeError, ValueError):
    """Malformed input (wrong type, empty, over the length cap)."""


class UploadRejectedError(InputValidationError):
    """File upload outside the size / MIME policy."""


class AnalysisServiceError(ScribeError):
    """The analysis service was unreachable or returned an unusable payload."""


class NotFoundError(ScribeError):
    """The requested resource does not exist."""


class NotAuthorizedError(ScribeError):
    """The requesting user does not own the resource."""


class PersistenceError(ScribeError):
    """A store write failed."""
