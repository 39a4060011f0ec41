"""Shared helpers for the in-memory stores."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Protocol, TypeVar

from ..errors import NotAuthorizedError, NotFoundError


class Owned(Protocol):
    id: str
    owner_id: str


R = TypeVar("R", bound=Owned)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def check_owner(record: R | None, owner_id: str, noun: str, verb: str) -> R:
    """Return *record* if it exists and belongs to *owner_id*.

    Error messages are generic and never include record content.

    Raises:
        NotFoundError: If *record* is ``None``.
        NotAuthorizedError: If another user owns *record*.
    """
    if record is None:
        raise NotFoundError(f"{noun} not found")
    if record.owner_id != owner_id:
        raise NotAuthorizedError(f"Not authorized to {verb} this {noun.lower()}")
    return record
