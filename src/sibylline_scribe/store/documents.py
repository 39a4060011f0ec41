"""Document persistence."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from collections.abc import Callable
from typing import Protocol

from ..errors import InputValidationError
from .base import check_owner, new_id, utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "content", "word_count", "character_count"})


@dataclass
class Document:
    """A stored document. ``content`` is editor HTML."""

    id: str
    owner_id: str
    title: str
    content: str = ""
    word_count: int = 0
    character_count: int = 0
    last_edited_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


class DocumentStore(Protocol):
    async def create(self, owner_id: str, title: str, content: str = "") -> Document: ...

    async def list(self, owner_id: str) -> list[Document]: ...

    async def get(self, document_id: str) -> Document | None: ...

    async def get_owned(self, document_id: str, owner_id: str) -> Document: ...

    async def update(self, document_id: str, owner_id: str, **fields) -> Document: ...

    async def delete(self, document_id: str, owner_id: str) -> None: ...


class InMemoryDocumentStore:
    """Dict-backed :class:`DocumentStore`.

    Records handed out are copies; mutating them does not touch the store.
    """

    def __init__(self, now: Callable[[], datetime] = utcnow) -> None:
        self._documents: dict[str, Document] = {}
        self._now = now

    async def create(self, owner_id: str, title: str, content: str = "") -> Document:
        if not isinstance(title, str) or not title.strip():
            raise InputValidationError("Title is required")

        now = self._now()
        document = Document(
            id=new_id(),
            owner_id=owner_id,
            title=title.strip(),
            content=content,
            last_edited_at=now,
            created_at=now,
            updated_at=now,
        )
        self._documents[document.id] = document
        logger.info("Created document %s for user %s", document.id, owner_id)
        return copy.copy(document)

    async def list(self, owner_id: str) -> list[Document]:
        owned = [d for d in self._documents.values() if d.owner_id == owner_id]
        owned.sort(key=lambda d: d.last_edited_at, reverse=True)
        return [copy.copy(d) for d in owned]

    async def get(self, document_id: str) -> Document | None:
        document = self._documents.get(document_id)
        return copy.copy(document) if document is not None else None

    async def get_owned(self, document_id: str, owner_id: str) -> Document:
        document = check_owner(self._documents.get(document_id), owner_id, "Document", "access")
        return copy.copy(document)

    async def update(self, document_id: str, owner_id: str, **fields) -> Document:
        """Update the whitelisted fields of an owned document.

        Unknown field names are ignored. ``last_edited_at`` and
        ``updated_at`` are bumped on every call.
        """
        document = check_owner(self._documents.get(document_id), owner_id, "Document", "update")

        if "title" in fields and (not isinstance(fields["title"], str) or not fields["title"].strip()):
            raise InputValidationError("Title is required")

        for name, value in fields.items():
            if name in UPDATABLE_FIELDS:
                setattr(document, name, value)

        now = self._now()
        document.last_edited_at = now
        document.updated_at = now
        logger.debug("Updated document %s", document_id)
        return copy.copy(document)

    async def delete(self, document_id: str, owner_id: str) -> None:
        check_owner(self._documents.get(document_id), owner_id, "Document", "delete")
        del self._documents[document_id]
        logger.info("Deleted document %s", document_id)
