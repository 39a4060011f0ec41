"""Writing samples used for style-matched rewriting."""

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


@dataclass
class WritingSample:
    id: str
    owner_id: str
    title: str
    content: str
    word_count: int = 0
    storage_path: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


class WritingSampleStore(Protocol):
    async def create(
        self, owner_id: str, title: str, content: str, storage_path: str | None = None
    ) -> WritingSample: ...

    async def list(self, owner_id: str) -> list[WritingSample]: ...

    async def get_owned(self, sample_id: str, owner_id: str) -> WritingSample: ...

    async def delete(self, sample_id: str, owner_id: str) -> None: ...


class InMemoryWritingSampleStore:
    def __init__(self, now: Callable[[], datetime] = utcnow) -> None:
        self._samples: dict[str, WritingSample] = {}
        self._now = now

    async def create(
        self, owner_id: str, title: str, content: str, storage_path: str | None = None
    ) -> WritingSample:
        if not isinstance(title, str) or not title.strip():
            raise InputValidationError("Title is required")
        if not isinstance(content, str) or not content.strip():
            raise InputValidationError("Writing sample content is required")

        now = self._now()
        sample = WritingSample(
            id=new_id(),
            owner_id=owner_id,
            title=title.strip(),
            content=content,
            word_count=len(content.split()),
            storage_path=storage_path,
            created_at=now,
            updated_at=now,
        )
        self._samples[sample.id] = sample
        logger.info("Created writing sample %s for user %s", sample.id, owner_id)
        return copy.copy(sample)

    async def list(self, owner_id: str) -> list[WritingSample]:
        owned = [s for s in self._samples.values() if s.owner_id == owner_id]
        owned.sort(key=lambda s: s.created_at, reverse=True)
        return [copy.copy(s) for s in owned]

    async def get_owned(self, sample_id: str, owner_id: str) -> WritingSample:
        sample = check_owner(self._samples.get(sample_id), owner_id, "Writing sample", "access")
        return copy.copy(sample)

    async def delete(self, sample_id: str, owner_id: str) -> None:
        check_owner(self._samples.get(sample_id), owner_id, "Writing sample", "delete")
        del self._samples[sample_id]
        logger.info("Deleted writing sample %s", sample_id)
