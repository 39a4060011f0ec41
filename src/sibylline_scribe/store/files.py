"""File storage for uploaded writing samples."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Protocol

from ..config import ScribeConfig
from ..errors import InputValidationError, PersistenceError, UploadRejectedError
from .base import utcnow

logger = logging.getLogger(__name__)

_EXTENSION_LABELS = {
    "text/plain": ".txt",
    "application/pdf": ".pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}

_UNSAFE = re.compile(r"[\\/\x00]")


@dataclass(frozen=True)
class StoredFile:
    path: str
    url: str


class FileStorage(Protocol):
    def validate_upload(self, filename: str, content_type: str, size: int) -> None: ...

    async def upload(
        self, owner_id: str, filename: str, content_type: str, data: bytes, title: str
    ) -> StoredFile: ...

    async def delete(self, path: str) -> None: ...

    def public_url(self, path: str) -> str: ...


def _size_label(limit: int) -> str:
    if limit % (1024 * 1024) == 0:
        return f"{limit // (1024 * 1024)}MB"
    return f"{limit} bytes"


def _timestamp(now: datetime) -> str:
    """ISO timestamp with ``:`` and ``.`` replaced so it is filename-safe."""
    stamp = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", stamp)


class LocalFileStorage:
    """Store uploads under a local directory, one sub-directory per bucket.

    Files land at ``{bucket}/{owner_id}/{title}-{timestamp}.{ext}`` relative
    to *root*; that relative path is what callers persist.

    Args:
        root: Directory holding the buckets.
        base_url: Prefix for public URLs. Defaults to ``storage.base_url``.
        config: Settings source for bucket name, size cap and allowed types.
    """

    def __init__(
        self,
        root: str | Path,
        base_url: str | None = None,
        config: ScribeConfig | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        settings = (config or ScribeConfig()).storage
        self.root = Path(root)
        self.bucket = settings.get("bucket", "writing-samples")
        self.base_url = (base_url or settings.get("base_url", "")).rstrip("/")
        self.max_file_size = int(settings.get("max_file_size", 10 * 1024 * 1024))
        self.allowed_types = tuple(settings.get("allowed_types", _EXTENSION_LABELS))
        self._now = now

    def validate_upload(self, filename: str, content_type: str, size: int) -> None:
        """Check an upload against the size cap and MIME whitelist.

        Raises:
            UploadRejectedError: If the upload is out of policy.
        """
        if size > self.max_file_size:
            logger.info("Rejected upload %s: size %d over limit", filename, size)
            raise UploadRejectedError(f"File size exceeds {_size_label(self.max_file_size)} limit")

        if content_type not in self.allowed_types:
            logger.info("Rejected upload %s: type %s not allowed", filename, content_type)
            labels = [_EXTENSION_LABELS.get(t, t) for t in self.allowed_types]
            if len(labels) > 1:
                allowed = ", ".join(labels[:-1]) + f", and {labels[-1]}"
            else:
                allowed = labels[0] if labels else "no"
            raise UploadRejectedError(f"Only {allowed} files are allowed")

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise InputValidationError("Invalid storage path")
        return self.root.joinpath(*relative.parts)

    async def upload(
        self, owner_id: str, filename: str, content_type: str, data: bytes, title: str
    ) -> StoredFile:
        self.validate_upload(filename, content_type, len(data))
        if not owner_id or _UNSAFE.search(owner_id) or owner_id in (".", ".."):
            raise InputValidationError("Invalid owner id")

        # Allowed types outside the known map keep the uploaded suffix
        extension = _EXTENSION_LABELS.get(content_type) or PurePosixPath(filename).suffix or ".bin"
        safe_title = _UNSAFE.sub("-", title)
        path = f"{self.bucket}/{owner_id}/{safe_title}-{_timestamp(self._now())}{extension}"
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)

        try:
            await asyncio.to_thread(write)
        except OSError as exc:
            logger.error("Upload to %s failed: %s", path, exc)
            raise PersistenceError("Failed to upload writing sample") from exc

        logger.info("Stored upload for user %s at %s", owner_id, path)
        return StoredFile(path=path, url=self.public_url(path))

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError:
            logger.debug("Delete of missing file %s ignored", path)
        except OSError as exc:
            logger.error("Delete of %s failed: %s", path, exc)
            raise PersistenceError("Failed to delete writing sample") from exc

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"
