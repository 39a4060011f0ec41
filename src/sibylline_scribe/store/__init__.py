"""Persistence for documents, writing samples and uploaded files."""

from .documents import Document, DocumentStore, InMemoryDocumentStore
from .files import FileStorage, LocalFileStorage, StoredFile
from .samples import InMemoryWritingSampleStore, WritingSample, WritingSampleStore

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "WritingSample",
    "WritingSampleStore",
    "InMemoryWritingSampleStore",
    "FileStorage",
    "LocalFileStorage",
    "StoredFile",
]
