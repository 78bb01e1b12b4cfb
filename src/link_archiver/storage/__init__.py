"""Pluggable storage backends.

- ``base``: ``StorageBackend`` interface plus ``BookmarkEntry`` / ``CrawlEntry``
- ``sql``: SQLAlchemy async backend (PostgreSQL, SQLite)
- ``memory``: in-process backend for tests and local experiments
"""

from __future__ import annotations

from link_archiver.storage.base import BookmarkEntry, CrawlEntry, StorageBackend
from link_archiver.storage.memory import MemoryStorage
from link_archiver.storage.sql import SqlStorage

__all__ = [
    "BookmarkEntry",
    "CrawlEntry",
    "MemoryStorage",
    "SqlStorage",
    "StorageBackend",
    "create_storage",
]


def create_storage(database_url: str) -> StorageBackend:
    """Return the backend matching ``database_url``.

    ``memory://`` selects :class:`MemoryStorage`; anything else is handed to
    SQLAlchemy.
    """
    if database_url.startswith("memory://"):
        return MemoryStorage()
    return SqlStorage.from_url(database_url)
