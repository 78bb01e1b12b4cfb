"""Storage backend interface shared by the SQL and in-memory implementations.

``BookmarkStore`` and ``CrawlQueue`` never talk to a database directly; they
call the primitives below.  Each primitive is one atomic storage step, so
all concurrency control lives inside the backend:

- ``insert_bookmark`` is insert-if-absent (upsert-do-nothing).
- ``lease_urls`` claims eligible URLs without blocking on rows another
  caller is claiming at the same moment.
- ``fill_missing_title`` only writes when the stored title is null.

Backends raise :class:`~link_archiver.core.exceptions.StorageError` for any
driver-level failure.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class BookmarkEntry:
    """A normalized bookmark as held by a storage backend.

    Attributes:
        url: Primary key.
        title: Label, or ``None`` when unknown.
        description: Note, or ``None``.
        tags: Tag list, or ``None`` (never an empty list).
        created_at: Bookmark time.
        lease_at: Most recent lease time, or ``None`` if never leased.
    """

    url: str
    title: Optional[str]
    description: Optional[str]
    tags: Optional[list[str]]
    created_at: datetime
    lease_at: Optional[datetime] = None


@dataclass(frozen=True)
class CrawlEntry:
    """One immutable crawl-log row."""

    url: str
    title: Optional[str]
    body: Optional[str]
    recorded_at: datetime


class StorageBackend(abc.ABC):
    """Abstract durable store for bookmarks, crawl records and API keys."""

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def insert_bookmark(self, entry: BookmarkEntry) -> bool:
        """Insert ``entry`` unless a bookmark with the same URL exists.

        Existing rows are never modified.

        Returns:
            ``True`` if a new row was written, ``False`` if the URL was
            already present.
        """

    @abc.abstractmethod
    async def get_bookmark(self, url: str) -> Optional[BookmarkEntry]:
        """Return the stored bookmark for ``url``, or ``None``."""

    # ------------------------------------------------------------------
    # Crawl queue
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def lease_urls(self, limit: int, now: datetime, cutoff: datetime) -> list[str]:
        """Atomically claim up to ``limit`` eligible URLs.

        A URL is eligible when no crawl record exists for it and its
        ``lease_at`` is null or older than ``cutoff``.  Claimed rows get
        ``lease_at = now``.  Rows being claimed concurrently by another
        caller are skipped, never waited on.

        Returns:
            The claimed URLs, possibly empty.
        """

    @abc.abstractmethod
    async def append_crawl(self, entry: CrawlEntry) -> None:
        """Append one crawl record."""

    @abc.abstractmethod
    async def fill_missing_title(self, url: str, title: str) -> bool:
        """Set the bookmark's title to ``title`` only if it is currently null.

        Returns:
            ``True`` if a row was updated.
        """

    @abc.abstractmethod
    async def list_crawls(self, url: str) -> list[CrawlEntry]:
        """Return every crawl record for ``url`` in insertion order."""

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def api_key_exists(self, key: str) -> bool:
        """Return ``True`` if ``key`` is on the allowlist."""

    @abc.abstractmethod
    async def add_api_key(self, key: str) -> None:
        """Add ``key`` to the allowlist (no-op if already present)."""

    @abc.abstractmethod
    async def revoke_api_key(self, key: str) -> bool:
        """Remove ``key`` from the allowlist.

        Returns:
            ``True`` if the key existed.
        """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_schema(self) -> None:
        """Create tables if the backend needs them.  Default: nothing to do."""

    async def ping(self) -> None:
        """Raise :class:`StorageError` if the backend is unreachable."""

    async def close(self) -> None:
        """Release connections held by the backend."""
