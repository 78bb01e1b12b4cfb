"""In-process storage backend.

Selected with ``DATABASE_URL=memory://``.  Data lives only as long as the
process, so this backend suits tests and local experiments, not a deployment
with several API processes.

Every method runs to completion without awaiting, so on a single event loop
each call is atomic.  ``lease_urls`` still claims rows with a per-row
conditional update, mirroring the compare-and-swap used by the SQL backend on
engines without ``SKIP LOCKED``.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Optional

from link_archiver.storage.base import BookmarkEntry, CrawlEntry, StorageBackend


class MemoryStorage(StorageBackend):
    """Dict-backed implementation of :class:`StorageBackend`."""

    def __init__(self) -> None:
        self._bookmarks: dict[str, BookmarkEntry] = {}
        self._crawls: list[CrawlEntry] = []
        self._crawled_urls: set[str] = set()
        self._api_keys: set[str] = set()

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    async def insert_bookmark(self, entry: BookmarkEntry) -> bool:
        if entry.url in self._bookmarks:
            return False
        self._bookmarks[entry.url] = dataclasses.replace(
            entry,
            tags=list(entry.tags) if entry.tags is not None else None,
        )
        return True

    async def get_bookmark(self, url: str) -> Optional[BookmarkEntry]:
        entry = self._bookmarks.get(url)
        if entry is None:
            return None
        return dataclasses.replace(
            entry,
            tags=list(entry.tags) if entry.tags is not None else None,
        )

    # ------------------------------------------------------------------
    # Crawl queue
    # ------------------------------------------------------------------

    def _is_eligible(self, entry: BookmarkEntry, cutoff: datetime) -> bool:
        if entry.url in self._crawled_urls:
            return False
        return entry.lease_at is None or entry.lease_at < cutoff

    def _lease_if_eligible(self, url: str, now: datetime, cutoff: datetime) -> bool:
        entry = self._bookmarks.get(url)
        if entry is None or not self._is_eligible(entry, cutoff):
            return False
        entry.lease_at = now
        return True

    async def lease_urls(self, limit: int, now: datetime, cutoff: datetime) -> list[str]:
        candidates = [
            url
            for url, entry in self._bookmarks.items()
            if self._is_eligible(entry, cutoff)
        ][:limit]
        return [url for url in candidates if self._lease_if_eligible(url, now, cutoff)]

    async def append_crawl(self, entry: CrawlEntry) -> None:
        self._crawls.append(entry)
        self._crawled_urls.add(entry.url)

    async def fill_missing_title(self, url: str, title: str) -> bool:
        entry = self._bookmarks.get(url)
        if entry is None or entry.title is not None:
            return False
        entry.title = title
        return True

    async def list_crawls(self, url: str) -> list[CrawlEntry]:
        return [crawl for crawl in self._crawls if crawl.url == url]

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    async def api_key_exists(self, key: str) -> bool:
        return key in self._api_keys

    async def add_api_key(self, key: str) -> None:
        self._api_keys.add(key)

    async def revoke_api_key(self, key: str) -> bool:
        if key not in self._api_keys:
            return False
        self._api_keys.discard(key)
        return True
