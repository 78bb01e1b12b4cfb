"""Idempotent bookmark ingestion.

``BookmarkStore.add`` writes each bookmark with insert-if-absent semantics:
the first write for a URL wins and later submissions of the same URL are
ignored without touching the stored row.  That makes ``add`` safe to retry.

Batches are processed sequentially and each bookmark is committed on its
own.  A storage failure at position *k* leaves positions ``0..k-1`` committed
and positions ``k..`` unattempted; the caller learns where the batch stopped
through :class:`~link_archiver.core.exceptions.PartialBatchFailure`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog

from link_archiver.core.exceptions import EmptyBatchError, PartialBatchFailure, StorageError
from link_archiver.core.normalizer import normalize_bookmark, utc_now
from link_archiver.core.schemas.bookmark import BookmarkCreate
from link_archiver.storage.base import StorageBackend

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AddResult:
    """Outcome of a fully processed batch.

    Attributes:
        inserted: Bookmarks stored as new rows.
        ignored: Bookmarks whose URL already existed.
    """

    inserted: int
    ignored: int


class BookmarkStore:
    """Bookmark ingestion on top of a :class:`StorageBackend`.

    Args:
        storage: Backend that holds the bookmarks.
        clock: Returns the current time; overridable in tests.
    """

    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._clock = clock

    async def add(self, bookmarks: Sequence[BookmarkCreate]) -> AddResult:
        """Store a batch of bookmarks, ignoring URLs that already exist.

        The whole batch is validated before the first write, so a malformed
        bookmark anywhere in the batch means nothing is written.

        Args:
            bookmarks: Submitted bookmarks in client order.

        Returns:
            An :class:`AddResult` with inserted / ignored counts.

        Raises:
            EmptyBatchError: If ``bookmarks`` is empty.
            ValidationError: If any bookmark has a blank URL or bad field type.
            StorageError: If the first write fails.
            PartialBatchFailure: If a later write fails; earlier bookmarks
                remain stored.
        """
        if not bookmarks:
            raise EmptyBatchError()

        now = self._clock()
        entries = [normalize_bookmark(bookmark, now) for bookmark in bookmarks]

        inserted = 0
        for index, entry in enumerate(entries):
            try:
                created = await self._storage.insert_bookmark(entry)
            except StorageError as exc:
                logger.error(
                    "bookmark_insert_failed",
                    url=entry.url,
                    failed_index=index,
                    batch_size=len(entries),
                    exc_info=exc,
                )
                if index == 0:
                    raise
                raise PartialBatchFailure(
                    failed_index=index,
                    processed=index,
                    url=entry.url,
                ) from exc
            if created:
                inserted += 1

        result = AddResult(inserted=inserted, ignored=len(entries) - inserted)
        logger.info("bookmarks_added", inserted=result.inserted, ignored=result.ignored)
        return result
