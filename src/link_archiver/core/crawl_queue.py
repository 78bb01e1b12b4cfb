"""Lease-based crawl work queue.

A bookmarked URL moves through three states:

``NEW``
    No crawl record and no fresh lease.  Eligible for :meth:`CrawlQueue.lease`.
``LEASED``
    ``lease_at`` is within the staleness window.  Invisible to other workers.
    Once the window passes without a crawl record the URL is ``NEW`` again;
    nothing has to happen for that, time passing is enough.
``DONE``
    At least one crawl record exists.  Never leased again.

Leases are single-shot: there is no heartbeat, renewal or release.  A worker
that dies holding a lease delays that URL by at most one staleness window.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog

from link_archiver.core.exceptions import StorageError, ValidationError
from link_archiver.core.normalizer import clean_text, normalize_url, utc_now
from link_archiver.storage.base import CrawlEntry, StorageBackend

logger = structlog.get_logger(__name__)

DEFAULT_STALENESS = timedelta(hours=24)
"""Lease lifetime used when the caller does not pass one."""


@dataclass(frozen=True)
class CompleteResult:
    """Outcome of :meth:`CrawlQueue.complete`.

    Attributes:
        recorded: Always ``True``; a failed append raises instead.
        title_updated: ``True`` when the crawl title was copied onto a
            bookmark that had none.
    """

    recorded: bool
    title_updated: bool


class CrawlQueue:
    """Lease / complete operations on top of a :class:`StorageBackend`.

    Args:
        storage: Backend that holds bookmarks and crawl records.
        staleness: Default lease lifetime.
        clock: Returns the current time; overridable in tests.
    """

    def __init__(
        self,
        storage: StorageBackend,
        staleness: timedelta = DEFAULT_STALENESS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._staleness = staleness
        self._clock = clock

    async def lease(
        self,
        max_count: int,
        staleness: Optional[timedelta] = None,
    ) -> list[str]:
        """Claim up to ``max_count`` URLs for crawling.

        Eligible URLs have no crawl record and either were never leased or
        were last leased more than ``staleness`` ago.  Concurrent callers
        never receive the same URL while its lease is fresh; rows contested
        by another in-flight lease are skipped, not waited on.  No ordering
        is guaranteed.

        Args:
            max_count: Maximum number of URLs to return.  Must be positive.
            staleness: Lease lifetime; defaults to the queue's setting.

        Returns:
            Claimed URLs.  Empty when nothing is eligible.

        Raises:
            ValidationError: If ``max_count`` is not a positive integer or
                ``staleness`` is not positive.
            StorageError: If the backend fails.
        """
        if isinstance(max_count, bool) or not isinstance(max_count, int) or max_count < 1:
            raise ValidationError("max_count must be a positive integer")
        window = self._staleness if staleness is None else staleness
        if window <= timedelta(0):
            raise ValidationError("staleness must be positive")

        now = self._clock()
        urls = await self._storage.lease_urls(max_count, now=now, cutoff=now - window)
        logger.info("crawl_urls_leased", requested=max_count, leased=len(urls))
        return urls

    async def complete(
        self,
        url: str,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> CompleteResult:
        """Record a finished render attempt and fill a missing bookmark title.

        The crawl record is appended even when ``title`` and ``body`` are
        empty: an empty result is itself the record that the page did not
        render usefully.  The title is then copied onto the bookmark only if
        the bookmark has no title yet.

        Args:
            url: The crawled URL.
            title: Page title reported by the worker.
            body: Page text reported by the worker.

        Returns:
            A :class:`CompleteResult`.

        Raises:
            ValidationError: If ``url`` is blank.
            StorageError: If the crawl record could not be appended.  A
                failure of the later title update is logged, not raised.
        """
        url = normalize_url(url)
        title = clean_text(title, field="title")
        body = clean_text(body, field="body")

        await self._storage.append_crawl(
            CrawlEntry(url=url, title=title, body=body, recorded_at=self._clock())
        )

        title_updated = False
        if title is not None:
            try:
                title_updated = await self._storage.fill_missing_title(url, title)
            except StorageError as exc:
                logger.warning("crawl_title_update_failed", url=url, exc_info=exc)

        logger.info(
            "crawl_completed",
            url=url,
            has_title=title is not None,
            has_body=body is not None,
            title_updated=title_updated,
        )
        return CompleteResult(recorded=True, title_updated=title_updated)
