"""Crawl queue routes used by crawler workers.

``GET /api/crawl/pending``
    Lease a batch of URLs.  ``limit`` defaults to ``LEASE_BATCH_SIZE`` and is
    capped at ``MAX_LEASE_BATCH_SIZE``.  An empty list means there is nothing
    to crawl right now.

``POST /api/crawl``
    Report the result of one render attempt.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from link_archiver.api.dependencies import get_crawl_queue, require_api_key
from link_archiver.config.settings import Settings, get_settings
from link_archiver.core.crawl_queue import CrawlQueue
from link_archiver.core.schemas.crawl import (
    CrawlCompleteResponse,
    CrawlCreate,
    PendingCrawlsResponse,
)

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/crawl/pending", response_model=PendingCrawlsResponse)
async def get_pending_crawls(
    queue: Annotated[CrawlQueue, Depends(get_crawl_queue)],
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[Optional[int], Query(ge=1)] = None,
) -> PendingCrawlsResponse:
    """Lease up to ``limit`` URLs that still need crawling."""
    max_count = min(limit or settings.lease_batch_size, settings.max_lease_batch_size)
    urls = await queue.lease(max_count)
    return PendingCrawlsResponse(urls=urls)


@router.post("/crawl", response_model=CrawlCompleteResponse)
async def add_crawl(
    body: CrawlCreate,
    queue: Annotated[CrawlQueue, Depends(get_crawl_queue)],
) -> CrawlCompleteResponse:
    """Append a crawl record and fill the bookmark title if it had none."""
    result = await queue.complete(body.url, title=body.title, body=body.body)
    return CrawlCompleteResponse(title_updated=result.title_updated)
