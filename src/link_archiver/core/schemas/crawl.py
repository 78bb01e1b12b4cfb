"""Pydantic request/response schemas for the crawl queue endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class CrawlCreate(BaseModel):
    """Body of ``POST /api/crawl``: the outcome of one render attempt.

    Empty ``title`` / ``body`` are valid and are recorded as absent.
    """

    url: str
    title: Optional[str] = None
    body: Optional[str] = None


class CrawlCompleteResponse(BaseModel):
    """Success body of ``POST /api/crawl``.

    Attributes:
        status: Always ``"ok"``.
        title_updated: ``True`` when the crawl title was copied onto a
            bookmark that had none.
    """

    status: str = "ok"
    title_updated: bool = False


class PendingCrawlsResponse(BaseModel):
    """Body of ``GET /api/crawl/pending``.  ``urls`` may be empty."""

    urls: List[str]
