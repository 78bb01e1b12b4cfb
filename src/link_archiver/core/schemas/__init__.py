"""Pydantic schemas for request/response validation.

Sub-modules:
    bookmark: BookmarkCreate, AddBookmarksRequest/Response
    crawl: CrawlCreate, CrawlCompleteResponse, PendingCrawlsResponse
    envelope: ErrorEnvelope
"""

from __future__ import annotations
