"""Async HTTP client for the Link Archiver API.

Used by the crawler worker (lease / report) and by the Pinboard import
script (ingest).  Configuration comes from an explicit
:class:`~link_archiver.crawler.config.CrawlerSettings`.

Usage::

    async with ArchiverClient(settings) as client:
        urls = await client.pending_crawls()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from link_archiver.core.exceptions import ApiClientError
from link_archiver.core.schemas.bookmark import BookmarkCreate
from link_archiver.crawler.config import CrawlerSettings

logger = logging.getLogger(__name__)


class ArchiverClient:
    """Typed wrapper around the ``/api`` endpoints.

    Args:
        settings: Supplies the base URL, API key and timeout.
        http_client: Optional shared :class:`httpx.AsyncClient`.  When
            omitted the client creates and owns one.
    """

    def __init__(
        self,
        settings: CrawlerSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = settings.api_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {settings.api_key}"}
        self._timeout = settings.api_timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def __aenter__(self) -> "ArchiverClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Raises:
            ApiClientError: On transport errors, non-2xx responses (carrying
                the envelope's ``message``) or undecodable bodies.
        """
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers,
                json=json,
                params=params,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ApiClientError(f"request to {path} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ApiClientError(
                f"invalid JSON from {path}", status_code=response.status_code
            ) from exc

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ApiClientError(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            raise ApiClientError(
                f"unexpected response from {path}", status_code=response.status_code
            )
        return data

    async def pending_crawls(self, limit: Optional[int] = None) -> list[str]:
        """Lease URLs to crawl.  Returns an empty list when nothing is pending."""
        params = {"limit": limit} if limit is not None else None
        data = await self._request("GET", "/api/crawl/pending", params=params)
        return list(data.get("urls") or [])

    async def save_crawl(
        self,
        url: str,
        title: Optional[str],
        body: Optional[str],
    ) -> bool:
        """Report one render result.

        Returns:
            ``True`` if the API copied ``title`` onto the bookmark.
        """
        data = await self._request(
            "POST",
            "/api/crawl",
            json={"url": url, "title": title, "body": body},
        )
        return bool(data.get("title_updated", False))

    async def add_bookmarks(self, bookmarks: Sequence[BookmarkCreate]) -> dict[str, Any]:
        """Ingest a batch of bookmarks.

        Returns:
            The API response, e.g. ``{"status": "ok", "inserted": 3, "ignored": 0}``.
        """
        payload = {
            "bookmarks": [
                bookmark.model_dump(mode="json", exclude_none=True)
                for bookmark in bookmarks
            ]
        }
        return await self._request("POST", "/api/bookmark", json=payload)
