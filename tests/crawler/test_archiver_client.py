"""Unit tests for ArchiverClient against a mocked API."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from link_archiver.core.exceptions import ApiClientError
from link_archiver.core.schemas.bookmark import BookmarkCreate
from link_archiver.crawler.client import ArchiverClient
from link_archiver.crawler.config import CrawlerSettings

_API = "https://archive.example.com"


@pytest.fixture
def settings() -> CrawlerSettings:
    return CrawlerSettings(api_url=_API + "/", api_key="worker-key", _env_file=None)


@pytest.mark.asyncio
class TestPendingCrawls:
    async def test_returns_urls_and_sends_bearer(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            route = mock.get("/api/crawl/pending").mock(
                return_value=httpx.Response(200, json={"urls": ["https://a.example/"]})
            )
            async with ArchiverClient(settings) as client:
                urls = await client.pending_crawls()

        assert urls == ["https://a.example/"]
        assert route.calls.last.request.headers["authorization"] == "Bearer worker-key"

    async def test_passes_limit(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            route = mock.get("/api/crawl/pending").mock(
                return_value=httpx.Response(200, json={"urls": []})
            )
            async with ArchiverClient(settings) as client:
                await client.pending_crawls(limit=7)

        assert route.calls.last.request.url.params["limit"] == "7"

    async def test_null_urls_treated_as_empty(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            mock.get("/api/crawl/pending").mock(
                return_value=httpx.Response(200, json={"urls": None})
            )
            async with ArchiverClient(settings) as client:
                assert await client.pending_crawls() == []

    async def test_error_envelope_raises(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            mock.get("/api/crawl/pending").mock(
                return_value=httpx.Response(
                    401, json={"status": "error", "error": True, "message": "invalid auth token"}
                )
            )
            async with ArchiverClient(settings) as client:
                with pytest.raises(ApiClientError) as exc_info:
                    await client.pending_crawls()

        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "invalid auth token"

    async def test_transport_error_raises(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            mock.get("/api/crawl/pending").mock(side_effect=httpx.ConnectError("refused"))
            async with ArchiverClient(settings) as client:
                with pytest.raises(ApiClientError) as exc_info:
                    await client.pending_crawls()

        assert exc_info.value.status_code is None

    async def test_non_json_body_raises(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            mock.get("/api/crawl/pending").mock(
                return_value=httpx.Response(502, text="<html>Bad gateway</html>")
            )
            async with ArchiverClient(settings) as client:
                with pytest.raises(ApiClientError) as exc_info:
                    await client.pending_crawls()

        assert exc_info.value.status_code == 502


@pytest.mark.asyncio
class TestSaveCrawl:
    async def test_posts_result(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            route = mock.post("/api/crawl").mock(
                return_value=httpx.Response(200, json={"status": "ok", "title_updated": True})
            )
            async with ArchiverClient(settings) as client:
                updated = await client.save_crawl("https://a.example/", "Title", None)

        assert updated is True
        assert json.loads(route.calls.last.request.content) == {
            "url": "https://a.example/",
            "title": "Title",
            "body": None,
        }


@pytest.mark.asyncio
class TestAddBookmarks:
    async def test_posts_batch(self, settings) -> None:
        with respx.mock(base_url=_API) as mock:
            route = mock.post("/api/bookmark").mock(
                return_value=httpx.Response(200, json={"status": "ok", "inserted": 1, "ignored": 0})
            )
            async with ArchiverClient(settings) as client:
                result = await client.add_bookmarks(
                    [BookmarkCreate(url="https://a.example/", tags=["x"])]
                )

        assert result["inserted"] == 1
        assert json.loads(route.calls.last.request.content) == {
            "bookmarks": [{"url": "https://a.example/", "tags": ["x"]}]
        }
