"""Unit tests for CrawlQueue lease / complete semantics."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from link_archiver.core.bookmark_store import BookmarkStore
from link_archiver.core.crawl_queue import CrawlQueue
from link_archiver.core.exceptions import StorageError, ValidationError
from link_archiver.core.schemas.bookmark import BookmarkCreate
from link_archiver.storage.memory import MemoryStorage

_STALENESS = timedelta(hours=24)
_EPSILON = timedelta(seconds=1)


async def _seed(storage, clock, *urls: str, title=None) -> None:
    await BookmarkStore(storage, clock=clock).add(
        [BookmarkCreate(url=url, title=title) for url in urls]
    )


def _urls(count: int) -> list[str]:
    return [f"https://example.com/{i}" for i in range(count)]


@pytest.mark.asyncio
class TestLease:
    async def test_empty_queue_returns_empty_list(self, memory_storage, clock) -> None:
        queue = CrawlQueue(memory_storage, clock=clock)
        assert await queue.lease(5) == []

    async def test_lease_respects_max_count(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, *_urls(8))
        queue = CrawlQueue(memory_storage, clock=clock)

        leased = await queue.lease(5)

        assert len(leased) == 5
        assert len(set(leased)) == 5

    async def test_lease_stamps_lease_time(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, clock=clock)

        await queue.lease(1)

        stored = await memory_storage.get_bookmark("https://a.example/")
        assert stored.lease_at == clock.now

    async def test_leased_url_is_not_handed_out_again(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, *_urls(3))
        queue = CrawlQueue(memory_storage, staleness=_STALENESS, clock=clock)

        first = await queue.lease(2)
        second = await queue.lease(5)

        assert set(first).isdisjoint(second)
        assert len(first) + len(second) == 3
        assert await queue.lease(5) == []

    async def test_concurrent_leases_are_disjoint(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, *_urls(20))
        queue = CrawlQueue(memory_storage, clock=clock)

        batches = await asyncio.gather(*(queue.lease(3) for _ in range(10)))

        leased = [url for batch in batches for url in batch]
        assert len(leased) == len(set(leased)) == 20

    async def test_lease_still_held_just_before_expiry(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, staleness=_STALENESS, clock=clock)
        await queue.lease(1)

        clock.advance(_STALENESS - _EPSILON)

        assert await queue.lease(1) == []

    async def test_lease_expires_after_staleness(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, staleness=_STALENESS, clock=clock)
        await queue.lease(1)

        clock.advance(_STALENESS + _EPSILON)

        assert await queue.lease(1) == ["https://a.example/"]

    async def test_per_call_staleness_overrides_default(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, staleness=_STALENESS, clock=clock)
        await queue.lease(1)

        clock.advance(timedelta(minutes=10))

        assert await queue.lease(1, staleness=timedelta(minutes=5)) == ["https://a.example/"]

    @pytest.mark.parametrize("max_count", [0, -1, True, 2.5, "3"])
    async def test_invalid_max_count_rejected(self, memory_storage, max_count) -> None:
        with pytest.raises(ValidationError):
            await CrawlQueue(memory_storage).lease(max_count)

    async def test_non_positive_staleness_rejected(self, memory_storage) -> None:
        with pytest.raises(ValidationError, match="staleness must be positive"):
            await CrawlQueue(memory_storage).lease(1, staleness=timedelta(0))


@pytest.mark.asyncio
class TestComplete:
    async def test_completed_url_is_never_leased_again(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, staleness=_STALENESS, clock=clock)
        await queue.lease(1)

        await queue.complete("https://a.example/", title="A", body="text")
        clock.advance(_STALENESS * 10)

        assert await queue.lease(5) == []

    async def test_empty_result_still_makes_url_terminal(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, clock=clock)

        result = await queue.complete("https://a.example/", title="", body=None)
        clock.advance(_STALENESS * 2)

        assert result.recorded is True
        assert result.title_updated is False
        assert await queue.lease(5) == []
        crawls = await memory_storage.list_crawls("https://a.example/")
        assert len(crawls) == 1
        assert crawls[0].title is None
        assert crawls[0].body is None

    async def test_title_filled_when_missing(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, clock=clock)

        result = await queue.complete("https://a.example/", title="Rendered title")

        assert result.title_updated is True
        stored = await memory_storage.get_bookmark("https://a.example/")
        assert stored.title == "Rendered title"

    async def test_user_title_takes_precedence(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/", title="User title")
        queue = CrawlQueue(memory_storage, clock=clock)

        result = await queue.complete("https://a.example/", title="Rendered title")

        assert result.title_updated is False
        stored = await memory_storage.get_bookmark("https://a.example/")
        assert stored.title == "User title"

    async def test_first_crawl_title_wins(self, memory_storage, clock) -> None:
        await _seed(memory_storage, clock, "https://a.example/")
        queue = CrawlQueue(memory_storage, clock=clock)

        await queue.complete("https://a.example/", title="First")
        second = await queue.complete("https://a.example/", title="Second")

        assert second.title_updated is False
        stored = await memory_storage.get_bookmark("https://a.example/")
        assert stored.title == "First"
        assert len(await memory_storage.list_crawls("https://a.example/")) == 2

    async def test_unknown_url_records_crawl_without_bookmark(self, memory_storage, clock) -> None:
        queue = CrawlQueue(memory_storage, clock=clock)

        result = await queue.complete("https://unknown.example/", title="T")

        assert result.title_updated is False
        crawls = await memory_storage.list_crawls("https://unknown.example/")
        assert [c.title for c in crawls] == ["T"]
        assert crawls[0].recorded_at == clock.now

    async def test_blank_url_rejected(self, memory_storage) -> None:
        with pytest.raises(ValidationError, match="no url provided"):
            await CrawlQueue(memory_storage).complete("  ", title="T")

    async def test_title_update_failure_is_not_raised(self, clock) -> None:
        class TitleFailingStorage(MemoryStorage):
            async def fill_missing_title(self, url: str, title: str) -> bool:
                raise StorageError("storage operation failed")

        storage = TitleFailingStorage()
        await _seed(storage, clock, "https://a.example/")

        result = await CrawlQueue(storage, clock=clock).complete("https://a.example/", title="T")

        assert result.recorded is True
        assert result.title_updated is False
        assert len(await storage.list_crawls("https://a.example/")) == 1

    async def test_append_failure_is_raised(self, clock) -> None:
        class AppendFailingStorage(MemoryStorage):
            async def append_crawl(self, entry) -> None:
                raise StorageError("storage operation failed")

        with pytest.raises(StorageError):
            await CrawlQueue(AppendFailingStorage(), clock=clock).complete(
                "https://a.example/", title="T"
            )
