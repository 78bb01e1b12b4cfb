"""Shared pytest fixtures for Link Archiver tests.

Fixture summary
---------------
clock: Controllable UTC clock (``FakeClock``).
memory_storage: Fresh in-process ``MemoryStorage``.
sqlite_storage: ``SqlStorage`` on a per-test SQLite file with the schema created.
api_key: A key registered on ``memory_storage``.
auth_headers: Bearer-token Authorization headers for ``api_key``.
app: FastAPI app built by ``create_app()`` using ``memory_storage``.
client: httpx.AsyncClient against ``app``.

Nothing here needs external infrastructure; SQL tests run on aiosqlite.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set required env vars before any application modules are imported so that
# Settings() does not raise a ValidationError during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "DATABASE_URL": "memory://",
    "ENV": "test",
    "GIT_SHA": "test-sha",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from link_archiver.api.dependencies import get_storage  # noqa: E402
from link_archiver.api.main import create_app  # noqa: E402
from link_archiver.config.settings import get_settings  # noqa: E402
from link_archiver.storage import MemoryStorage, SqlStorage  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()

TEST_API_KEY = "a" * 64


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def sqlite_storage(tmp_path: Path) -> AsyncGenerator[SqlStorage, None]:
    """Yield a ``SqlStorage`` backed by a fresh SQLite file.

    The engine is created on the test's own event loop and disposed on
    teardown.
    """
    storage = SqlStorage.from_url(f"sqlite+aiosqlite:///{tmp_path / 'archiver.sqlite3'}")
    await storage.create_schema()
    try:
        yield storage
    finally:
        await storage.close()


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def api_key(memory_storage: MemoryStorage) -> str:
    await memory_storage.add_api_key(TEST_API_KEY)
    return TEST_API_KEY


@pytest.fixture
def auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def app(memory_storage: MemoryStorage):
    """A freshly built application whose storage is ``memory_storage``."""
    application = create_app()
    application.dependency_overrides[get_storage] = lambda: memory_storage
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx.AsyncClient against ``app``.

    Yields:
        :class:`httpx.AsyncClient` configured for the test app.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
