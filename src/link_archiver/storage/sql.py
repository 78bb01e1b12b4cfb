"""SQLAlchemy async storage backend (PostgreSQL in production, SQLite for dev/tests).

Every primitive runs in its own short transaction.  Driver exceptions are
converted to :class:`~link_archiver.core.exceptions.StorageError` with the
original exception chained, so callers never see SQLAlchemy types.

Leasing
-------
On PostgreSQL the claim is a single statement::

    WITH pending AS (
        SELECT url FROM bookmarks
        WHERE url NOT IN (SELECT url FROM crawls)
          AND (lease_at IS NULL OR lease_at < :cutoff)
        LIMIT :limit
        FOR UPDATE SKIP LOCKED
    )
    UPDATE bookmarks SET lease_at = :now
    WHERE url IN (SELECT url FROM pending)
    RETURNING url

``SKIP LOCKED`` lets concurrent leases pass over rows another lease has
already locked instead of queueing behind it.

Engines without ``SKIP LOCKED`` (SQLite) read candidates first and then claim
each one with a conditional ``UPDATE ... WHERE url = :url AND <still
eligible>``.  A candidate whose condition no longer holds was taken by
another caller and is skipped.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import sqlalchemy as sa
import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from link_archiver.core.exceptions import StorageError
from link_archiver.core.models import ApiKey, Base, Bookmark, CrawlRecord
from link_archiver.storage.base import BookmarkEntry, CrawlEntry, StorageBackend

logger = structlog.get_logger(__name__)

_INSERT_FACTORIES = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine from a database URL.

    Pool sizing is only applied to PostgreSQL; SQLite URLs use SQLAlchemy's
    default pool for the aiosqlite driver.
    """
    if database_url.startswith("postgresql"):
        return create_async_engine(
            database_url,
            echo=False,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
        )
    return create_async_engine(database_url, echo=False)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` in UTC.

    SQLite stores the wall-clock part only, so aware values are converted
    before writing and naive values read back are labelled UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_entry(row: Bookmark) -> BookmarkEntry:
    return BookmarkEntry(
        url=row.url,
        title=row.title,
        description=row.description,
        tags=list(row.tags) if row.tags is not None else None,
        created_at=_as_utc(row.created_at),
        lease_at=_as_utc(row.lease_at),
    )


def _eligible_for_lease(cutoff: datetime) -> tuple[sa.ColumnElement[bool], ...]:
    """WHERE clauses selecting bookmarks that may be leased."""
    return (
        Bookmark.url.not_in(sa.select(CrawlRecord.url)),
        sa.or_(Bookmark.lease_at.is_(None), Bookmark.lease_at < cutoff),
    )


class SqlStorage(StorageBackend):
    """:class:`StorageBackend` on top of a SQLAlchemy ``AsyncEngine``.

    Args:
        engine: Async engine using the ``asyncpg`` or ``aiosqlite`` driver.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in _INSERT_FACTORIES:
            raise StorageError(f"unsupported database dialect: {dialect}")
        self._engine = engine
        self._dialect = dialect
        self._insert = _INSERT_FACTORIES[dialect]
        self._sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_url(cls, database_url: str) -> "SqlStorage":
        return cls(_build_engine(database_url))

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction committed on clean exit.

        Raises:
            StorageError: Wrapping any SQLAlchemy or connection error.
        """
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield session
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError("storage operation failed") from exc

    async def _execute(self, statement: Any) -> sa.Result[Any]:
        async with self._transaction() as session:
            return await session.execute(statement)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    async def insert_bookmark(self, entry: BookmarkEntry) -> bool:
        stmt = (
            self._insert(Bookmark)
            .values(
                url=entry.url,
                title=entry.title,
                description=entry.description,
                tags=entry.tags,
                created_at=_as_utc(entry.created_at),
                lease_at=_as_utc(entry.lease_at),
            )
            .on_conflict_do_nothing(index_elements=[Bookmark.url])
            .returning(Bookmark.url)
        )
        result = await self._execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_bookmark(self, url: str) -> Optional[BookmarkEntry]:
        async with self._transaction() as session:
            row = await session.get(Bookmark, url)
            return _to_entry(row) if row is not None else None

    # ------------------------------------------------------------------
    # Crawl queue
    # ------------------------------------------------------------------

    async def lease_urls(self, limit: int, now: datetime, cutoff: datetime) -> list[str]:
        if self._dialect == "postgresql":
            return await self._lease_skip_locked(limit, now, cutoff)
        return await self._lease_compare_and_swap(limit, now, cutoff)

    async def _lease_skip_locked(
        self, limit: int, now: datetime, cutoff: datetime
    ) -> list[str]:
        pending = (
            sa.select(Bookmark.url)
            .where(*_eligible_for_lease(cutoff))
            .limit(limit)
            .with_for_update(skip_locked=True)
            .cte("pending")
        )
        stmt = (
            sa.update(Bookmark)
            .where(Bookmark.url.in_(sa.select(pending.c.url)))
            .values(lease_at=now)
            .returning(Bookmark.url)
            .execution_options(synchronize_session=False)
        )
        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def _lease_compare_and_swap(
        self, limit: int, now: datetime, cutoff: datetime
    ) -> list[str]:
        eligible = _eligible_for_lease(cutoff)
        result = await self._execute(
            sa.select(Bookmark.url).where(*eligible).limit(limit)
        )
        candidates = list(result.scalars().all())

        claimed: list[str] = []
        for url in candidates:
            stmt = (
                sa.update(Bookmark)
                .where(Bookmark.url == url, *eligible)
                .values(lease_at=now)
                .returning(Bookmark.url)
                .execution_options(synchronize_session=False)
            )
            swapped = await self._execute(stmt)
            if swapped.scalar_one_or_none() is None:
                logger.debug("lease_candidate_lost", url=url)
                continue
            claimed.append(url)
        return claimed

    async def append_crawl(self, entry: CrawlEntry) -> None:
        async with self._transaction() as session:
            session.add(
                CrawlRecord(
                    url=entry.url,
                    title=entry.title,
                    body=entry.body,
                    recorded_at=_as_utc(entry.recorded_at),
                )
            )

    async def fill_missing_title(self, url: str, title: str) -> bool:
        stmt = (
            sa.update(Bookmark)
            .where(Bookmark.url == url, Bookmark.title.is_(None))
            .values(title=title)
            .returning(Bookmark.url)
            .execution_options(synchronize_session=False)
        )
        result = await self._execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_crawls(self, url: str) -> list[CrawlEntry]:
        result = await self._execute(
            sa.select(CrawlRecord).where(CrawlRecord.url == url).order_by(CrawlRecord.id)
        )
        return [
            CrawlEntry(
                url=row.url,
                title=row.title,
                body=row.body,
                recorded_at=_as_utc(row.recorded_at),
            )
            for row in result.scalars().all()
        ]

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    async def api_key_exists(self, key: str) -> bool:
        result = await self._execute(
            sa.select(sa.exists().where(ApiKey.key == key))
        )
        return bool(result.scalar())

    async def add_api_key(self, key: str) -> None:
        await self._execute(
            self._insert(ApiKey)
            .values(key=key, created_at=datetime.now(timezone.utc))
            .on_conflict_do_nothing(index_elements=[ApiKey.key])
        )

    async def revoke_api_key(self, key: str) -> bool:
        result = await self._execute(
            sa.delete(ApiKey).where(ApiKey.key == key).returning(ApiKey.key)
        )
        return result.scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError("failed to create schema") from exc

    async def ping(self) -> None:
        await self._execute(sa.text("SELECT 1"))

    async def close(self) -> None:
        await self._engine.dispose()
