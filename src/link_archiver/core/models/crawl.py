"""SQLAlchemy ORM model for the append-only crawl log."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from link_archiver.core.models.base import Base, SurrogateKey, Timestamp


class CrawlRecord(Base):
    """One completed render attempt for a bookmarked URL.

    Append-only: rows are inserted by ``CrawlQueue.complete`` and never
    updated or deleted.  ``url`` is deliberately not unique and not a foreign
    key; a URL may be recorded more than once.  The existence of any row for
    a URL removes it from the crawl queue for good.

    Attributes:
        id: Surrogate key.
        url: The crawled URL.
        title: Page title reported by the worker, or ``None``.
        body: Extracted page text reported by the worker, or ``None``.
        recorded_at: Insertion time.
    """

    __tablename__ = "crawls"

    id: Mapped[int] = mapped_column(SurrogateKey, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    body: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        Timestamp,
        nullable=False,
        server_default=sa.func.now(),
    )

    __table_args__ = (
        sa.Index("idx_crawls_url", "url"),
    )
