"""SQLAlchemy ORM model for bookmarks."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from link_archiver.core.models.base import Base, TextList, Timestamp


class Bookmark(Base):
    """A user-submitted bookmark, keyed by URL.

    Rows are written once by ``BookmarkStore.add`` (insert-if-absent) and are
    never deleted.  Afterwards only two columns change:

    - ``lease_at``: stamped by ``CrawlQueue.lease`` when a worker claims the URL.
    - ``title``: filled by ``CrawlQueue.complete`` when it was still null.

    Attributes:
        url: Primary key; the bookmark's identity.
        title: Human label, or ``None`` when unknown.
        description: Free-text note.
        tags: Tag list, or ``None`` when the bookmark has no tags.
        created_at: Bookmark time supplied by the client, else ingestion time.
        lease_at: Time of the most recent lease, or ``None`` if never leased.
    """

    __tablename__ = "bookmarks"

    url: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    tags: Mapped[Optional[list[str]]] = mapped_column(TextList, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        Timestamp,
        nullable=False,
        server_default=sa.func.now(),
    )
    lease_at: Mapped[Optional[datetime]] = mapped_column(Timestamp, nullable=True)

    __table_args__ = (
        sa.Index("idx_bookmarks_lease_at", "lease_at"),
    )
