"""Pydantic request/response schemas for bookmark ingestion."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class BookmarkCreate(BaseModel):
    """One bookmark as submitted by an ingestion client.

    Values are accepted loosely here and normalized by
    :func:`link_archiver.core.normalizer.normalize_bookmark`.

    Attributes:
        url: Bookmark URL; its identity.  Blank URLs are rejected during
            normalization.
        title: Optional label.  Dropped when it equals ``url``.
        description: Optional note.  Some export formats send ``false``
            instead of omitting the value, so booleans are accepted and
            decoded to "absent".
        tags: Optional tag list.  An empty list is stored as "no tags".
        time: Bookmark time; defaults to ingestion time.
    """

    model_config = ConfigDict(extra="ignore")

    url: str
    title: Union[str, bool, None] = None
    description: Union[str, bool, None] = None
    tags: Optional[List[str]] = None
    time: Optional[datetime] = None


class AddBookmarksRequest(BaseModel):
    """Body of ``POST /api/bookmark``."""

    bookmarks: List[BookmarkCreate] = Field(default_factory=list)


class AddBookmarksResponse(BaseModel):
    """Success body of ``POST /api/bookmark``.

    Attributes:
        status: Always ``"ok"``.
        inserted: Bookmarks written as new rows.
        ignored: Bookmarks whose URL already existed (left untouched).
    """

    status: str = "ok"
    inserted: int
    ignored: int
