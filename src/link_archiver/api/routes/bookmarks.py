"""Bookmark ingestion route.

``POST /api/bookmark``
    Store a batch of bookmarks.  URLs that already exist are left untouched,
    so clients may retry the same batch safely.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from link_archiver.api.dependencies import get_bookmark_store, require_api_key
from link_archiver.core.bookmark_store import BookmarkStore
from link_archiver.core.schemas.bookmark import AddBookmarksRequest, AddBookmarksResponse

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/bookmark", response_model=AddBookmarksResponse)
async def add_bookmarks(
    body: AddBookmarksRequest,
    store: Annotated[BookmarkStore, Depends(get_bookmark_store)],
) -> AddBookmarksResponse:
    """Ingest bookmarks with insert-if-absent semantics.

    Errors are rendered by the envelope handlers in ``api/main.py``:
    400 for an empty batch or a bookmark without URL, 500 for storage
    failures (``status="partial"`` when earlier bookmarks were stored).
    """
    result = await store.add(body.bookmarks)
    return AddBookmarksResponse(inserted=result.inserted, ignored=result.ignored)
