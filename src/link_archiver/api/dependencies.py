"""FastAPI dependency injection providers.

Dependency graph::

    get_storage         : the StorageBackend held on ``app.state``
    ├── get_bookmark_store
    ├── get_crawl_queue : also reads lease staleness from settings
    └── require_api_key : bearer-token gate for every /api route

Tests swap the backend by overriding ``get_storage`` in
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from link_archiver.config.settings import Settings, get_settings
from link_archiver.core.bookmark_store import BookmarkStore
from link_archiver.core.crawl_queue import CrawlQueue
from link_archiver.core.exceptions import AuthError
from link_archiver.storage.base import StorageBackend

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> StorageBackend:
    """Return the storage backend created by ``create_app``."""
    return request.app.state.storage


def get_bookmark_store(
    storage: Annotated[StorageBackend, Depends(get_storage)],
) -> BookmarkStore:
    return BookmarkStore(storage)


def get_crawl_queue(
    storage: Annotated[StorageBackend, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CrawlQueue:
    return CrawlQueue(storage, staleness=settings.lease_staleness)


async def require_api_key(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(_bearer_scheme)
    ],
    storage: Annotated[StorageBackend, Depends(get_storage)],
) -> str:
    """Require ``Authorization: Bearer <key>`` with a key on the allowlist.

    Args:
        credentials: Parsed bearer credentials, or ``None`` when the header
            is missing or uses another scheme.
        storage: Backend holding the ``api_keys`` allowlist.

    Returns:
        The accepted key.

    Raises:
        AuthError: If the token is missing or unknown.
        StorageError: If the allowlist cannot be read.
    """
    key = credentials.credentials.strip() if credentials is not None else ""
    if not key:
        raise AuthError("missing auth token")
    if not await storage.api_key_exists(key):
        logger.warning("auth_rejected", reason="unknown_key")
        raise AuthError("invalid auth token")
    return key
