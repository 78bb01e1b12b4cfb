"""Health check route handlers.

``GET /health`` (registered in ``api/main.py``) is a process-level liveness
probe with no I/O.  ``GET /api/health`` below also checks storage.

These endpoints are diagnostic: they never raise HTTP 5xx errors and need
no API key.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from link_archiver.api.dependencies import get_storage
from link_archiver.config.settings import Settings, get_settings
from link_archiver.core.exceptions import StorageError
from link_archiver.storage.base import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_storage(storage: StorageBackend) -> str:
    """Ping the storage backend.

    Returns:
        ``"ok"`` if the ping succeeds, ``"error"`` otherwise.
    """
    try:
        await storage.ping()
        return "ok"
    except StorageError:
        logger.exception("Health check: storage unreachable")
        return "error"


@router.get("/api/health")
async def system_health(
    storage: Annotated[StorageBackend, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Return process health including storage connectivity.

    Always HTTP 200; ``status`` is ``"ok"`` or ``"degraded"``.
    """
    storage_status = await _check_storage(storage)
    payload = {
        "status": "ok" if storage_status == "ok" else "degraded",
        "version": settings.git_sha,
        "storage": storage_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("system_health_check", extra={"health": payload})
    return JSONResponse(payload)
