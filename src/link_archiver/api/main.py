"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and error-envelope
handlers, and mounts the route routers.

Usage::

    # Development server (from project root)
    uvicorn link_archiver.api.main:app --reload --port 8080

    # Production
    gunicorn link_archiver.api.main:app -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

import time
import uuid
from http import HTTPStatus
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from link_archiver.config.settings import get_settings
from link_archiver.core.exceptions import (
    AuthError,
    PartialBatchFailure,
    StorageError,
    ValidationError,
)
from link_archiver.core.logging_config import configure_logging, request_id_var
from link_archiver.core.schemas.envelope import ErrorEnvelope
from link_archiver.storage import create_storage

configure_logging("INFO")

logger = structlog.get_logger(__name__)

_UNLOGGED_PATHS: frozenset[str] = frozenset({"/health"})


def _error_response(status_code: int, envelope: ErrorEnvelope) -> JSONResponse:
    headers = None
    if status_code == HTTPStatus.NOT_FOUND:
        headers = {"Cache-Control": "no-cache, max-age=0, must-revalidate"}
    return JSONResponse(
        status_code=status_code,
        content=envelope.to_content(),
        headers=headers,
    )


def _register_error_handlers(application: FastAPI) -> None:
    """Render every failure as an :class:`ErrorEnvelope`.

    Storage causes are logged here and never echoed to the caller.
    """

    @application.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(HTTPStatus.BAD_REQUEST, ErrorEnvelope(message=str(exc)))

    @application.exception_handler(RequestValidationError)
    async def _request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("request_rejected", errors=exc.errors())
        return _error_response(
            HTTPStatus.BAD_REQUEST, ErrorEnvelope(message="invalid request")
        )

    @application.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
        return _error_response(HTTPStatus.UNAUTHORIZED, ErrorEnvelope(message=str(exc)))

    @application.exception_handler(PartialBatchFailure)
    async def _partial_batch(request: Request, exc: PartialBatchFailure) -> JSONResponse:
        logger.error(
            "partial_batch_failure",
            failed_index=exc.failed_index,
            processed=exc.processed,
            url=exc.url,
            exc_info=exc.__cause__ or exc,
        )
        return _error_response(
            HTTPStatus.INTERNAL_SERVER_ERROR,
            ErrorEnvelope(
                status="partial",
                message=str(exc),
                failed_index=exc.failed_index,
                processed=exc.processed,
            ),
        )

    @application.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("storage_error", exc_info=exc.__cause__ or exc)
        return _error_response(
            HTTPStatus.INTERNAL_SERVER_ERROR, ErrorEnvelope(message=str(exc))
        )

    @application.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else HTTPStatus(exc.status_code).phrase
        return _error_response(exc.status_code, ErrorEnvelope(message=message.lower()))


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can call
    ``create_app()`` after patching the environment.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Bookmark archive with a lease-based crawl queue.",
        version="0.1.0",
        debug=settings.debug,
        redirect_slashes=False,
    )
    application.state.storage = create_storage(settings.database_url)

    # ---- Middleware --------------------------------------------------------

    if not settings.is_production:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with status and duration; tag the response.

        Binds a unique ``request_id`` to the structlog context so all log
        lines emitted while serving the request can be correlated.  The
        liveness probe is served without a log line.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            if request.url.path not in _UNLOGGED_PATHS:
                elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
                status_code = getattr(response, "status_code", 500)
                log_fn = logger.warning if status_code >= 400 else logger.info
                log_fn(
                    "request_complete",
                    status_code=status_code,
                    elapsed_ms=elapsed_ms,
                )

        response.headers["X-Request-ID"] = request_id
        response.headers["server-version"] = settings.git_sha
        return response

    _register_error_handlers(application)

    # ---- Routers -----------------------------------------------------------

    from link_archiver.api.routes import bookmarks, crawls, health  # noqa: PLC0415

    application.include_router(health.router)
    application.include_router(bookmarks.router, prefix="/api", tags=["bookmarks"])
    application.include_router(crawls.router, prefix="/api", tags=["crawls"])

    # ---- Lifecycle events -------------------------------------------------

    @application.on_event("startup")
    async def on_startup() -> None:
        """Optionally create tables and log startup information."""
        if settings.create_tables_on_startup:
            await application.state.storage.create_schema()
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.env,
            version=settings.git_sha,
            storage=type(application.state.storage).__name__,
        )

    @application.on_event("shutdown")
    async def on_shutdown() -> None:
        await application.state.storage.close()
        logger.info("application_shutdown")

    @application.get("/health", tags=["system"])
    async def health() -> JSONResponse:
        """Return a minimal liveness status and the running build.

        Used by load balancers that need a fast ``200 OK`` without I/O.
        Storage connectivity is reported at ``/api/health``.
        """
        return JSONResponse({"status": "ok", "version": settings.git_sha})

    return application


app = create_app()
"""The FastAPI application instance passed to Uvicorn / Gunicorn."""
