"""Structured logging for the API process and the crawler worker.

Both processes call :func:`configure_logging` once at startup and pass their
``service`` name, so records from a shared log stream can be told apart.

API and core modules log structured events::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("bookmarks_added", inserted=3, ignored=1)

Crawler modules use plain stdlib loggers; their records go through the same
processors and renderer::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("crawler: saved crawl for %s", url)

``request_id_var`` is set by the request middleware in ``api/main.py``.
"""

from __future__ import annotations

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""ID of the HTTP request being served, or ``None`` outside a request."""

_REDACTED = "[REDACTED]"

#: Event-dict keys containing any of these (case-insensitive) are masked.
_SECRET_KEY_PARTS: tuple[str, ...] = (
    "api_key",
    "authorization",
    "bearer",
    "password",
    "secret",
    "token",
)

#: Bearer credentials embedded in free text, e.g. an exception message that
#: echoes request headers.
_BEARER_IN_TEXT = re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._~+/=-]+")

#: Third-party loggers that are only interesting at DEBUG.
_CHATTY_LOGGERS: tuple[str, ...] = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "trafilatura",
    "htmldate",
    "courlan",
)


def _is_secret_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in _SECRET_KEY_PARTS)


def _mask_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Mask credentials before a record reaches the renderer.

    Values under secret-looking keys are replaced, one level of nested dicts
    (``headers={...}``) is checked the same way, and bearer tokens inside
    string values are cut out.
    """
    for key, value in list(event_dict.items()):
        if _is_secret_key(key):
            event_dict[key] = _REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                nested: _REDACTED if _is_secret_key(nested) else nested_value
                for nested, nested_value in value.items()
            }
        elif isinstance(value, str):
            event_dict[key] = _BEARER_IN_TEXT.sub(r"\1" + _REDACTED, value)
    return event_dict


def _add_request_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    request_id = request_id_var.get()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _service_tagger(service: str) -> Processor:
    def _add_service(
        logger: WrappedLogger,  # noqa: ARG001
        method_name: str,  # noqa: ARG001
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return _add_service


def _pre_chain(service: str) -> list[Processor]:
    """Processors shared by structlog-native and stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _service_tagger(service),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _mask_secrets,
    ]


def configure_logging(log_level: str = "INFO", service: str = "api") -> None:
    """Route structlog and stdlib logging through one stdout handler.

    ``"DEBUG"`` renders coloured console lines; any other level renders one
    JSON object per line with ``timestamp``, ``level``, ``logger``,
    ``service``, ``event`` and, while serving a request, ``request_id``.

    Calling it again replaces the previous configuration.

    Args:
        log_level: Level name, case-insensitive.  Unknown names mean INFO.
        service: Value of the ``service`` field, e.g. ``"api"`` or ``"crawler"``.
    """
    level_name = log_level.upper()
    level = getattr(logging, level_name, logging.INFO)
    console = level_name == "DEBUG"
    pre_chain = _pre_chain(service)

    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True)
        if console
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if console else logging.WARNING)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
