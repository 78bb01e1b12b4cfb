"""Crawler worker configuration and rendering constants.

``CrawlerSettings`` is built once in the worker entry point and passed into
:class:`~link_archiver.crawler.client.ArchiverClient` and
:class:`~link_archiver.crawler.worker.CrawlerWorker`; no other module reads
the environment.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Rendering constants
# ---------------------------------------------------------------------------

#: User-agent string sent by both renderers.  Some sites serve stripped-down
#: pages to unknown agents, so a desktop browser string is used.
USER_AGENT: str = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

#: Viewport used by the headless browser.
VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

#: Maximum extracted text size (bytes) sent back to the API.
MAX_CONTENT_BYTES: int = 900 * 1024  # 900 KB

#: Content-Type prefixes for resources that have no extractable page text.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class CrawlerSettings(BaseSettings):
    """Crawler worker configuration backed by environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = "http://localhost:8080"
    """Base URL of the Link Archiver API (``API_URL``)."""

    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ARCHIVER_API_KEY", "api_key"),
    )
    """Bearer token sent on every API call (``ARCHIVER_API_KEY``)."""

    api_timeout: float = Field(default=30.0, gt=0)
    """Seconds to wait for an API response."""

    poll_interval: float = Field(default=1.0, gt=0)
    """Seconds between lease polls."""

    lease_limit: int | None = Field(default=None, ge=1)
    """URLs requested per poll.  ``None`` lets the API pick its default."""

    renderer: Literal["http", "playwright"] = "http"
    """``"http"`` fetches with httpx and extracts text with trafilatura;
    ``"playwright"`` drives headless Chromium (needs the ``playwright`` extra)."""

    render_timeout: float = Field(default=30.0, gt=0)
    """Per-page load timeout in seconds."""

    settle_seconds: float = Field(default=5.0, ge=0)
    """Seconds the headless browser waits after load before reading the page."""

    max_concurrent_renders: int = Field(default=5, ge=1)
    """Upper bound on pages rendered at the same time."""

    log_level: str = "INFO"
    """Logging verbosity for the worker process."""
