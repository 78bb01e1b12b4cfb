"""Page renderers used by the crawler worker.

A renderer turns a URL into a :class:`RenderedPage` (title plus visible
text).  Two implementations exist:

- :class:`HttpRenderer`: plain httpx GET followed by trafilatura extraction.
  Fast, no browser needed, misses content built by JavaScript.
- :class:`~link_archiver.crawler.playwright_renderer.PlaywrightRenderer`:
  headless Chromium; reads ``document.title`` and ``document.body.innerText``.

Renderers raise :class:`~link_archiver.core.exceptions.RenderError` only when
the page could not be loaded at all.  A page that loads with an HTTP error
status or a non-text content type still produces a ``RenderedPage`` (with
empty fields), so the URL is recorded as crawled and not leased again.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from link_archiver.core.exceptions import RenderError
from link_archiver.crawler.config import BINARY_CONTENT_TYPES, USER_AGENT, CrawlerSettings
from link_archiver.crawler.content_extractor import extract_from_html

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedPage:
    """Outcome of rendering one URL.

    Attributes:
        title: Page title, or ``None``.
        body: Visible page text, or ``None``.
        status_code: Final HTTP status when known.
    """

    title: Optional[str]
    body: Optional[str]
    status_code: Optional[int] = None


class Renderer(abc.ABC):
    """Interface shared by all renderers.

    Renderers are async context managers; ``start`` / ``close`` acquire and
    release whatever they hold (HTTP connection pool, browser process).
    """

    async def start(self) -> None:
        """Acquire resources.  The default does nothing."""

    async def close(self) -> None:
        """Release resources.  The default does nothing."""

    async def __aenter__(self) -> "Renderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @abc.abstractmethod
    async def render(self, url: str) -> RenderedPage:
        """Render ``url``.

        Raises:
            RenderError: If the page could not be loaded.
        """


# ---------------------------------------------------------------------------
# Binary content-type check
# ---------------------------------------------------------------------------


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


# ---------------------------------------------------------------------------
# HTTP renderer
# ---------------------------------------------------------------------------


class HttpRenderer(Renderer):
    """Render pages with a plain HTTP GET and trafilatura text extraction.

    Args:
        timeout: Request timeout in seconds.
        client: Optional shared :class:`httpx.AsyncClient`.  When omitted one
            is created on :meth:`start` and closed on :meth:`close`.
    """

    def __init__(self, timeout: float, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient()

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def render(self, url: str) -> RenderedPage:
        if self._client is None:
            await self.start()
        assert self._client is not None

        try:
            response = await self._client.get(
                url,
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        except httpx.TimeoutException as exc:
            raise RenderError("timeout", url=url) from exc
        except httpx.TooManyRedirects as exc:
            raise RenderError("too many redirects", url=url) from exc
        except httpx.RequestError as exc:
            raise RenderError(f"request error: {exc}", url=url) from exc

        status_code = response.status_code
        if status_code >= 400:
            logger.info("crawler: HTTP %d for %s", status_code, url)
            return RenderedPage(title=None, body=None, status_code=status_code)

        content_type = response.headers.get("content-type", "")
        if _is_binary_content_type(content_type):
            logger.info("crawler: skipping text extraction for %s (%s)", url, content_type)
            return RenderedPage(title=None, body=None, status_code=status_code)

        extracted = extract_from_html(response.text, str(response.url))
        return RenderedPage(
            title=extracted.title,
            body=extracted.text,
            status_code=status_code,
        )


def build_renderer(settings: CrawlerSettings) -> Renderer:
    """Return the renderer selected by ``settings.renderer``."""
    if settings.renderer == "playwright":
        from link_archiver.crawler.playwright_renderer import (  # noqa: PLC0415
            PlaywrightRenderer,
        )

        return PlaywrightRenderer(
            timeout=settings.render_timeout,
            settle_seconds=settings.settle_seconds,
        )
    return HttpRenderer(timeout=settings.render_timeout)
