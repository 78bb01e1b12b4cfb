"""Headless Chromium renderer for JavaScript-heavy pages.

Optional dependency: selected with ``renderer="playwright"`` (env
``RENDERER=playwright``).  If Playwright is not installed,
:meth:`PlaywrightRenderer.start` raises ``ImportError`` with installation
instructions.

Install Playwright and download the Chromium browser binary::

    pip install "link-archiver[playwright]"
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from link_archiver.core.exceptions import RenderError
from link_archiver.crawler.config import USER_AGENT, VIEWPORT
from link_archiver.crawler.renderers import RenderedPage, Renderer

logger = logging.getLogger(__name__)

# Guard import: playwright is an optional dependency
try:
    from playwright.async_api import async_playwright as _async_playwright

    _PLAYWRIGHT_AVAILABLE = True
except ImportError:
    _PLAYWRIGHT_AVAILABLE = False

_BODY_TEXT_JS = "() => document.body ? document.body.innerText : ''"


class PlaywrightRenderer(Renderer):
    """Render pages in one long-lived headless Chromium instance.

    Each :meth:`render` call opens a fresh browser context so cookies and
    storage never leak between URLs.  The browser itself is launched once in
    :meth:`start` and shared by concurrent renders.

    Args:
        timeout: Navigation timeout in seconds.
        settle_seconds: Pause after the ``load`` event so client-side
            rendering can finish before the page is read.
    """

    def __init__(self, timeout: float, settle_seconds: float = 5.0) -> None:
        self._timeout_ms = timeout * 1000
        self._settle_seconds = settle_seconds
        self._playwright: Optional[Any] = None
        self._browser: Optional[Any] = None

    async def start(self) -> None:
        if self._browser is not None:
            return
        if not _PLAYWRIGHT_AVAILABLE:
            raise ImportError(
                "Playwright is not installed. "
                "Install it with: pip install playwright>=1.48 && playwright install chromium"
            )
        self._playwright = await _async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=True)
        logger.info("crawler: headless browser started")

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def render(self, url: str) -> RenderedPage:
        if self._browser is None:
            await self.start()
        assert self._browser is not None

        context = await self._browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
        try:
            page = await context.new_page()
            try:
                response = await page.goto(url, timeout=self._timeout_ms, wait_until="load")
            except Exception as exc:  # noqa: BLE001
                raise RenderError(f"navigation failed: {exc}", url=url) from exc

            status_code = response.status if response else None
            if status_code is not None and status_code >= 400:
                logger.info("crawler: HTTP %d for %s", status_code, url)
                return RenderedPage(title=None, body=None, status_code=status_code)

            if self._settle_seconds:
                await asyncio.sleep(self._settle_seconds)

            try:
                title = await page.title()
                body = await page.evaluate(_BODY_TEXT_JS)
            except Exception as exc:  # noqa: BLE001
                raise RenderError(f"could not read page: {exc}", url=url) from exc

            return RenderedPage(
                title=title or None,
                body=body or None,
                status_code=status_code,
            )
        finally:
            await context.close()
