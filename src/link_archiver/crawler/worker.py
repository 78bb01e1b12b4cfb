"""Crawler worker: lease URLs from the API, render them, report results.

One poll cycle (:meth:`CrawlerWorker.run_once`):

1. ``GET /api/crawl/pending`` leases a batch of URLs.
2. Every URL is rendered concurrently, bounded by
   ``CrawlerSettings.max_concurrent_renders``.
3. Each successful render is reported with ``POST /api/crawl``.

A URL whose render fails is not reported; its lease expires and it is handed
out again later.  Failures are logged and never stop the loop.

Run it with the ``link-archiver-crawler`` console script.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from link_archiver.core.exceptions import ApiClientError, RenderError
from link_archiver.core.logging_config import configure_logging
from link_archiver.crawler.client import ArchiverClient
from link_archiver.crawler.config import CrawlerSettings
from link_archiver.crawler.renderers import Renderer, build_renderer

logger = logging.getLogger(__name__)


class CrawlerWorker:
    """Poll-render-report loop.

    Args:
        client: API client used to lease and report.
        renderer: Started renderer.
        settings: Poll interval, lease size and concurrency bound.
    """

    def __init__(
        self,
        client: ArchiverClient,
        renderer: Renderer,
        settings: CrawlerSettings,
    ) -> None:
        self._client = client
        self._renderer = renderer
        self._settings = settings
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_renders)

    async def crawl_url(self, url: str) -> bool:
        """Render one URL and report it.

        Returns:
            ``True`` if a crawl record was saved, ``False`` if the render
            failed and nothing was reported.

        Raises:
            ApiClientError: If reporting the result failed.
        """
        async with self._semaphore:
            try:
                page = await self._renderer.render(url)
            except RenderError as exc:
                logger.warning("crawler: render failed for %s: %s", url, exc)
                return False

        title_updated = await self._client.save_crawl(url, page.title, page.body)
        logger.info(
            "crawler: saved crawl for %s (status=%s, title_updated=%s)",
            url,
            page.status_code,
            title_updated,
        )
        return True

    async def run_once(self) -> int:
        """Lease and process one batch.

        Returns:
            Number of crawl records saved.

        Raises:
            ApiClientError: If the lease request itself failed.
        """
        urls = await self._client.pending_crawls(self._settings.lease_limit)
        if not urls:
            return 0

        logger.info("crawler: leased %d url(s)", len(urls))
        results = await asyncio.gather(
            *(self.crawl_url(url) for url in urls),
            return_exceptions=True,
        )

        saved = 0
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.error("crawler: could not save crawl for %s: %s", url, result)
            elif isinstance(result, BaseException):
                raise result
            elif result:
                saved += 1
        return saved

    async def run_forever(self, stop: Optional[asyncio.Event] = None) -> None:
        """Poll until ``stop`` is set (or forever when ``stop`` is ``None``)."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            try:
                await self.run_once()
            except ApiClientError as exc:
                logger.warning(
                    "crawler: lease request failed (status=%s): %s",
                    exc.status_code,
                    exc,
                )
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._settings.poll_interval)
            except asyncio.TimeoutError:
                pass


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(settings: CrawlerSettings, once: bool) -> None:
    async with ArchiverClient(settings) as client, build_renderer(settings) as renderer:
        worker = CrawlerWorker(client, renderer, settings)
        if once:
            saved = await worker.run_once()
            logger.info("crawler: single pass complete, %d crawl(s) saved", saved)
        else:
            logger.info(
                "crawler: polling %s every %.1fs with the %s renderer",
                settings.api_url,
                settings.poll_interval,
                settings.renderer,
            )
            await worker.run_forever()


def main(argv: Optional[list[str]] = None) -> None:
    """Console-script entry point for ``link-archiver-crawler``."""
    parser = argparse.ArgumentParser(description="Link Archiver crawler worker")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process a single lease batch and exit.",
    )
    args = parser.parse_args(argv)

    settings = CrawlerSettings()
    configure_logging(settings.log_level, service="crawler")
    if not settings.api_key:
        logger.warning("crawler: ARCHIVER_API_KEY is not set; API calls will be rejected")

    try:
        asyncio.run(_run(settings, once=args.once))
    except KeyboardInterrupt:
        logger.info("crawler: interrupted, shutting down")


if __name__ == "__main__":
    main()
