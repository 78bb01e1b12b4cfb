"""Crawler worker for Link Archiver.

Leases pending URLs from the API, renders each page and reports the title
and text back.

Modules:
    config: ``CrawlerSettings`` and rendering constants.
    client: ``ArchiverClient`` for the ``/api`` endpoints.
    content_extractor: trafilatura-based title/text extraction.
    renderers: ``Renderer`` interface and the httpx ``HttpRenderer``.
    playwright_renderer: headless Chromium ``PlaywrightRenderer`` (optional).
    worker: ``CrawlerWorker`` poll loop and the console entry point.
"""
