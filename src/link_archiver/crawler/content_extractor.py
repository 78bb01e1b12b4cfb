"""Title and main-text extraction from raw HTML.

Primary extractor: ``trafilatura`` (boilerplate removal plus metadata).
Fallback: stdlib ``html.parser`` tag stripping when trafilatura finds no
content, e.g. very short pages.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from dataclasses import dataclass
from html.parser import HTMLParser

import trafilatura

from link_archiver.crawler.config import MAX_CONTENT_BYTES

logger = logging.getLogger(__name__)


@dataclass
class ExtractedContent:
    """Result of extracting content from an HTML page.

    Attributes:
        text: Cleaned page text, or ``None`` if nothing readable was found.
        title: Page title, or ``None`` if not detected.
    """

    text: str | None
    title: str | None


class _TagStripper(HTMLParser):
    """Minimal HTML parser that collects visible text and the ``<title>``."""

    _SKIP_TAGS: frozenset[str] = frozenset(
        {"script", "style", "noscript", "head", "meta", "link", "template"}
    )

    def __init__(self) -> None:
        super().__init__()
        self._chunks: list[str] = []
        self._title_chunks: list[str] = []
        self._skip_depth: int = 0
        self._in_title: bool = False

    def handle_starttag(self, tag: str, attrs: list) -> None:  # type: ignore[override]
        tag = tag.lower()
        if tag == "title":
            self._in_title = True
        if tag in self._SKIP_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag == "title":
            self._in_title = False
        if tag in self._SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self._title_chunks.append(data)
        elif self._skip_depth == 0:
            self._chunks.append(data)

    @staticmethod
    def _collapse(chunks: list[str]) -> str:
        return re.sub(r"\s+", " ", html_module.unescape(" ".join(chunks))).strip()

    def get_text(self) -> str:
        return self._collapse(self._chunks)

    def get_title(self) -> str:
        return self._collapse(self._title_chunks)


def _strip_tags(html: str) -> _TagStripper:
    stripper = _TagStripper()
    stripper.feed(html)
    stripper.close()
    return stripper


def _truncate(text: str, url: str) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= MAX_CONTENT_BYTES:
        return text
    logger.debug("crawler: truncated extracted text to %d bytes for %s", MAX_CONTENT_BYTES, url)
    return encoded[:MAX_CONTENT_BYTES].decode("utf-8", errors="ignore")


def extract_from_html(html: str, url: str) -> ExtractedContent:
    """Extract the page title and main text from raw HTML.

    Args:
        html: Raw HTML string (may be partial or malformed).
        url: URL of the page (used by trafilatura for heuristics).

    Returns:
        An :class:`ExtractedContent`.  Either field may be ``None``.
    """
    text: str | None = None
    title: str | None = None

    try:
        text = trafilatura.extract(
            html,
            url=url,
            include_comments=False,
            include_tables=True,
            output_format="txt",
        ) or None
        meta = trafilatura.extract_metadata(html, default_url=url)
        if meta is not None:
            title = getattr(meta, "title", None) or None
    except Exception as exc:  # noqa: BLE001
        logger.warning("crawler: trafilatura extraction failed for %s: %s", url, exc)

    if not text or not title:
        stripper = _strip_tags(html)
        text = text or stripper.get_text() or None
        title = title or stripper.get_title() or None

    if text:
        # NUL bytes are rejected by PostgreSQL text columns.
        text = _truncate(text.replace("\x00", ""), url)

    return ExtractedContent(text=text, title=title)
