"""Normalization helpers: submitted bookmark payloads -> storage entries.

Shared by :class:`~link_archiver.core.bookmark_store.BookmarkStore`, the crawl
queue (for crawl titles and bodies) and the Pinboard importer, so every entry
point applies the same rules:

- Blank strings are stored as "absent", never as ``""``.
- A title equal to the bookmark URL is dropped.  Link-sharing clients often
  fill the title with the raw URL.
- An empty tag list is stored as "no tags", not as an empty list.
- A missing bookmark time becomes the ingestion time.

Example usage::

    from link_archiver.core.normalizer import normalize_bookmark

    entry = normalize_bookmark(payload, now=datetime.now(timezone.utc))
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Optional

from link_archiver.core.exceptions import ValidationError
from link_archiver.core.schemas.bookmark import BookmarkCreate
from link_archiver.storage.base import BookmarkEntry


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clean_text(value: Any, field: str = "value") -> Optional[str]:
    """Decode an optional text field into a stripped string or ``None``.

    Import sources are not consistent about missing values: some omit the
    key, some send ``""`` and some send ``false``.  All of those decode to
    ``None``.

    Args:
        value: Raw field value.
        field: Field name used in the error message.

    Returns:
        The stripped string, or ``None`` when the value is absent or blank.

    Raises:
        ValidationError: For values that are neither text, boolean nor null.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    raise ValidationError(f"{field} must be a string")


def normalize_url(url: Any) -> str:
    """Return the stripped URL.

    Raises:
        ValidationError: If the URL is missing or blank.
    """
    cleaned = clean_text(url, field="url")
    if cleaned is None:
        raise ValidationError("no url provided")
    return cleaned


def normalize_title(title: Any, url: str) -> Optional[str]:
    """Return the cleaned title, or ``None`` when it is blank or equals ``url``."""
    cleaned = clean_text(title, field="title")
    if cleaned is None or cleaned == url:
        return None
    return cleaned


def normalize_tags(tags: Optional[Iterable[str]]) -> Optional[list[str]]:
    """Strip tags, drop blanks and duplicates (first occurrence wins).

    Returns:
        The tag list, or ``None`` when no tags remain.
    """
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        cleaned = clean_text(tag, field="tag")
        if cleaned is not None and cleaned not in seen:
            seen.append(cleaned)
    return seen or None


def normalize_timestamp(value: Optional[datetime], now: datetime) -> datetime:
    """Return ``value`` as an aware datetime, or ``now`` when unset.

    Naive datetimes are interpreted as UTC; aware ones are converted to UTC.
    """
    if value is None:
        return now
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_bookmark(payload: BookmarkCreate, now: datetime) -> BookmarkEntry:
    """Apply every ingestion rule to one submitted bookmark.

    Args:
        payload: The bookmark as received from the client.
        now: Ingestion time, used when the payload carries no time.

    Returns:
        A :class:`BookmarkEntry` ready for ``StorageBackend.insert_bookmark``.

    Raises:
        ValidationError: If the URL is blank or a text field has the wrong type.
    """
    url = normalize_url(payload.url)
    return BookmarkEntry(
        url=url,
        title=normalize_title(payload.title, url),
        description=clean_text(payload.description, field="description"),
        tags=normalize_tags(payload.tags),
        created_at=normalize_timestamp(payload.time, now),
        lease_at=None,
    )
