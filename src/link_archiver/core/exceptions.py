"""Application-wide exception hierarchy for Link Archiver.

All custom exceptions subclass ``LinkArchiverError``, enabling consistent
error handling and structured logging across the API and the crawler.

Hierarchy::

    LinkArchiverError
    ├── ValidationError
    │   └── EmptyBatchError
    ├── AuthError
    ├── StorageError
    │   └── PartialBatchFailure  (failed_index, processed, url)
    ├── RenderError              (url)
    └── ApiClientError           (status_code)
"""

from __future__ import annotations


class LinkArchiverError(Exception):
    """Base class for all Link Archiver exceptions."""


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


class ValidationError(LinkArchiverError):
    """Raised when a request is empty or malformed.

    Always raised before any storage call is made, so a validation failure
    never leaves partial writes behind.
    """


class EmptyBatchError(ValidationError):
    """Raised when ``BookmarkStore.add`` receives an empty batch."""

    def __init__(self) -> None:
        super().__init__("no bookmarks provided")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthError(LinkArchiverError):
    """Raised when a request carries a missing or unknown bearer token."""


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageError(LinkArchiverError):
    """Raised when the durable store is unavailable or a query fails.

    The original driver exception is chained as ``__cause__``.  The message
    is safe to show to API callers; the cause is only logged.
    """


class PartialBatchFailure(StorageError):
    """Raised when ``BookmarkStore.add`` stops partway through a batch.

    Items before ``failed_index`` were committed and stay committed; the item
    at ``failed_index`` and everything after it were not written.

    Args:
        failed_index: Zero-based position of the bookmark that failed.
        processed: Number of bookmarks handled before the failure.
        url: URL of the bookmark that failed.
    """

    def __init__(self, failed_index: int, processed: int, url: str) -> None:
        super().__init__(
            f"failed to add bookmark {failed_index}; "
            f"{processed} earlier bookmark(s) were already processed"
        )
        self.failed_index = failed_index
        self.processed = processed
        self.url = url


# ---------------------------------------------------------------------------
# Crawler side
# ---------------------------------------------------------------------------


class RenderError(LinkArchiverError):
    """Raised when a renderer cannot load a page at all (network error, timeout).

    Args:
        message: Description of the failure.
        url: The URL being rendered.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ApiClientError(LinkArchiverError):
    """Raised by :class:`~link_archiver.crawler.client.ArchiverClient` when
    the API answers with a non-2xx status or an error envelope.

    Args:
        message: The API's error message, or a transport error description.
        status_code: HTTP status code, or ``None`` on transport failure.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
