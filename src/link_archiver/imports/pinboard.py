"""Pinboard JSON export importer.

Pinboard's ``posts/all?format=json`` export is a list of objects::

    {
        "href": "https://example.com/",
        "description": "Example",       # the title, or false when unset
        "extended": "A longer note",
        "tags": "python web",
        "time": "2021-03-01T20:39:44Z",
        "shared": "no",
        "toread": "no"
    }

:func:`load_export` parses such a file into :class:`PinboardPost` objects;
:meth:`PinboardPost.to_bookmark` maps one post onto the ingest schema.
Normalization (title equal to URL, blank strings, empty tag lists) is left
to the API so that imported and directly submitted bookmarks follow the
same rules.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from link_archiver.core.exceptions import ValidationError
from link_archiver.core.normalizer import clean_text
from link_archiver.core.schemas.bookmark import BookmarkCreate

logger = logging.getLogger(__name__)


class PinboardPost(BaseModel):
    """One post from a Pinboard export.  Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    href: str
    description: Union[str, bool, None] = None
    extended: Union[str, bool, None] = None
    tags: Union[str, List[str], None] = None
    time: Optional[datetime] = None

    @field_validator("description", "extended", mode="before")
    @classmethod
    def _decode_optional_text(cls, value: Any) -> Optional[str]:
        # Pinboard writes ``false`` for an untitled post.
        return clean_text(value)

    def tag_list(self) -> Optional[list[str]]:
        """Split the space-separated tag string.  ``None`` when there are none."""
        if self.tags is None:
            return None
        raw = self.tags.split() if isinstance(self.tags, str) else self.tags
        return [tag for tag in raw if tag.strip()] or None

    def to_bookmark(self) -> BookmarkCreate:
        return BookmarkCreate(
            url=self.href,
            title=self.description,
            description=self.extended,
            tags=self.tag_list(),
            time=self.time,
        )


def parse_export(data: Any) -> list[PinboardPost]:
    """Validate decoded export JSON.

    Raises:
        ValidationError: If the document is not a list of posts or a post
            is malformed.  The message names the offending position.
    """
    if not isinstance(data, list):
        raise ValidationError("pinboard export must be a JSON array")

    posts: list[PinboardPost] = []
    for index, item in enumerate(data):
        try:
            posts.append(PinboardPost.model_validate(item))
        except (PydanticValidationError, ValidationError) as exc:
            raise ValidationError(f"invalid pinboard post at index {index}: {exc}") from exc
    return posts


def load_export(path: Union[str, Path]) -> list[BookmarkCreate]:
    """Read a Pinboard export file and convert every post to a bookmark.

    Raises:
        ValidationError: If the file is not valid JSON or not a Pinboard export.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{path} is not valid JSON: {exc}") from exc

    bookmarks = [post.to_bookmark() for post in parse_export(data)]
    logger.info("pinboard: loaded %d post(s) from %s", len(bookmarks), path)
    return bookmarks


def batched(
    bookmarks: Sequence[BookmarkCreate], size: int
) -> Iterator[Sequence[BookmarkCreate]]:
    """Yield consecutive slices of at most ``size`` bookmarks."""
    if size < 1:
        raise ValueError("batch size must be positive")
    for start in range(0, len(bookmarks), size):
        yield bookmarks[start : start + size]
