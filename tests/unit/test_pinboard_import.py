"""Unit tests for the Pinboard export importer."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from link_archiver.core.exceptions import ValidationError
from link_archiver.core.normalizer import normalize_bookmark
from link_archiver.imports.pinboard import PinboardPost, batched, load_export, parse_export

_EXPORT = [
    {
        "href": "https://example.com/a",
        "description": "Example A",
        "extended": "A longer note",
        "meta": "abc",
        "hash": "def",
        "time": "2021-03-01T20:39:44Z",
        "shared": "no",
        "toread": "yes",
        "tags": "python  web",
    },
    {
        "href": "https://example.com/b",
        "description": False,
        "extended": "",
        "time": "2021-03-02T08:00:00Z",
        "tags": "",
    },
]


class TestPinboardPost:
    def test_maps_fields(self) -> None:
        bookmark = PinboardPost.model_validate(_EXPORT[0]).to_bookmark()

        assert bookmark.url == "https://example.com/a"
        assert bookmark.title == "Example A"
        assert bookmark.description == "A longer note"
        assert bookmark.tags == ["python", "web"]
        assert bookmark.time == datetime(2021, 3, 1, 20, 39, 44, tzinfo=timezone.utc)

    def test_false_description_and_empty_tags(self) -> None:
        bookmark = PinboardPost.model_validate(_EXPORT[1]).to_bookmark()

        assert bookmark.title is None
        assert bookmark.description is None
        assert bookmark.tags is None

    def test_converted_bookmark_normalizes(self) -> None:
        bookmark = PinboardPost.model_validate(_EXPORT[1]).to_bookmark()
        entry = normalize_bookmark(bookmark, datetime.now(timezone.utc))

        assert entry.created_at == datetime(2021, 3, 2, 8, 0, tzinfo=timezone.utc)


class TestParseExport:
    def test_rejects_non_list(self) -> None:
        with pytest.raises(ValidationError, match="JSON array"):
            parse_export({"posts": []})

    def test_reports_bad_post_index(self) -> None:
        with pytest.raises(ValidationError, match="index 1"):
            parse_export([_EXPORT[0], {"description": "no href"}])

    def test_rejects_non_text_description(self) -> None:
        with pytest.raises(ValidationError, match="index 0"):
            parse_export([{"href": "https://example.com/", "description": 12}])


class TestLoadExport:
    def test_loads_file(self, tmp_path) -> None:
        path = tmp_path / "pinboard.json"
        path.write_text(json.dumps(_EXPORT), encoding="utf-8")

        bookmarks = load_export(path)

        assert [b.url for b in bookmarks] == ["https://example.com/a", "https://example.com/b"]

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValidationError, match="not valid JSON"):
            load_export(path)


class TestBatched:
    def test_splits_into_slices(self) -> None:
        bookmarks = [PinboardPost(href=f"https://e.com/{i}").to_bookmark() for i in range(5)]

        sizes = [len(batch) for batch in batched(bookmarks, 2)]

        assert sizes == [2, 2, 1]

    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValueError):
            list(batched([], 0))
