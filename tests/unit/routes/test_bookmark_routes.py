"""Route tests for POST /api/bookmark, auth gate and error envelopes."""

from __future__ import annotations

import pytest

from link_archiver.api.dependencies import get_storage
from link_archiver.core.exceptions import StorageError
from link_archiver.storage.memory import MemoryStorage


class BrokenInsertStorage(MemoryStorage):
    """Fails every insert after the first ``ok_inserts``."""

    def __init__(self, ok_inserts: int) -> None:
        super().__init__()
        self._ok_inserts = ok_inserts

    async def insert_bookmark(self, entry) -> bool:
        if self._ok_inserts <= 0:
            raise StorageError("storage operation failed") from OSError("disk full")
        self._ok_inserts -= 1
        return await super().insert_bookmark(entry)


def _payload(*urls: str) -> dict:
    return {"bookmarks": [{"url": url} for url in urls]}


@pytest.mark.asyncio
class TestAuthGate:
    async def test_missing_token_rejected(self, client) -> None:
        resp = await client.post("/api/bookmark", json=_payload("https://a.example/"))

        assert resp.status_code == 401
        assert resp.json() == {"status": "error", "error": True, "message": "missing auth token"}

    async def test_unknown_token_rejected(self, client, api_key) -> None:
        resp = await client.post(
            "/api/bookmark",
            json=_payload("https://a.example/"),
            headers={"Authorization": "Bearer not-a-real-key"},
        )

        assert resp.status_code == 401
        assert resp.json()["message"] == "invalid auth token"

    async def test_other_scheme_treated_as_missing(self, client, api_key) -> None:
        resp = await client.post(
            "/api/bookmark",
            json=_payload("https://a.example/"),
            headers={"Authorization": f"Basic {api_key}"},
        )

        assert resp.status_code == 401
        assert resp.json()["message"] == "missing auth token"

    async def test_rejected_request_writes_nothing(self, client, memory_storage) -> None:
        await client.post("/api/bookmark", json=_payload("https://a.example/"))

        assert await memory_storage.get_bookmark("https://a.example/") is None

    async def test_revoked_key_rejected(self, client, memory_storage, auth_headers, api_key) -> None:
        await memory_storage.revoke_api_key(api_key)

        resp = await client.post(
            "/api/bookmark", json=_payload("https://a.example/"), headers=auth_headers
        )

        assert resp.status_code == 401


@pytest.mark.asyncio
class TestAddBookmarks:
    async def test_add_returns_counts(self, client, auth_headers) -> None:
        resp = await client.post(
            "/api/bookmark",
            json=_payload("https://a.example/", "https://b.example/"),
            headers=auth_headers,
        )

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "inserted": 2, "ignored": 0}

    async def test_repeat_add_is_ignored(self, client, auth_headers) -> None:
        payload = _payload("https://a.example/")
        await client.post("/api/bookmark", json=payload, headers=auth_headers)

        resp = await client.post("/api/bookmark", json=payload, headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "inserted": 0, "ignored": 1}

    async def test_normalization_applied(self, client, auth_headers, memory_storage) -> None:
        resp = await client.post(
            "/api/bookmark",
            json={
                "bookmarks": [
                    {
                        "url": "https://a.example/",
                        "title": "https://a.example/",
                        "description": False,
                        "tags": [],
                        "time": "2020-02-03T04:05:06Z",
                    }
                ]
            },
            headers=auth_headers,
        )

        assert resp.status_code == 200
        stored = await memory_storage.get_bookmark("https://a.example/")
        assert stored.title is None
        assert stored.description is None
        assert stored.tags is None
        assert stored.created_at.isoformat() == "2020-02-03T04:05:06+00:00"

    async def test_empty_batch_is_400(self, client, auth_headers) -> None:
        resp = await client.post("/api/bookmark", json={"bookmarks": []}, headers=auth_headers)

        assert resp.status_code == 400
        assert resp.json() == {
            "status": "error",
            "error": True,
            "message": "no bookmarks provided",
        }

    async def test_blank_url_is_400(self, client, auth_headers) -> None:
        resp = await client.post("/api/bookmark", json=_payload(" "), headers=auth_headers)

        assert resp.status_code == 400
        assert resp.json()["message"] == "no url provided"

    async def test_malformed_body_is_400(self, client, auth_headers) -> None:
        resp = await client.post(
            "/api/bookmark", json={"bookmarks": [{"title": "no url"}]}, headers=auth_headers
        )

        assert resp.status_code == 400
        assert resp.json()["message"] == "invalid request"

    async def test_storage_failure_on_first_item_is_500(self, app, client) -> None:
        storage = BrokenInsertStorage(ok_inserts=0)
        await storage.add_api_key("k" * 64)
        app.dependency_overrides[get_storage] = lambda: storage

        resp = await client.post(
            "/api/bookmark",
            json=_payload("https://a.example/"),
            headers={"Authorization": "Bearer " + "k" * 64},
        )

        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "error"
        assert body["message"] == "storage operation failed"
        assert "disk full" not in resp.text

    async def test_partial_failure_reports_progress(self, app, client) -> None:
        storage = BrokenInsertStorage(ok_inserts=2)
        await storage.add_api_key("k" * 64)
        app.dependency_overrides[get_storage] = lambda: storage

        resp = await client.post(
            "/api/bookmark",
            json=_payload("https://a.example/", "https://b.example/", "https://c.example/"),
            headers={"Authorization": "Bearer " + "k" * 64},
        )

        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "partial"
        assert body["error"] is True
        assert body["failed_index"] == 2
        assert body["processed"] == 2
        assert await storage.get_bookmark("https://b.example/") is not None
        assert await storage.get_bookmark("https://c.example/") is None
