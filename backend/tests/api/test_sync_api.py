"""API tests for Sync endpoints."""

from typing import Any, Dict

import pytest
from httpx import AsyncClient

from yuque_mirror.infrastructure.remote import RemoteError

CONTEXT: Dict[str, Any] = {"book-1": {"user_login": "alice", "slug": "handbook", "name": "Engineering Handbook"}}


class TestSyncAPI:
    """API tests for sync endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_start_sync_success(self, client: AsyncClient, sync_dir):
        """A full run writes the documents and records history."""
        response = await client.post("/api/v1/sync/start", json={"book_ids": ["book-1"], "book_context": CONTEXT})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["total_docs"] == 3
        assert data["synced_docs"] == 3
        assert data["failed_docs"] == 0
        assert data["completed"] is True
        assert (sync_dir / "Engineering Handbook" / "Getting Started.md").exists()

        history = await client.get(f"/api/v1/sync/history/{data['history_id']}")
        assert history.status_code == 200
        assert history.json()["status"] == "success"
        assert history.json()["synced_docs"] == 3

    @pytest.mark.asyncio
    async def test_start_sync_empty_document_filter(self, client: AsyncClient):
        """An empty document list syncs every changed document."""
        response = await client.post(
            "/api/v1/sync/start", json={"book_ids": ["book-1"], "document_ids": [], "book_context": CONTEXT}
        )

        assert response.status_code == 200
        assert response.json()["total_docs"] == 3
        assert response.json()["synced_docs"] == 3

    @pytest.mark.asyncio
    async def test_start_sync_without_books(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/start", json={"book_ids": []})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["errors"]

    @pytest.mark.asyncio
    async def test_start_sync_unknown_book(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/start", json={"book_ids": ["book-1"]})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["errors"] == ["Book book-1 not found"]

    @pytest.mark.asyncio
    async def test_start_sync_invalid_body(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/start", json={"book_ids": "book-1", "force": "sometimes"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status_when_idle(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/status")

        assert response.status_code == 200
        data = response.json()
        assert data["is_running"] is False
        assert data["history_id"] is None

    @pytest.mark.asyncio
    async def test_cancel_when_idle(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/cancel")

        assert response.status_code == 200
        assert response.json() == {"cancelled": False}

    @pytest.mark.asyncio
    async def test_detect_changes(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/changes", json={"book_ids": ["book-1"]})

        assert response.status_code == 200
        data = response.json()
        assert [change["id"] for change in data["new"]] == ["101", "102", "103"]
        assert data["modified"] == []
        assert data["deleted"] == []

    @pytest.mark.asyncio
    async def test_detect_changes_validation(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/changes", json={"book_ids": []})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_detect_changes_without_session(self, client: AsyncClient, fake_remote):
        fake_remote.credentials = None

        response = await client.post("/api/v1/sync/changes", json={"book_ids": ["book-1"]})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_detect_changes_remote_failure(self, client: AsyncClient, fake_remote):
        fake_remote.list_error = RemoteError("Yuque returned 503")

        response = await client.post("/api/v1/sync/changes", json={"book_ids": ["book-1"]})

        assert response.status_code == 502
        assert response.json()["detail"] == "Yuque returned 503"

    @pytest.mark.asyncio
    async def test_no_interrupted_session(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/interrupted")
        assert response.status_code == 200
        assert response.json() is None

        response = await client.post("/api/v1/sync/resume")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_history(self, client: AsyncClient):
        for _ in range(2):
            await client.post("/api/v1/sync/start", json={"book_ids": ["book-1"], "book_context": CONTEXT})

        response = await client.get("/api/v1/sync/history", params={"limit": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["history"][0]["synced_docs"] == 0

    @pytest.mark.asyncio
    async def test_history_not_found(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/history/99999")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_history_limit_validation(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/history", params={"limit": 0})

        assert response.status_code == 422
