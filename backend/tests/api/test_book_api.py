"""API tests for Book endpoints."""

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from yuque_mirror.infrastructure.remote import RemoteBook, RemoteError
from yuque_mirror.modules.book.schemas import BookUpsert
from yuque_mirror.modules.book.services import BookService


@pytest_asyncio.fixture
async def stored_book(db_session: AsyncSession):
    await BookService().upsert_books(
        [BookUpsert(id="book-1", slug="handbook", name="Engineering Handbook", user_login="alice")], db_session
    )
    return "book-1"


class TestBookAPI:
    """API tests for book endpoints."""

    @pytest.mark.asyncio
    async def test_list_books_empty(self, client: AsyncClient):
        response = await client.get("/api/v1/books")

        assert response.status_code == 200
        assert response.json() == {"books": [], "total": 0, "from_cache": False}

    @pytest.mark.asyncio
    async def test_refresh_books(self, client: AsyncClient, fake_remote):
        fake_remote.books = [
            RemoteBook(id="book-1", slug="handbook", name="Engineering Handbook", user_login="alice", book_type="owner")
        ]

        response = await client.post("/api/v1/books/refresh")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["books"][0]["slug"] == "handbook"
        assert data["from_cache"] is False

        listed = await client.get("/api/v1/books")
        assert listed.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_refresh_books_from_cache(self, client: AsyncClient, fake_remote, stored_book):
        fake_remote.list_error = RemoteError("timeout")

        response = await client.post("/api/v1/books/refresh")

        assert response.status_code == 200
        assert response.json()["from_cache"] is True
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_refresh_books_without_session(self, client: AsyncClient, fake_remote):
        fake_remote.credentials = None

        response = await client.post("/api/v1/books/refresh")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_book_documents(self, client: AsyncClient, stored_book):
        refreshed = await client.post(f"/api/v1/books/{stored_book}/documents/refresh")
        assert refreshed.status_code == 200
        assert refreshed.json()["total"] == 3

        response = await client.get(f"/api/v1/books/{stored_book}/documents")

        assert response.status_code == 200
        data = response.json()
        assert [doc["title"] for doc in data["documents"]] == ["Architecture", "Getting Started", "Runbook"]
        assert all(doc["sync_status"] == "new" for doc in data["documents"])

    @pytest.mark.asyncio
    async def test_refresh_documents_unknown_book(self, client: AsyncClient):
        response = await client.post("/api/v1/books/missing/documents/refresh")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_book(self, client: AsyncClient, stored_book):
        response = await client.delete(f"/api/v1/books/{stored_book}")
        assert response.status_code == 204

        response = await client.delete(f"/api/v1/books/{stored_book}")
        assert response.status_code == 404
