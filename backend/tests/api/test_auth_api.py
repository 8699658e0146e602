"""API tests for the remote session endpoints."""

import pytest
from httpx import AsyncClient


class TestAuthAPI:
    """API tests for auth endpoints."""

    @pytest.mark.asyncio
    async def test_no_session(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "session": None}

    @pytest.mark.asyncio
    async def test_store_and_clear_session(self, client: AsyncClient):
        """Stored sessions are reported without their cookies."""
        response = await client.put(
            "/api/v1/auth/session",
            json={"user_id": "2193", "user_name": "Alice", "login": "alice", "cookies": "_yuque_session=abc"},
        )
        assert response.status_code == 200
        assert response.json()["authenticated"] is True

        status = await client.get("/api/v1/auth/session")
        session = status.json()["session"]
        assert session["login"] == "alice"
        assert session["user_name"] == "Alice"
        assert "cookies" not in session

        cleared = await client.delete("/api/v1/auth/session")
        assert cleared.status_code == 204
        assert (await client.get("/api/v1/auth/session")).json()["authenticated"] is False

    @pytest.mark.asyncio
    async def test_store_session_validation(self, client: AsyncClient):
        response = await client.put("/api/v1/auth/session", json={"login": "alice", "cookies": ""})

        assert response.status_code == 422
