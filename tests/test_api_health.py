"""Tests for health check endpoints."""

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from inkforge.config import settings
from inkforge.main import app


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def test_app_imports() -> None:
    """The app is importable and titled from settings."""
    assert app.title == settings.app_name


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe returns healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_health_does_not_probe_dependencies(self, client: AsyncClient) -> None:
        """Health stays up without the embedding provider or search engine."""
        response = await client.get("/health")

        data = response.json()
        assert data.get("ollama") is None
        assert data.get("qdrant") is None
