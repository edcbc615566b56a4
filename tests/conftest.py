"""Shared test fixtures."""

import os

# Settings() requires a secret; set it before anything imports config.settings
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("AUTH_RATE_LIMIT_PER_MINUTE", "1000")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints (no lifespan, no DB)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
