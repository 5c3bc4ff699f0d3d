"""
Pytest configuration and fixtures for uiforge backend tests.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ["TESTING"] = "true"
os.environ["USE_MOCK_LLM"] = "true"
os.environ["STREAM_CHAR_DELAY_MS"] = "0"

import httpx  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.main import app  # noqa: E402


@pytest_asyncio.fixture
async def client():
    """Async HTTP client bound to the app, no network."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
