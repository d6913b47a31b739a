"""Shared fixtures for worker tests."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import httpx
import pytest

from cicero.schemas.meeting import Meeting

DENVER = ZoneInfo("America/Denver")


@pytest.fixture
def mock_pool():
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    conn = MagicMock()

    # Setup async context manager
    conn.execute = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock()
    conn.fetchval = AsyncMock()

    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)

    conn.transaction.return_value.__aenter__ = AsyncMock()
    conn.transaction.return_value.__aexit__ = AsyncMock(return_value=False)

    return pool, conn


@pytest.fixture
def make_meeting():
    """Build a stored meeting with overridable fields."""

    def _make(**overrides) -> Meeting:
        fields = {
            "id": "meeting-1",
            "municode_id": "abc-123",
            "date": datetime(2026, 1, 14, 18, 0, tzinfo=DENVER),
            "title": "City Council Regular Meeting",
            "type": "regular",
        }
        fields.update(overrides)
        return Meeting(**fields)

    return _make


@pytest.fixture
def http_response():
    """Build real httpx responses so raise_for_status behaves as in production."""

    def _make(json_data=None, status_code: int = 200, text: str = "") -> httpx.Response:
        request = httpx.Request("GET", "https://example.test")
        if json_data is not None:
            return httpx.Response(status_code, json=json_data, request=request)
        return httpx.Response(status_code, text=text, request=request)

    return _make
