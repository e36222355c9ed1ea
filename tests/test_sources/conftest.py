"""Shared fixtures for sources tests."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def source_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "id": "src-1",
        "type": "telegram",
        "external_id": "-1001234567890",
        "name": "News Channel",
        "is_active": True,
        "last_sync_at": None,
        "metadata": '{"username": "news_chan"}',
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
