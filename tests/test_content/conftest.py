"""Shared fixtures for content repository tests."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def content_row() -> dict:
    """A dict mimicking an asyncpg Record for a content row."""
    return {
        "id": "c-1",
        "source_id": "src-1",
        "external_id": "-1001234567890:42",
        "text": "Central bank holds rates",
        "raw_data": '{"id": 42, "message": "Central bank holds rates"}',
        "source_date": datetime(2025, 1, 2, tzinfo=timezone.utc),
        "status": "pending",
        "is_vectorized": False,
        "embedding_model": None,
        "vector_id": None,
        "ai_analysis": None,
        "created_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
    }
