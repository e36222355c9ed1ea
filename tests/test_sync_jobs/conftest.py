"""Shared fixtures for sync job tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from contentflow.pipeline import SyncResult
from contentflow.sync_jobs.config import SyncQueueConfig
from contentflow.sync_jobs.queue import SyncJob


@pytest.fixture
def sync_queue_config() -> SyncQueueConfig:
    return SyncQueueConfig(
        backoff_base_delay=0.0,
        backoff_max_delay=0.0,
        max_consecutive_failures=2,
        block_ms=100,
    )


@pytest.fixture
def redis_client() -> AsyncMock:
    client = AsyncMock()
    client.xadd.return_value = "1700000000000-0"
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=["1-0", "2-0"])
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def mock_queue() -> AsyncMock:
    queue = AsyncMock()
    queue.get_pending_count.return_value = 0
    return queue


@pytest.fixture
def mock_service() -> AsyncMock:
    service = AsyncMock()
    service.sync_source.return_value = SyncResult(
        source_id="src-1", messages_processed=2, content_created=1, content_skipped=1
    )
    return service


@pytest.fixture
def job() -> SyncJob:
    return SyncJob(message_id="1-0", source_id="src-1", limit=20)
