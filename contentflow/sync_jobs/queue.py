"""
Redis Streams queue for source sync jobs.

A job names one source and an optional fetch limit. The worker acknowledges
a job only after its sync finished, so the job of a worker that died
mid-sync is reclaimed and run again.
"""

import logging
from dataclasses import dataclass, field

import redis.asyncio as redis

from contentflow.config.settings import get_settings
from contentflow.observability.tracing import TRACE_PARENT_FIELD
from contentflow.queues import BaseRedisQueue, QueueConfig, StreamConfig
from contentflow.sync_jobs.config import SyncQueueConfig

logger = logging.getLogger(__name__)


@dataclass
class SyncJob:
    """One queued sync request."""

    message_id: str
    source_id: str
    limit: int | None = None
    retry_count: int = 0
    trace_fields: dict[str, str] = field(default_factory=dict)


def _job_fields(source_id: str, limit: int | None) -> dict[str, str]:
    # Stream values are strings; "" means the pipeline default limit
    return {"source_id": source_id, "limit": str(limit) if limit else ""}


class SyncJobQueue(BaseRedisQueue[SyncJob]):
    """
    Publishes and consumes sync jobs.

    Usage:
        async with SyncJobQueue() as queue:
            await queue.publish(source_id, limit=20)
    """

    consumer_prefix = "sync_worker"

    def __init__(
        self,
        config: SyncQueueConfig | None = None,
        redis_url: str | None = None,
        client: redis.Redis | None = None,
    ):
        self._config = config or SyncQueueConfig()
        super().__init__(
            redis_url=redis_url or str(get_settings().redis_url),
            queue_config=QueueConfig(
                idle_timeout_ms=self._config.idle_timeout_ms,
                max_delivery_attempts=self._config.max_delivery_attempts,
            ),
            client=client,
        )

    def _get_stream_config(self) -> StreamConfig:
        return StreamConfig(
            stream_name=self._config.stream_name,
            consumer_group=self._config.consumer_group,
            dlq_stream_name=self._config.dlq_stream_name,
            max_stream_length=self._config.max_stream_length,
        )

    def _parse_job(
        self, message_id: str, fields: dict[str, str], retry_count: int = 0
    ) -> SyncJob:
        source_id = fields["source_id"]
        if not source_id:
            raise ValueError("empty source_id")

        limit = int(fields["limit"]) if fields.get("limit") else None
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        trace_fields = {}
        if fields.get(TRACE_PARENT_FIELD):
            trace_fields[TRACE_PARENT_FIELD] = fields[TRACE_PARENT_FIELD]

        return SyncJob(
            message_id=message_id,
            source_id=source_id,
            limit=limit,
            retry_count=retry_count,
            trace_fields=trace_fields,
        )

    async def publish(self, source_id: str, limit: int | None = None) -> str:
        """Enqueue a sync of one source and return the stream entry id."""
        message_id = await self._publish(_job_fields(source_id, limit))
        logger.debug("Queued sync of %s as %s", source_id, message_id)
        return message_id

    async def publish_batch(
        self, source_ids: list[str], limit: int | None = None
    ) -> list[str]:
        """Enqueue several syncs in one round trip."""
        message_ids = await self._publish_many(
            [_job_fields(source_id, limit) for source_id in source_ids]
        )
        if message_ids:
            logger.info("Queued %d sync jobs", len(message_ids))
        return message_ids
