"""
Redis Streams queue with consumer groups, pending reclaim and a DLQ.

Delivery is at least once. Every pass of ``consume()`` first claims
messages that sat unacknowledged with some consumer for longer than the
idle timeout (XAUTOCLAIM, Redis 6.2+), then blocks for new ones. A message
delivered more than ``max_delivery_attempts`` times, or one that cannot be
decoded, is copied to the dead letter stream and acknowledged.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import redis.asyncio as redis

from contentflow.observability.metrics import get_metrics
from contentflow.observability.tracing import inject_trace_context
from contentflow.queues.config import QueueConfig

logger = logging.getLogger(__name__)

JobT = TypeVar("JobT")

# DLQ reason for messages that kept failing
MAX_RETRIES_EXCEEDED = "max_retries_exceeded"


@dataclass
class StreamConfig:
    """Stream, consumer group and dead letter stream names of one queue."""

    stream_name: str
    consumer_group: str
    dlq_stream_name: str
    max_stream_length: int = 10_000


class BaseRedisQueue(ABC, Generic[JobT]):
    """
    Typed job queue over one Redis stream.

    Subclasses set ``consumer_prefix`` and implement ``_get_stream_config()``
    and ``_parse_job()``; raising from ``_parse_job()`` dead-letters the
    message.
    """

    consumer_prefix = "worker"

    def __init__(
        self,
        redis_url: str,
        queue_config: QueueConfig | None = None,
        client: redis.Redis | None = None,
    ):
        self._redis_url = redis_url
        self._queue_config = queue_config or QueueConfig()
        # An injected client belongs to the caller and is never closed here
        self._redis: redis.Redis | None = client
        self._owns_client = client is None
        self._consumer_name: str | None = None
        self._stream_config: StreamConfig | None = None

    @abstractmethod
    def _get_stream_config(self) -> StreamConfig:
        ...

    @abstractmethod
    def _parse_job(self, message_id: str, fields: dict[str, str], retry_count: int) -> JobT:
        """Build a job from stream fields; ``retry_count`` is 0 on first delivery."""

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("Not connected to Redis. Call connect() first.")
        return self._redis

    @property
    def stream_config(self) -> StreamConfig:
        if self._stream_config is None:
            raise RuntimeError("Queue not connected. Call connect() first.")
        return self._stream_config

    async def connect(self) -> None:
        """Open the client if needed and create the consumer group once."""
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url, encoding="utf-8", decode_responses=True
            )
        self._stream_config = self._get_stream_config()
        self._consumer_name = f"{self.consumer_prefix}_{uuid.uuid4().hex[:8]}"

        cfg = self._stream_config
        try:
            await self._redis.xgroup_create(
                name=cfg.stream_name, groupname=cfg.consumer_group, id="0", mkstream=True
            )
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
        else:
            logger.info("Created consumer group %s on %s", cfg.consumer_group, cfg.stream_name)

        logger.info("Queue %s ready, consumer=%s", cfg.stream_name, self._consumer_name)

    async def close(self) -> None:
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Publishing

    def _envelope(self, fields: dict[str, str]) -> dict[str, str]:
        """Job fields plus enqueue time and the publisher's traceparent."""
        return {**fields, "queued_at": str(time.time()), **inject_trace_context()}

    async def _publish(self, fields: dict[str, str]) -> str:
        cfg = self.stream_config
        message_id = await self.redis.xadd(
            name=cfg.stream_name,
            fields=self._envelope(fields),
            maxlen=cfg.max_stream_length,
            approximate=True,
        )
        return str(message_id)

    async def _publish_many(self, batch: list[dict[str, str]]) -> list[str]:
        """XADD every entry in one pipeline round trip."""
        if not batch:
            return []
        cfg = self.stream_config
        pipe = self.redis.pipeline()
        for fields in batch:
            pipe.xadd(
                name=cfg.stream_name,
                fields=self._envelope(fields),
                maxlen=cfg.max_stream_length,
                approximate=True,
            )
        return [str(message_id) for message_id in await pipe.execute()]

    # Consuming

    async def consume(self, count: int = 10, block_ms: int = 5000) -> AsyncIterator[JobT]:
        """
        Yield jobs until cancelled, reclaimed ones before new ones.

        Connection errors propagate so the caller can reconnect; other Redis
        errors are logged and the loop retries after a short pause.
        """
        if self._consumer_name is None:
            raise RuntimeError("Queue not connected. Call connect() first.")

        reclaim_count = min(count, self._queue_config.reclaim_batch_size)
        while True:
            try:
                async for job in self._reclaim_pending(reclaim_count):
                    yield job
                async for job in self._read_new(count, block_ms):
                    yield job
            except asyncio.CancelledError:
                logger.info("Consumer %s cancelled", self._consumer_name)
                return
            except redis.ConnectionError:
                raise
            except redis.RedisError as e:
                logger.error("Error consuming from %s: %s", self.stream_config.stream_name, e)
                await asyncio.sleep(1)

    async def _read_new(self, count: int, block_ms: int) -> AsyncIterator[JobT]:
        cfg = self.stream_config
        response = await self.redis.xreadgroup(
            groupname=cfg.consumer_group,
            consumername=self._consumer_name,
            streams={cfg.stream_name: ">"},
            count=count,
            block=block_ms,
        )
        for _stream, entries in response or []:
            for message_id, fields in entries:
                job = await self._to_job(message_id, fields, deliveries=1)
                if job is not None:
                    yield job

    async def _reclaim_pending(self, count: int) -> AsyncIterator[JobT]:
        """Claim entries idle longer than ``idle_timeout_ms`` from any consumer."""
        cfg = self.stream_config
        try:
            # (next_start_id, [(id, fields), ...], deleted_ids)
            claimed = (
                await self.redis.xautoclaim(
                    name=cfg.stream_name,
                    groupname=cfg.consumer_group,
                    consumername=self._consumer_name,
                    min_idle_time=self._queue_config.idle_timeout_ms,
                    start_id="0-0",
                    count=count,
                )
            )[1]
        except redis.ResponseError as e:
            if "unknown command" in str(e).lower():
                logger.warning("XAUTOCLAIM needs Redis 6.2+, pending entries are not reclaimed")
            else:
                logger.error("XAUTOCLAIM on %s failed: %s", cfg.stream_name, e)
            return

        if not claimed:
            return

        logger.info("Reclaimed %d idle entries from %s", len(claimed), cfg.stream_name)
        deliveries = await self._delivery_counts([message_id for message_id, _ in claimed])
        reclaimed = get_metrics().pending_reclaimed.labels(queue=cfg.stream_name)

        for message_id, fields in claimed:
            job = await self._to_job(message_id, fields, deliveries.get(message_id, 1))
            if job is not None:
                reclaimed.inc()
                yield job

    async def _to_job(
        self, message_id: str, fields: dict[str, str], deliveries: int
    ) -> JobT | None:
        """Decode one entry, or dead-letter it and return None."""
        limit = self._queue_config.max_delivery_attempts
        if deliveries > limit:
            logger.warning(
                "Entry %s delivered %d times (limit %d)", message_id, deliveries, limit
            )
            await self._dead_letter(message_id, fields, MAX_RETRIES_EXCEEDED)
            get_metrics().dlq_max_retries.labels(queue=self.stream_config.stream_name).inc()
            return None

        try:
            return self._parse_job(message_id, fields, deliveries - 1)
        except (KeyError, ValueError, TypeError) as e:
            logger.error("Undecodable entry %s: %s", message_id, e)
            await self._dead_letter(message_id, fields, f"invalid job: {e}")
            return None

    async def _delivery_counts(self, message_ids: list[str]) -> dict[str, int]:
        """Times delivered per entry from XPENDING; missing ids count as 1."""
        cfg = self.stream_config
        try:
            pending = await self.redis.xpending_range(
                name=cfg.stream_name,
                groupname=cfg.consumer_group,
                min="-",
                max="+",
                count=len(message_ids) * 2,
            )
        except redis.RedisError as e:
            logger.error("XPENDING on %s failed: %s", cfg.stream_name, e)
            return {}

        wanted = set(message_ids)
        return {
            entry["message_id"]: entry["times_delivered"]
            for entry in pending
            if entry["message_id"] in wanted
        }

    # Settling

    async def ack(self, message_id: str) -> None:
        cfg = self.stream_config
        await self.redis.xack(cfg.stream_name, cfg.consumer_group, message_id)
        logger.debug("Acked %s", message_id)

    async def nack(self, message_id: str, error: str | None = None) -> None:
        """Dead-letter a job that can never succeed."""
        entries = await self.redis.xrange(
            self.stream_config.stream_name, min=message_id, max=message_id
        )
        fields = entries[0][1] if entries else {}
        await self._dead_letter(message_id, fields, error or "rejected")

    async def _dead_letter(self, message_id: str, fields: dict[str, str], reason: str) -> None:
        """Copy an entry to the DLQ with the reason, then ack the original."""
        await self.redis.xadd(
            self.stream_config.dlq_stream_name,
            {
                **fields,
                "original_id": message_id,
                "error": reason,
                "failed_at": str(time.time()),
            },
            maxlen=self._queue_config.dlq_max_length,
            approximate=True,
        )
        await self.ack(message_id)
        logger.warning("Dead-lettered %s: %s", message_id, reason)

    # Introspection

    async def get_pending_count(self) -> int:
        """Entries delivered to the group but not yet acknowledged."""
        cfg = self.stream_config
        summary = await self.redis.xpending(cfg.stream_name, cfg.consumer_group)
        return summary["pending"] if summary else 0

    async def get_stream_length(self) -> int:
        return await self.redis.xlen(self.stream_config.stream_name)

    async def get_dlq_length(self) -> int:
        return await self.redis.xlen(self.stream_config.dlq_stream_name)

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (redis.RedisError, RuntimeError, OSError):
            return False
