"""
Sync worker - consumes sync jobs and runs source syncs.

Runs as a standalone service that:
1. Consumes source ids from the sync job stream
2. Runs SyncOrchestrator.sync_source for each job, one at a time
3. Acknowledges finished jobs, dead-letters jobs that can never succeed,
   and leaves everything else pending for redelivery
"""

import asyncio

import redis.asyncio as redis
import structlog

from contentflow.observability.logging import bind_job_context, clear_job_context
from contentflow.observability.metrics import get_metrics
from contentflow.observability.tracing import extract_trace_context, get_tracer, traced
from contentflow.pipeline.orchestrator import FATAL_SYNC_ERRORS
from contentflow.queues.backoff import ExponentialBackoff
from contentflow.services.sync_service import SyncService
from contentflow.sync_jobs.config import SyncQueueConfig
from contentflow.sync_jobs.queue import SyncJob, SyncJobQueue

logger = structlog.get_logger(__name__)


class SyncWorker:
    """
    Worker that processes sync jobs from the queue.

    Job handling:
    - sync finished (with or without per-message errors): ack
    - source missing, unsupported or without a peer: nack to the DLQ
    - anything else (database down, bug): no ack; the job is reclaimed
      after the idle timeout and dead-lettered after max deliveries

    Usage:
        worker = SyncWorker()
        await worker.start()  # Runs until stopped
    """

    def __init__(
        self,
        queue: SyncJobQueue | None = None,
        service: SyncService | None = None,
        config: SyncQueueConfig | None = None,
    ):
        self._config = config or SyncQueueConfig()
        self._queue = queue or SyncJobQueue(config=self._config)
        self._service = service or SyncService()
        self._running = False
        self._metrics = get_metrics()
        self._tracer = get_tracer("contentflow.sync_jobs")

        logger.info("SyncWorker initialized", stream=self._config.stream_name)

    async def _connect_dependencies(self) -> None:
        await self._queue.connect()
        await self._service.connect()

    async def start(self) -> None:
        """
        Run the worker with a supervised reconnect loop.

        Transient connection failures are retried with exponential backoff;
        the worker gives up after max_consecutive_failures.
        """
        self._running = True
        backoff = ExponentialBackoff(
            base_delay=self._config.backoff_base_delay,
            max_delay=self._config.backoff_max_delay,
        )

        logger.info("Starting sync worker")

        while self._running:
            try:
                await self._connect_dependencies()
                await self._process_loop()
                if not self._running:
                    break
            except asyncio.CancelledError:
                logger.info("Sync worker cancelled")
                break
            except (redis.ConnectionError, OSError) as e:
                if backoff.attempt >= self._config.max_consecutive_failures:
                    logger.error(
                        "Sync worker exceeded max consecutive failures",
                        failures=backoff.attempt,
                        error=str(e),
                    )
                    raise
                delay = backoff.next_delay()
                logger.warning(
                    "Sync worker connection lost, retrying",
                    error=str(e),
                    attempt=backoff.attempt,
                    retry_delay=round(delay, 1),
                )
                await self._cleanup()
                await asyncio.sleep(delay)
            else:
                backoff.reset()

        await self._cleanup()

    async def stop(self) -> None:
        """Stop after the job in progress."""
        logger.info("Stopping sync worker")
        self._running = False

    async def _cleanup(self) -> None:
        await self._queue.close()
        await self._service.close()
        logger.info("Sync worker cleaned up")

    async def _process_loop(self) -> None:
        async for job in self._queue.consume(count=1, block_ms=self._config.block_ms):
            await self.handle_job(job)
            if not self._running:
                break

            try:
                self._metrics.set_sync_queue_depth(await self._queue.get_pending_count())
            except redis.RedisError as e:
                logger.debug("Could not read sync queue depth", error=str(e))

    async def handle_job(self, job: SyncJob) -> str:
        """
        Run one job and settle it on the queue.

        Returns:
            "acked", "dead_lettered" or "redelivered"
        """
        bind_job_context(
            source_id=job.source_id,
            message_id=job.message_id,
            retry_count=job.retry_count,
        )
        try:
            outcome = await self._run_job(job)
        finally:
            clear_job_context()

        self._metrics.record_sync_job(outcome)
        return outcome

    async def _run_job(self, job: SyncJob) -> str:
        with traced(
            self._tracer,
            "sync_job",
            {"source.id": job.source_id, "job.retry_count": job.retry_count},
            parent_context=extract_trace_context(job.trace_fields),
        ):
            try:
                result = await self._service.sync_source(job.source_id, limit=job.limit)
            except FATAL_SYNC_ERRORS as e:
                logger.error("Sync job rejected", error=str(e))
                await self._queue.nack(job.message_id, str(e))
                return "dead_lettered"
            except Exception as e:
                logger.error("Sync job failed, leaving for redelivery", error=str(e))
                return "redelivered"

            await self._queue.ack(job.message_id)
            logger.info(
                "Sync job done",
                created=result.content_created,
                skipped=result.content_skipped,
                errors=len(result.errors),
            )
            return "acked"
