"""
Prometheus metrics for monitoring the sync and enrichment pipeline.

Defines and exposes metrics for:
- Sync runs and their outcomes
- Messages fetched, created and skipped per source type
- Enrichment outcomes and stage latency
- Vector index failures
- Sync job queue depth and reclaim activity

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from contentflow.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds); AI calls dominate
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the contentflow pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_sync(source_type="telegram", outcome="success", ...)
        metrics.record_stage_latency("analyze", 1.2)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Sync runs
        self.sync_runs = Counter(
            "contentflow_sync_runs_total",
            "Total source sync runs",
            ["source_type", "outcome"],  # outcome: success, partial, failed
        )

        self.sync_duration = Histogram(
            "contentflow_sync_duration_seconds",
            "Wall time of one source sync run",
            ["source_type"],
            buckets=(0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0),
        )

        # Message accounting
        self.messages_fetched = Counter(
            "contentflow_messages_fetched_total",
            "Upstream messages returned by fetch strategies",
            ["source_type"],
        )

        self.content_created = Counter(
            "contentflow_content_created_total",
            "Content rows newly created",
            ["source_type"],
        )

        self.content_skipped = Counter(
            "contentflow_content_skipped_total",
            "Fetched messages that did not create content",
            ["source_type", "reason"],  # reason: watermark, duplicate, empty, error
        )

        self.fetch_errors = Counter(
            "contentflow_fetch_errors_total",
            "Failures of the upstream fetch call",
            ["source_type"],
        )

        # Enrichment
        self.enrichment_outcomes = Counter(
            "contentflow_enrichment_outcomes_total",
            "Enrichment sequences by final content status",
            ["status"],  # ready, enrichment_failed
        )

        self.enrichment_stage_latency = Histogram(
            "contentflow_enrichment_stage_latency_seconds",
            "Time spent in one enrichment stage",
            ["stage"],  # analyze, embed, vector_upsert, finalize
            buckets=LATENCY_BUCKETS,
        )

        self.vector_upsert_failures = Counter(
            "contentflow_vector_upsert_failures_total",
            "Vector index upserts that failed (content still reaches ready)",
        )

        # Sync job queue
        self.sync_queue_depth = Gauge(
            "contentflow_sync_queue_depth",
            "Number of messages in the sync job stream",
        )

        self.sync_jobs = Counter(
            "contentflow_sync_jobs_total",
            "Sync jobs handled by workers",
            ["result"],  # acked, dead_lettered, redelivered
        )

        # Queue reclaim metrics
        self.pending_reclaimed = Counter(
            "contentflow_queue_pending_reclaimed_total",
            "Total messages reclaimed from pending state",
            ["queue"],
        )

        self.dlq_max_retries = Counter(
            "contentflow_queue_dlq_max_retries_total",
            "Total messages moved to DLQ due to max retries exceeded",
            ["queue"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server listening on :%d", port)

    # Convenience methods

    def record_sync(
        self,
        source_type: str,
        outcome: str,
        fetched: int = 0,
        created: int = 0,
        duration: float | None = None,
    ) -> None:
        """
        Record a completed sync run.

        Args:
            source_type: Source type value (telegram, rss, ...)
            outcome: success, partial or failed
            fetched: Messages returned by the fetch strategy
            created: Content rows newly created
            duration: Run duration in seconds
        """
        self.sync_runs.labels(source_type=source_type, outcome=outcome).inc()
        if fetched:
            self.messages_fetched.labels(source_type=source_type).inc(fetched)
        if created:
            self.content_created.labels(source_type=source_type).inc(created)
        if duration is not None:
            self.sync_duration.labels(source_type=source_type).observe(duration)

    def record_skip(self, source_type: str, reason: str, count: int = 1) -> None:
        """Record fetched messages that did not produce new content."""
        if count > 0:
            self.content_skipped.labels(source_type=source_type, reason=reason).inc(count)

    def record_fetch_error(self, source_type: str) -> None:
        """Record a failed upstream fetch."""
        self.fetch_errors.labels(source_type=source_type).inc()

    def record_enrichment(self, status: str) -> None:
        """Record the terminal status of one enrichment sequence."""
        self.enrichment_outcomes.labels(status=status).inc()

    def record_stage_latency(self, stage: str, latency: float) -> None:
        """Record latency for one enrichment stage."""
        self.enrichment_stage_latency.labels(stage=stage).observe(latency)

    def record_vector_failure(self) -> None:
        """Record a non-fatal vector index failure."""
        self.vector_upsert_failures.inc()

    def record_sync_job(self, result: str) -> None:
        """Record how a worker finished with a sync job."""
        self.sync_jobs.labels(result=result).inc()

    def set_sync_queue_depth(self, depth: int) -> None:
        """Update sync job stream depth gauge."""
        self.sync_queue_depth.set(depth)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
