"""
Command-line interface for contentflow.

Provides commands to register sources, run syncs directly or through the
job queue, retry failed enrichment, and run diagnostic checks.

Usage:
    contentflow init-db                    # Create tables
    contentflow add-source telegram news_chan --name "News Channel"
    contentflow sync SOURCE_ID --limit 20  # Sync one source now
    contentflow enqueue SOURCE_ID          # Queue a sync for the worker
    contentflow worker                     # Run the sync worker
    contentflow health                     # Check service health
"""

import asyncio
import json
import signal
import sys
import time

import click

from contentflow.config.settings import get_settings
from contentflow.observability.logging import setup_logging
from contentflow.observability.metrics import get_metrics
from contentflow.sources.schemas import SourceType

SOURCE_TYPES = click.Choice([t.value for t in SourceType])


def _mock_resolver():
    """Resolver serving a few canned messages for every source type."""
    from contentflow.fetchers import RawMessage, StaticFetchStrategy, StrategyResolver

    now = int(time.time())
    messages = [
        RawMessage(
            id=1,
            body="Central bank holds rates steady, signals cuts later this year",
            origin_unix_seconds=now - 120,
        ),
        RawMessage(id=2, body=None, origin_unix_seconds=now - 60),
        RawMessage(
            id=3,
            body="New open-source database release promises faster vector search",
            origin_unix_seconds=now,
        ),
    ]
    for message in messages:
        message.raw = {"id": message.id, "message": message.body, "date": message.origin_unix_seconds}

    resolver = StrategyResolver()
    for source_type in SourceType:
        resolver.register(StaticFetchStrategy(messages, source_type=source_type))
    return resolver


def _echo_result(result) -> None:
    color = "green" if result.ok else "yellow"
    click.echo(click.style(f"\n{result.source_name or result.source_id}", fg=color))
    click.echo(f"  processed: {result.messages_processed}")
    click.echo(f"  created:   {result.content_created}")
    click.echo(f"  skipped:   {result.content_skipped}")
    click.echo(f"  duration:  {result.duration_ms}ms")
    for error in result.errors:
        click.echo(click.style(f"  ! {error}", fg="red"))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """contentflow - incremental source sync and AI enrichment."""
    setup_logging(level="DEBUG" if debug else None)

    # Initialize tracing if enabled
    settings = get_settings()
    if settings.tracing_enabled:
        from contentflow.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from contentflow.services import SyncService

    async def run():
        async with SyncService() as service:
            await service.init_schema()
        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command("add-source")
@click.argument("source_type", type=SOURCE_TYPES)
@click.argument("external_id")
@click.option("--name", default=None, help="Display name")
@click.option("--username", default=None, help="Handle used to fetch (e.g. channel username)")
def add_source(source_type: str, external_id: str, name: str | None, username: str | None) -> None:
    """Register a source (or update an existing one)."""
    from contentflow.services import SyncService

    async def run():
        async with SyncService() as service:
            source = await service.add_source(
                SourceType(source_type), external_id, name=name, username=username
            )
        click.echo(f"Source {source.display_name}: {source.id}")

    asyncio.run(run())


@main.command()
@click.argument("source_id")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Messages to fetch")
@click.option("--mock", is_flag=True, help="Use canned messages instead of the parser service")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def sync(source_id: str, limit: int | None, mock: bool, as_json: bool) -> None:
    """Sync one source now."""
    from contentflow.pipeline.orchestrator import FATAL_SYNC_ERRORS
    from contentflow.services import SyncService

    async def run():
        service = SyncService(resolver=_mock_resolver() if mock else None)
        async with service:
            try:
                result = await service.sync_source(source_id, limit=limit)
            except FATAL_SYNC_ERRORS as e:
                click.echo(click.style(f"Sync rejected: {e}", fg="red"))
                sys.exit(2)

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
        else:
            _echo_result(result)
        sys.exit(0 if result.ok else 1)

    asyncio.run(run())


@main.command("sync-all")
@click.option("--type", "source_type", default=None, type=SOURCE_TYPES, help="Only this source type")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Messages to fetch per source")
def sync_all(source_type: str | None, limit: int | None) -> None:
    """Sync every active source, one after another."""
    from contentflow.services import SyncService

    async def run():
        async with SyncService() as service:
            results = await service.sync_active(
                SourceType(source_type) if source_type else None, limit=limit
            )

        if not results:
            click.echo("No active sources")
            return

        for result in results:
            _echo_result(result)
        failed = sum(1 for r in results if not r.ok)
        click.echo(f"\n{len(results)} sources synced, {failed} with errors")

    asyncio.run(run())


@main.command()
@click.argument("source_ids", nargs=-1, required=True)
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Messages to fetch")
def enqueue(source_ids: tuple[str, ...], limit: int | None) -> None:
    """Queue sync jobs for the worker."""
    from contentflow.sync_jobs import SyncJobQueue

    async def run():
        async with SyncJobQueue() as queue:
            if len(source_ids) == 1:
                message_ids = [await queue.publish(source_ids[0], limit=limit)]
            else:
                message_ids = await queue.publish_batch(list(source_ids), limit=limit)
        for source_id, message_id in zip(source_ids, message_ids):
            click.echo(f"Queued {source_id} as {message_id}")

    asyncio.run(run())


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def worker(metrics: bool) -> None:
    """Run the sync worker."""
    from contentflow.sync_jobs import SyncWorker

    async def run():
        sync_worker = SyncWorker()

        if metrics:
            get_metrics().start_server()

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(sync_worker.stop()))

        await sync_worker.start()

    asyncio.run(run())


@main.command()
@click.option("--source", "source_id", default=None, help="Only content of this source")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Rows to retry")
@click.option("--include-pending", is_flag=True, help="Also retry rows stuck in pending")
def reenrich(source_id: str | None, limit: int | None, include_pending: bool) -> None:
    """Retry enrichment of content that failed it."""
    from contentflow.services import SyncService

    async def run():
        async with SyncService() as service:
            result = await service.reenrich(
                source_id=source_id, include_pending=include_pending, limit=limit
            )

        click.echo("\nRe-enrichment Results:")
        click.echo(f"  attempted: {result.attempted}")
        click.echo(f"  ready:     {result.ready}")
        click.echo(f"  failed:    {result.failed}")
        for error in result.errors:
            click.echo(click.style(f"  ! {error}", fg="red"))

    asyncio.run(run())


@main.command()
@click.argument("text")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Maximum results")
@click.option("--threshold", default=None, type=click.FloatRange(0.0, 1.0), help="Minimum similarity")
def search(text: str, limit: int | None, threshold: float | None) -> None:
    """Find content similar to TEXT."""
    from contentflow.services import SyncService

    async def run():
        async with SyncService() as service:
            results = await service.search_similar(text, limit=limit, threshold=threshold)

        if not results:
            click.echo("No matches")
            return

        for hit in results:
            click.echo(f"{hit.score:.3f}  {hit.content_id}  {hit.payload.get('summary', '')}")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        details: dict = {}

        # Check Redis
        try:
            from contentflow.sync_jobs import SyncJobQueue
            async with SyncJobQueue() as queue:
                results["redis"] = await queue.health_check()
                details["sync_queue_pending"] = await queue.get_pending_count()
                details["sync_queue_dlq"] = await queue.get_dlq_length()
        except Exception as e:
            results["redis"] = False
            logger.error("Redis health check failed", error=str(e))

        # Check PostgreSQL and the pipeline
        try:
            from contentflow.services import SyncService
            async with SyncService() as service:
                service_health = await service.health_check()
            results["postgres"] = service_health["database"]
            details.update(
                {k: v for k, v in service_health.items() if k not in ("status", "database")}
            )
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        from contentflow.ai import AiConfig
        results["openai_configured"] = AiConfig().openai_api_key is not None

        # Print results
        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name in ("redis", "postgres") and not status:
                all_healthy = False

        for name, value in details.items():
            click.echo(f"    {name}: {value}")

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
