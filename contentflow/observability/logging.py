"""
structlog setup shared by the CLI and the sync worker.

Pipeline code logs through ``structlog.get_logger(__name__)`` with keyword
fields (source_id, message_id, error). Storage and queue code uses plain
``logging``; both end up on stdout through the same handler, JSON in
production and colored console output during development.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from contentflow.config.settings import get_settings
from contentflow.observability.tracing import add_trace_context

# Client libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncio", "asyncpg")


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name; LOG_LEVEL when None.
        json_logs: Force JSON (True) or console (False) output; LOG_FORMAT when None.
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_logs is None:
        json_logs = settings.json_logs

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_context,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_job_context(**fields) -> None:
    """Attach fields (source_id, message_id) to every log line of the current task."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_job_context() -> None:
    structlog.contextvars.clear_contextvars()
