"""
OpenTelemetry tracing for source syncs.

A sync can start in one process (``contentflow enqueue``) and run in another
(the sync worker). The enqueuing span's W3C ``traceparent`` travels in the
job's stream fields, and the worker opens its ``sync_job`` span as a child of
it, so one trace covers enqueue, fetch and every enrichment stage.

Provides:
- setup_tracing(): Install a TracerProvider exporting over OTLP gRPC
- get_tracer(): Named tracer (no-op until setup_tracing() runs)
- traced(): Span context manager that records exceptions
- inject_trace_context() / extract_trace_context(): stream field propagation
- record_sync_result(): Attach SyncResult counters to a span
- add_trace_context(): structlog processor adding trace_id/span_id
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, StatusCode, Tracer
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

if TYPE_CHECKING:
    from contentflow.pipeline.schemas import SyncResult

logger = logging.getLogger(__name__)

# Stream field carrying the W3C trace context of the publisher
TRACE_PARENT_FIELD = "traceparent"

_propagator = TraceContextTextMapPropagator()
_tracing_enabled = False


def setup_tracing(
    service_name: str,
    otlp_endpoint: str | None = None,
    *,
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """
    Install the global TracerProvider.

    Spans go to an OTLP gRPC collector in batches, or synchronously to
    ``exporter`` when one is given (InMemorySpanExporter in tests).
    """
    global _tracing_enabled

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(
                    endpoint=otlp_endpoint or "http://localhost:4317",
                    insecure=True,
                )
            )
        )
    trace.set_tracer_provider(provider)

    _tracing_enabled = True
    logger.info(
        "Tracing enabled for %s, exporting to %s",
        service_name,
        otlp_endpoint or "custom exporter",
    )
    return provider


def get_tracer(name: str) -> Tracer:
    return trace.get_tracer(name)


def is_tracing_enabled() -> bool:
    return _tracing_enabled


def inject_trace_context() -> dict[str, str]:
    """
    Current span context as stream fields.

    Returns ``{"traceparent": ...}``, or an empty dict outside a span.
    """
    carrier: dict[str, str] = {}
    _propagator.inject(carrier)
    return {k: v for k, v in carrier.items() if k == TRACE_PARENT_FIELD}


def extract_trace_context(fields: dict[str, str]) -> Context | None:
    """
    Parent context from a job's stream fields.

    Returns None when the fields carry no valid ``traceparent``.
    """
    if not fields.get(TRACE_PARENT_FIELD):
        return None

    ctx = _propagator.extract({TRACE_PARENT_FIELD: fields[TRACE_PARENT_FIELD]})
    if not trace.get_current_span(ctx).get_span_context().is_valid:
        logger.debug("Ignoring malformed traceparent: %s", fields[TRACE_PARENT_FIELD])
        return None
    return ctx


@contextmanager
def traced(
    tracer: Tracer,
    name: str,
    attributes: dict[str, Any] | None = None,
    parent_context: Context | None = None,
) -> Iterator[Span]:
    """
    Open a span, dropping None attributes, and mark it failed on exception.

    Usage:
        with traced(tracer, "sync_source", {"source.id": source.id}) as span:
            ...
    """
    attrs = {k: v for k, v in (attributes or {}).items() if v is not None}
    with tracer.start_as_current_span(name, context=parent_context, attributes=attrs) as span:
        try:
            yield span
        except Exception as exc:
            span.set_status(StatusCode.ERROR, str(exc))
            span.record_exception(exc)
            raise


def record_sync_result(span: Span, result: "SyncResult") -> None:
    """Copy the counters of a finished sync onto its span."""
    span.set_attribute("sync.processed", result.messages_processed)
    span.set_attribute("sync.created", result.content_created)
    span.set_attribute("sync.skipped", result.content_skipped)
    span.set_attribute("sync.errors", len(result.errors))


def add_trace_context(
    logger_: Any, method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: add trace_id/span_id of the active span."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict
