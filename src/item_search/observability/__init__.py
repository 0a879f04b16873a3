"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from item_search.observability.context import get_trace_context, session_scope, set_trace_context, trace_context
from item_search.observability.logging import (
    JsonFormatter,
    configure_log_exporter,
    configure_logging,
    init_log_exporter,
)
from item_search.observability.metrics import (
    INDEX_BUILD_LATENCY,
    INDEX_ITEM_COUNT,
    INDEX_KEY_COUNT,
    SEARCH_ERRORS,
    SEARCH_LATENCY,
    SEARCH_RESULTS,
    configure_metrics_exporter,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from item_search.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
)


__all__ = [
    "INDEX_BUILD_LATENCY",
    "INDEX_ITEM_COUNT",
    "INDEX_KEY_COUNT",
    "SEARCH_ERRORS",
    "SEARCH_LATENCY",
    "SEARCH_RESULTS",
    "JsonFormatter",
    "configure_log_exporter",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_log_exporter",
    "init_metrics",
    "init_tracing",
    "session_scope",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
