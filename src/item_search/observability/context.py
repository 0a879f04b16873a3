"""Context propagation for trace correlation across threads and requests."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


# Per-context trace ids picked up by the JSON log formatter
trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def generate_trace_id() -> str:
    """Generate a 32-char hex trace ID."""
    return uuid4().hex


def generate_span_id() -> str:
    """Generate a 16-char hex span ID."""
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Get current trace context with trace_id and span_id."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    """Set trace context for the current context (``session`` is logged when present)."""
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str) -> None:
    """Update span_id while preserving trace_id."""
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "span_id": span_id})


@contextmanager
def session_scope(session_key: str | None) -> Iterator[None]:
    """Tag log records emitted inside the block with ``session_key``.

    The trace id of the enclosing context is kept; the previous context is
    restored on exit. A ``None`` key leaves the context untouched.
    """
    if session_key is None:
        yield
        return
    ctx = get_trace_context()
    token = trace_context.set({**ctx, "session": session_key})
    try:
        yield
    finally:
        trace_context.reset(token)
