"""Context propagation for log correlation across async boundaries."""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


operation_context: ContextVar[dict | None] = ContextVar("operation_context", default=None)


def generate_trace_id() -> str:
    """Generate a 32-char hex trace ID."""
    return uuid4().hex


def generate_span_id() -> str:
    """Generate a 16-char hex span ID."""
    return uuid4().hex[:16]


def get_operation_context() -> dict:
    """Get the current context, creating a trace_id/span_id pair on first use."""
    ctx = operation_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        operation_context.set(ctx)
    return ctx


def bind_operation(name: str) -> None:
    """Tag subsequent log records in this task with an operation name."""
    ctx = get_operation_context()
    operation_context.set({**ctx, "operation": name})


def update_span_id(span_id: str) -> None:
    """Update span_id while preserving trace_id."""
    ctx = operation_context.get() or {}
    operation_context.set({**ctx, "span_id": span_id})
