"""
OpenTelemetry helpers for GraphQL requests.

Span hierarchy (only when tracing is enabled and a parent span exists):
    <incoming HTTP span>
    └── graphql.request              # one per dispatched request
        ├── graphql.resolve <field>  # one per resolved field
        └── ...

Tracing is optional: without an enabled tracer or a recording parent span
nothing is created and dispatch behaves the same.
"""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from typing import Any, Optional

from graphql import GraphQLResolveInfo
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

logger = logging.getLogger(__name__)

MAX_ATTRIBUTE_LENGTH = 2000


def get_graphql_tracer() -> trace.Tracer:
    """Default tracer for GraphQL spans."""
    return trace.get_tracer("graphi")


def find_parent_span(request: Any) -> Optional[Span]:
    """
    Find the span this request's work should hang off.

    Prefers a span stored on request.state.span, then the active span.
    """
    state = getattr(request, "state", None)
    span = getattr(state, "span", None) if state is not None else None
    if span is None:
        span = trace.get_current_span()
    if span is None or not span.get_span_context().is_valid:
        return None
    return span


def _truncate(value: str) -> str:
    if len(value) > MAX_ATTRIBUTE_LENGTH:
        return value[:MAX_ATTRIBUTE_LENGTH] + "... (truncated)"
    return value


def start_request_span(tracer: trace.Tracer, parent: Span, request: Any, payload: Any) -> Span:
    """Open the request span and log method, payload and request metadata."""
    span = tracer.start_span(
        "graphql.request",
        context=trace.set_span_in_context(parent),
        kind=trace.SpanKind.INTERNAL,
    )
    span.set_attribute("http.method", request.method)
    span.set_attribute("http.url", str(request.url))
    try:
        span.set_attribute("graphql.payload", _truncate(json.dumps(payload, default=str)))
    except (TypeError, ValueError):
        span.set_attribute("graphql.payload", _truncate(repr(payload)))
    return span


def tag_error(span: Optional[Span], message: str):
    """Mark a span as failed with a message."""
    if span is None:
        return
    span.set_attribute("error", True)
    span.add_event("error", {"message": message})
    span.set_status(Status(StatusCode.ERROR, message))


def start_field_span(tracer: trace.Tracer, parent: Span, info: GraphQLResolveInfo) -> Span:
    """Open a child span for one field resolution."""
    return tracer.start_span(
        f"graphql.resolve {info.field_name}",
        context=trace.set_span_in_context(parent),
        attributes={
            "graphql.field.name": info.field_name,
            "graphql.field.parent_type": info.parent_type.name,
            "graphql.field.return_type": str(info.return_type),
            "graphql.field.path": ".".join(str(key) for key in info.path.as_list()),
        },
    )


class FieldTimings:
    """
    Per-field durations aggregated for one request.

    Keyed by "ParentType.field" so list items of the same field add up.
    """

    def __init__(self):
        self._durations: dict[str, float] = defaultdict(float)
        self._counts: dict[str, int] = defaultdict(int)

    def start(self) -> float:
        return time.perf_counter()

    def stop(self, info: GraphQLResolveInfo, started: float):
        key = f"{info.parent_type.name}.{info.field_name}"
        self._durations[key] += time.perf_counter() - started
        self._counts[key] += 1

    def summary(self) -> dict[str, dict[str, float]]:
        return {
            key: {"count": self._counts[key], "ms": round(duration * 1000, 3)}
            for key, duration in sorted(self._durations.items(), key=lambda item: -item[1])
        }

    def report(self, span: Optional[Span] = None):
        """Log the summary and attach it to the request span."""
        summary = self.summary()
        logger.debug(f"Field timings: {summary}")
        if span is not None:
            span.set_attribute("graphql.field_timings", _truncate(json.dumps(summary)))
