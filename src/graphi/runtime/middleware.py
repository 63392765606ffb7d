"""
Execution middleware wrapped around every field resolution.

graphql-core applies middleware to all fields, including those using the
default resolver, so one object per request sees the whole execution.
"""

from __future__ import annotations

from inspect import isawaitable
from typing import Any, Optional

from graphql import GraphQLResolveInfo
from opentelemetry import trace
from opentelemetry.trace import Span

from .events import POST_FIELD_RESOLVE, PRE_FIELD_RESOLVE, FieldResolveEvent, FieldResolveEvents
from .tracing import FieldTimings, start_field_span, tag_error


class FieldResolveMiddleware:
    """
    Emits lifecycle events and records tracing for each field.

    Order per field:
    1. pre_field_resolve listeners
    2. the field's own resolver (or graphql-core's default)
    3. post_field_resolve listeners, with the result
    """

    def __init__(
        self,
        events: FieldResolveEvents,
        tracer: Optional[trace.Tracer] = None,
        request_span: Optional[Span] = None,
        timings: Optional[FieldTimings] = None,
    ):
        self.events = events
        self.tracer = tracer
        self.request_span = request_span
        self.timings = timings

    async def resolve(self, next_, parent: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        event = FieldResolveEvent(parent=parent, args=args, context=info.context, info=info)
        await self.events.emit(PRE_FIELD_RESOLVE, event)

        span = None
        if self.tracer is not None and self.request_span is not None:
            span = start_field_span(self.tracer, self.request_span, info)
        started = self.timings.start() if self.timings is not None else None

        try:
            result = next_(parent, info, **args)
            if isawaitable(result):
                result = await result
        except Exception as e:
            tag_error(span, str(e))
            raise
        finally:
            if self.timings is not None:
                self.timings.stop(info, started)
            if span is not None:
                span.end()

        event.result = result
        await self.events.emit(POST_FIELD_RESOLVE, event)
        return result
