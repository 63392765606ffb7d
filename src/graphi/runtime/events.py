"""
Field lifecycle events.

Embedding code can watch every field resolution:

    events = graphi.events

    @events.on(PRE_FIELD_RESOLVE)
    def before(event: FieldResolveEvent):
        print(event.info.field_name, event.args)

    @events.on(POST_FIELD_RESOLVE)
    async def after(event: FieldResolveEvent):
        await audit(event.info.path.as_list(), event.result)

Events for one field are ordered around that field's resolution. Sibling
fields may resolve concurrently, so there is no global order across fields.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from graphql import GraphQLResolveInfo

logger = logging.getLogger(__name__)

PRE_FIELD_RESOLVE = "pre_field_resolve"
POST_FIELD_RESOLVE = "post_field_resolve"

EVENT_NAMES = (PRE_FIELD_RESOLVE, POST_FIELD_RESOLVE)


@dataclass
class FieldResolveEvent:
    """What a listener receives for one field resolution."""
    parent: Any
    args: dict[str, Any]
    context: Any
    info: GraphQLResolveInfo
    result: Any = None


class FieldResolveEvents:
    """
    Listener registry for field lifecycle events.

    Listeners may be plain functions or coroutines. A listener that raises
    turns the field into a field error.
    """

    def __init__(self):
        self._listeners: dict[str, list[Callable]] = {name: [] for name in EVENT_NAMES}

    def on(self, event: str):
        """
        Decorator to register a listener for an event.

        Usage:
            @events.on(PRE_FIELD_RESOLVE)
            def handle(event):
                pass
        """
        def decorator(func: Callable):
            self.subscribe(event, func)
            return func
        return decorator

    def subscribe(self, event: str, listener: Callable):
        """Programmatically register a listener."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}', expected one of {EVENT_NAMES}")
        self._listeners[event].append(listener)
        logger.info(f"Registered listener for {event}: {getattr(listener, '__name__', listener)}")

    def unsubscribe(self, event: str, listener: Callable):
        """Remove a listener registered earlier."""
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def has_listeners(self, event: Optional[str] = None) -> bool:
        if event is None:
            return any(self._listeners.values())
        return bool(self._listeners.get(event))

    async def emit(self, event: str, payload: FieldResolveEvent):
        """Call every listener of an event in registration order."""
        for listener in self._listeners.get(event, []):
            if asyncio.iscoroutinefunction(listener):
                await listener(payload)
            else:
                listener(payload)
