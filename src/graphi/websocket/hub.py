"""Channel hub - subscription channels, websocket connections and fan-out"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from inspect import isawaitable
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import redis.asyncio as aioredis
from fastapi import WebSocket

from ..core.errors import ChannelNotFoundError

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], Awaitable[None]]

_PARAM_PATTERN = re.compile(r"\{([_A-Za-z][_0-9A-Za-z]*)\}")


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a channel pattern into a regex.

    "/personCreated/{firstname}" matches "/personCreated/john".
    """
    regex = ""
    position = 0
    for match in _PARAM_PATTERN.finditer(pattern):
        regex += re.escape(pattern[position:match.start()])
        regex += f"(?P<{match.group(1)}>[^/]+)"
        position = match.end()
    regex += re.escape(pattern[position:])
    return re.compile(f"^{regex}$")


@dataclass
class Channel:
    """A registered channel pattern and its options."""
    pattern: str
    regex: re.Pattern
    options: Dict[str, Any] = field(default_factory=dict)

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.regex.match(path)
        return found.groupdict() if found else None


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""
    websocket: WebSocket
    paths: Set[str] = field(default_factory=set)


class ChannelHub:
    """
    Realtime transport for GraphQL subscriptions.

    Manages:
    - Channel patterns registered from the schema
    - Subscribers per concrete path (websocket connections or callbacks)
    - Publishing, locally or through Redis Pub/Sub when redis_url is set
    - Connection lifecycle

    Usage:
        hub = ChannelHub()
        hub.add_channel("/personCreated/{firstname}")

        async def on_message(path, message):
            ...

        hub.subscribe("/personCreated/john", "listener-1", on_message)
        await hub.publish("/personCreated/john", {"firstname": "john"})
    """

    def __init__(self, redis_url: Optional[str] = None, redis_channel: str = "graphi:publish"):
        self.redis_url = redis_url
        self.redis_channel = redis_channel
        self._channels: Dict[str, Channel] = {}
        self._subscribers: Dict[str, Dict[str, Subscriber]] = {}  # path -> subscriber_id -> callback
        self._connections: Dict[str, ConnectionInfo] = {}
        self._redis: Optional[aioredis.Redis] = None
        self._pubsub: Optional[aioredis.client.PubSub] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._running = False

    # =========================================================================
    # Channels
    # =========================================================================

    def add_channel(self, pattern: str, options: Optional[Dict[str, Any]] = None):
        """
        Register a channel pattern, or replace the options of a registered one.

        Re-registering without options keeps the existing options.
        """
        if pattern in self._channels and not options:
            return
        self._channels[pattern] = Channel(pattern, compile_pattern(pattern), dict(options or {}))
        logger.info(f"Registered subscription channel: {pattern}")

    def match(self, path: str) -> Optional[Channel]:
        """Find the channel a concrete path belongs to."""
        for channel in self._channels.values():
            if channel.match(path) is not None:
                return channel
        return None

    @property
    def channels(self) -> list[str]:
        return list(self._channels)

    # =========================================================================
    # Subscribers
    # =========================================================================

    def subscribe(self, path: str, subscriber_id: str, callback: Subscriber) -> Channel:
        """
        Subscribe a callback to a concrete path.

        Raises:
            ChannelNotFoundError: If no registered channel matches the path
        """
        channel = self.match(path)
        if channel is None:
            raise ChannelNotFoundError(path)

        self._subscribers.setdefault(path, {})[subscriber_id] = callback
        logger.debug(f"{subscriber_id} subscribed to {path}")
        return channel

    def unsubscribe(self, path: str, subscriber_id: str):
        """Remove a subscriber from a path."""
        subscribers = self._subscribers.get(path)
        if not subscribers:
            return
        subscribers.pop(subscriber_id, None)
        if not subscribers:
            del self._subscribers[path]

    def subscriber_count(self, path: str) -> int:
        return len(self._subscribers.get(path, {}))

    # =========================================================================
    # Publishing
    # =========================================================================

    async def publish(self, path: str, message: Any) -> int:
        """
        Publish a message to a concrete path.

        With Redis configured the message goes through Redis Pub/Sub and
        every process delivers it to its own subscribers; the return value
        is then the number of Redis listeners. Otherwise it is delivered
        in-process and the number of local subscribers reached is returned.
        """
        if self._redis is not None:
            payload = json.dumps({"path": path, "message": message}, ensure_ascii=False, default=str)
            count = await self._redis.publish(self.redis_channel, payload)
            logger.debug(f"Published {path} through Redis: {count} listeners")
            return count
        return await self.deliver(path, message)

    async def deliver(self, path: str, message: Any) -> int:
        """Deliver a message to this process's subscribers of a path."""
        subscribers = dict(self._subscribers.get(path, {}))
        if not subscribers:
            logger.debug(f"No subscribers for {path}, skipping delivery")
            return 0

        channel = self.match(path)
        message_filter = channel.options.get("filter") if channel else None
        if message_filter is not None:
            allowed = message_filter(path, message)
            if isawaitable(allowed):
                allowed = await allowed
            if not allowed:
                return 0

        delivered = 0
        failed = []
        for subscriber_id, callback in subscribers.items():
            try:
                await callback(path, message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to deliver {path} to {subscriber_id}: {e}")
                failed.append(subscriber_id)

        for subscriber_id in failed:
            if subscriber_id in self._connections:
                await self.disconnect(subscriber_id)
            else:
                self.unsubscribe(path, subscriber_id)

        logger.debug(f"Delivered {path} to {delivered} subscribers")
        return delivered

    # =========================================================================
    # WebSocket connections
    # =========================================================================

    async def connect(self, websocket: WebSocket, connection_id: str):
        """Register new WebSocket connection"""
        await websocket.accept()
        self._connections[connection_id] = ConnectionInfo(websocket=websocket)
        logger.info(f"WebSocket connected: {connection_id} (total: {len(self._connections)})")

    async def disconnect(self, connection_id: str):
        """Remove WebSocket connection and its subscriptions"""
        conn_info = self._connections.pop(connection_id, None)
        if conn_info:
            for path in list(conn_info.paths):
                self.unsubscribe(path, connection_id)
        logger.info(f"WebSocket disconnected: {connection_id} (total: {len(self._connections)})")

    def subscribe_connection(self, connection_id: str, path: str) -> Channel:
        """
        Subscribe a websocket connection to a path.

        Raises:
            ChannelNotFoundError: If no registered channel matches the path
            KeyError: If the connection is unknown
        """
        conn_info = self._connections[connection_id]

        async def send(path: str, message: Any):
            await conn_info.websocket.send_json({"type": "publish", "path": path, "message": message})

        channel = self.subscribe(path, connection_id, send)
        conn_info.paths.add(path)
        return channel

    def unsubscribe_connection(self, connection_id: str, path: str):
        conn_info = self._connections.get(connection_id)
        if conn_info:
            conn_info.paths.discard(path)
        self.unsubscribe(path, connection_id)

    @property
    def connection_count(self) -> int:
        """Get total number of active connections"""
        return len(self._connections)

    # =========================================================================
    # Redis backplane
    # =========================================================================

    async def startup(self):
        """Connect to Redis (when configured) and start the listener"""
        if not self.redis_url or self._running:
            return

        logger.info(f"Channel hub connecting to Redis: {self.redis_url}")
        self._redis = await aioredis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True
        )
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self.redis_channel)

        self._running = True
        self._listener_task = asyncio.create_task(self._redis_listener())
        logger.info("Channel hub started with Redis Pub/Sub")

    async def shutdown(self):
        """Cleanup on shutdown"""
        self._running = False
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None
        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        logger.info("Channel hub shutdown complete")

    async def _redis_listener(self):
        """Listen for Redis Pub/Sub messages and deliver them locally"""
        logger.info("Redis listener started")
        try:
            while self._running:
                try:
                    message = await self._pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=1.0
                    )
                    if message and message["type"] == "message":
                        data = json.loads(message["data"])
                        await self.deliver(data["path"], data["message"])
                except asyncio.CancelledError:
                    break
                except (ValueError, KeyError) as e:
                    logger.warning(f"Invalid message on {self.redis_channel}: {e}")
                except Exception as e:
                    logger.error(f"Redis listener error: {e}", exc_info=True)
                    await asyncio.sleep(1)
        except asyncio.CancelledError:
            logger.info("Redis listener cancelled")
