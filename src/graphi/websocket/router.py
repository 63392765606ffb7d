"""
WebSocket router for subscription channels.

Message protocol (client -> server):

    {"type": "subscribe", "path": "/personCreated/john"}
    {"type": "unsubscribe", "path": "/personCreated/john"}
    {"type": "ping"}

Server -> client:

    {"type": "connection_ack", "connection_id": "..."}
    {"type": "subscribed", "path": "...", "channel": "/personCreated/{firstname}"}
    {"type": "unsubscribed", "path": "..."}
    {"type": "pong"}
    {"type": "error", "message": "..."}
    {"type": "publish", "path": "...", "message": {...}}
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from ..core.errors import ChannelNotFoundError
from .hub import ChannelHub

logger = logging.getLogger(__name__)


class SubscriptionRouter:
    """
    Serves one websocket endpoint on top of a ChannelHub.

    Usage:
        router = SubscriptionRouter(hub)

        @app.websocket("/subscribe")
        async def subscribe(websocket: WebSocket):
            await router.handle_connection(websocket)
    """

    def __init__(self, hub: ChannelHub):
        self.hub = hub

    async def handle_connection(self, websocket: WebSocket):
        """
        Handle a websocket connection until the client goes away.

        Flow:
        1. Accept connection and acknowledge
        2. Receive subscribe / unsubscribe / ping messages
        3. Hub pushes published messages for subscribed paths
        4. Drop every subscription on disconnect
        """
        connection_id = str(uuid.uuid4())

        try:
            await self.hub.connect(websocket, connection_id)
            await websocket.send_json({"type": "connection_ack", "connection_id": connection_id})

            while True:
                message = await websocket.receive_json()
                await self._handle_message(connection_id, websocket, message)

        except WebSocketDisconnect:
            logger.info(f"Client {connection_id} disconnected")
        finally:
            await self.hub.disconnect(connection_id)

    async def _handle_message(self, connection_id: str, websocket: WebSocket, message: Any):
        message_type = message.get("type") if isinstance(message, dict) else None

        if message_type == "subscribe":
            await self._handle_subscribe(connection_id, websocket, message)

        elif message_type == "unsubscribe":
            await self._handle_unsubscribe(connection_id, websocket, message)

        elif message_type == "ping":
            await websocket.send_json({"type": "pong"})

        else:
            logger.warning(f"Unknown message type: {message_type}")
            await websocket.send_json({
                "type": "error",
                "message": f"Unknown message type: {message_type}"
            })

    async def _handle_subscribe(self, connection_id: str, websocket: WebSocket, message: dict):
        path = message.get("path")
        if not isinstance(path, str) or not path:
            await websocket.send_json({"type": "error", "message": "Subscribe requires a path"})
            return

        try:
            channel = self.hub.subscribe_connection(connection_id, path)
        except ChannelNotFoundError as e:
            logger.warning(f"Subscription rejected for {connection_id}: {e}")
            await websocket.send_json({"type": "error", "message": str(e)})
            return

        await websocket.send_json({"type": "subscribed", "path": path, "channel": channel.pattern})

    async def _handle_unsubscribe(self, connection_id: str, websocket: WebSocket, message: dict):
        path = message.get("path")
        if not isinstance(path, str) or not path:
            await websocket.send_json({"type": "error", "message": "Unsubscribe requires a path"})
            return

        self.hub.unsubscribe_connection(connection_id, path)
        await websocket.send_json({"type": "unsubscribed", "path": path})
