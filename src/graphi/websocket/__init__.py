"""
WebSocket module for GraphQL subscriptions.

Provides:
- ChannelHub: Channel registration, subscribers and fan-out (optional Redis backplane)
- SubscriptionRouter: WebSocket message protocol
- SubscriptionPublisher: Schema-driven channel paths for events
"""

from __future__ import annotations

from .hub import Channel, ChannelHub, ConnectionInfo, compile_pattern
from .publisher import SubscriptionPublisher, channel_path, channel_pattern, register_channels
from .router import SubscriptionRouter

__all__ = [
    # Hub
    "ChannelHub",
    "Channel",
    "ConnectionInfo",
    "compile_pattern",
    # Publisher
    "SubscriptionPublisher",
    "channel_pattern",
    "channel_path",
    "register_channels",
    # Router
    "SubscriptionRouter",
]
