"""
Subscription publisher - schema-driven channel paths for subscription events.

Every field of the Subscription root type gets one channel. Field arguments
become path segments, so clients can listen to a slice of an event:

    type Subscription {
        personCreated(firstname: String): Person!
    }

    channel pattern:   /personCreated/{firstname}
    publish("personCreated", {"firstname": "john", "lastname": "smith"})
        -> delivered on /personCreated/john
"""

from __future__ import annotations

import logging
from typing import Any, Iterable
from urllib.parse import quote

from graphql import GraphQLSchema

from ..core.errors import DependencyError, UnknownSubscriptionError
from .hub import ChannelHub

logger = logging.getLogger(__name__)


def channel_pattern(field_name: str, arg_names: Iterable[str] = ()) -> str:
    """
    Channel pattern for a subscription field.

    Examples:
        channel_pattern("personCreated") -> /personCreated
        channel_pattern("personCreated", ["firstname"]) -> /personCreated/{firstname}
    """
    return "/" + "/".join([field_name, *(f"{{{name}}}" for name in arg_names)])


def channel_path(field_name: str, arg_names: Iterable[str], payload: dict[str, Any]) -> str:
    """
    Concrete path for one published payload.

    Raises:
        KeyError: If the payload lacks a value for a declared argument
    """
    segments = [quote(str(payload[name]), safe="") for name in arg_names]
    return "/" + "/".join([field_name, *segments])


def register_channels(schema: GraphQLSchema, hub: ChannelHub, options: dict[str, Any]):
    """Register one hub channel per field of the schema's Subscription type."""
    subscription_type = schema.subscription_type
    if subscription_type is None:
        return

    for name, field in subscription_type.fields.items():
        hub.add_channel(channel_pattern(name, field.args), options)


class SubscriptionPublisher:
    """
    Publishes payloads for declared subscription events.

    Usage:
        publisher = SubscriptionPublisher(registry, hub)
        await publisher.publish("personCreated", {"firstname": "john"})
    """

    def __init__(self, registry: Any, hub: ChannelHub | None):
        """
        Initialize publisher.

        Args:
            registry: SchemaRegistry holding the active schema
            hub: Realtime transport
        """
        self.registry = registry
        self.hub = hub

    def path_for(self, event: str, payload: dict[str, Any]) -> str:
        """
        Resolve the concrete channel path for an event.

        Raises:
            UnknownSubscriptionError: If the event is not a Subscription field
            KeyError: If the payload lacks a declared argument
        """
        schema = self.registry.schema
        subscription_type = schema.subscription_type if schema is not None else None
        if subscription_type is None or event not in subscription_type.fields:
            raise UnknownSubscriptionError(event)

        return channel_path(event, subscription_type.fields[event].args, payload)

    async def publish(self, event: str, payload: dict[str, Any]) -> int:
        """
        Publish a payload for a subscription event.

        Returns:
            Number of subscribers (or Redis listeners) reached

        Raises:
            DependencyError: If no hub is configured
            UnknownSubscriptionError: If the event is not declared
        """
        if self.hub is None:
            raise DependencyError("Cannot publish without a ChannelHub")

        path = self.path_for(event, payload)
        count = await self.hub.publish(path, payload)
        logger.debug(f"Published {event} on {path}")
        return count
