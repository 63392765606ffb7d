"""
Schema registry - the active schema and resolver map of one Graphi instance.

Registrations merge into what is already there:

    registry = SchemaRegistry()
    registry.register(PERSON_SCHEMA, {"Query": {"person": get_person}})
    registry.register(PROPERTY_SCHEMA, {"Query": {"property": get_property}})

    schema, resolvers = registry.current()   # both Query fields resolvable

Only the first registration replaces; every later one merges. Registration
is a startup/configuration step and is not meant to race with itself.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from graphql import GraphQLSchema

from .errors import ConfigurationError, DependencyError
from .resolvers import ResolverMap
from .schema import PreResolveHook, Resolvers, build_executable_schema, merge_schemas, wire_resolvers

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """
    Holds the single active (schema, resolver map) pair.

    Example:
        registry = SchemaRegistry(hub=ChannelHub())
        registry.register(schema_text, resolvers, subscription_options={"filter": ...})
    """

    def __init__(self, hub: Any = None, subscription_options: Optional[dict[str, Any]] = None):
        """
        Initialize registry.

        Args:
            hub: Realtime transport (ChannelHub); required once a schema
                declares a Subscription type
            subscription_options: Channel options used when a registration
                passes none
        """
        self.hub = hub
        self._schema: Optional[GraphQLSchema] = None
        self._resolvers = ResolverMap()
        self._registrations = 0
        self._subscription_options: dict[str, Any] = dict(subscription_options or {})

    @property
    def schema(self) -> Optional[GraphQLSchema]:
        return self._schema

    @property
    def resolvers(self) -> ResolverMap:
        return self._resolvers

    def current(self) -> tuple[Optional[GraphQLSchema], ResolverMap]:
        """Get the active (schema, resolver map) pair."""
        return self._schema, self._resolvers

    def register(
        self,
        schema: Union[str, GraphQLSchema, None] = None,
        resolvers: Resolvers = None,
        *,
        pre_resolve: Optional[PreResolveHook] = None,
        subscription_options: Optional[dict[str, Any]] = None,
    ) -> Optional[GraphQLSchema]:
        """
        Register a schema and/or resolvers, merging with earlier registrations.

        Args:
            schema: Schema text, a built GraphQLSchema, or None for resolvers only
            resolvers: Resolver map to wire and keep
            pre_resolve: Hook composed into the resolvers wired by this call
            subscription_options: Forwarded to the hub's channel registration;
                None keeps the options of the last call that passed some

        Returns:
            The new active schema

        Raises:
            ConfigurationError: If schema and resolvers do not fit, or merge conflicts
            DependencyError: If the result has subscriptions but no hub is configured
        """
        new_resolvers = ResolverMap.coerce(resolvers)
        merged_resolvers = self._resolvers.merge(new_resolvers)

        if isinstance(schema, str):
            # Before the first schema, earlier resolver-only registrations are pending
            pending = merged_resolvers if self._schema is None else new_resolvers
            built = build_executable_schema(schema, pending, pre_resolve)
        elif isinstance(schema, GraphQLSchema):
            pending = merged_resolvers if self._schema is None else new_resolvers
            built = wire_resolvers(schema, pending, pre_resolve)
        elif schema is None:
            built = None
        else:
            raise ConfigurationError(f"Cannot register schema of type {type(schema).__name__}")

        if built is None:
            active = wire_resolvers(self._schema, new_resolvers, pre_resolve) if self._schema else None
        elif self._schema is None:
            active = built
        else:
            active = merge_schemas(self._schema, built)

        options = self._subscription_options if subscription_options is None else dict(subscription_options)
        if active is not None and active.subscription_type is not None:
            self._register_channels(active, options)

        self._schema = active
        self._subscription_options = options
        self._resolvers = merged_resolvers
        self._registrations += 1

        if active is None:
            logger.info(f"Stored {len(new_resolvers)} resolvers until a schema is registered")
        else:
            action = "Registered" if self._registrations == 1 else "Merged"
            logger.info(f"{action} schema: {len(active.type_map)} types, {len(merged_resolvers)} resolvers")

        return active

    def _register_channels(self, schema: GraphQLSchema, options: dict[str, Any]):
        if self.hub is None:
            raise DependencyError(
                "Schema declares a Subscription type but no ChannelHub is configured"
            )
        from ..websocket.publisher import register_channels

        register_channels(schema, self.hub, options)
