"""
Graphi - GraphQL over HTTP for FastAPI applications.

- GraphQL endpoint and GraphiQL page
- Schemas registered incrementally and merged
- Ordinary routes doubling as root field resolvers
- Validation scalars declared with inline directives (@constr, @conint, @confloat)
- Subscriptions published to websocket channels

Usage:
    from fastapi import FastAPI
    from graphi import Graphi

    app = FastAPI()
    graphi = Graphi(app, schema=SCHEMA, resolvers=RESOLVERS)

    await graphi.publish("personCreated", {"firstname": "john"})
"""

from __future__ import annotations

from .app import Graphi
from .bridge import GRAPHQL_METHOD, GRAPHQL_TAG, RouteBridge
from .core import (
    ChannelNotFoundError,
    ConfigurationError,
    DependencyError,
    GraphiError,
    GraphiSettings,
    ResolverMap,
    SchemaMergeError,
    SchemaRegistry,
    UnknownSubscriptionError,
    build_executable_schema,
    load_settings,
    merge_schemas,
    register_scalar_factory,
)
from .playground import get_graphiql_html
from .runtime import POST_FIELD_RESOLVE, PRE_FIELD_RESOLVE, FieldResolveEvents, RequestDispatcher
from .websocket import ChannelHub, SubscriptionPublisher

__version__ = "0.1.0"

__all__ = [
    # Plugin
    "Graphi",
    "GraphiSettings",
    "load_settings",
    # Schema
    "build_executable_schema",
    "merge_schemas",
    "register_scalar_factory",
    "ResolverMap",
    "SchemaRegistry",
    # Errors
    "GraphiError",
    "ConfigurationError",
    "SchemaMergeError",
    "DependencyError",
    "UnknownSubscriptionError",
    "ChannelNotFoundError",
    # Runtime
    "RequestDispatcher",
    "FieldResolveEvents",
    "PRE_FIELD_RESOLVE",
    "POST_FIELD_RESOLVE",
    # Bridge
    "RouteBridge",
    "GRAPHQL_METHOD",
    "GRAPHQL_TAG",
    # Subscriptions
    "ChannelHub",
    "SubscriptionPublisher",
    # Playground
    "get_graphiql_html",
]
