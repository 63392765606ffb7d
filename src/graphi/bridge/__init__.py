"""
Bridge module - REST routes doubling as GraphQL field resolvers.

Provides:
- RouteBridge: route scanning and resolver synthesis
- InternalClient: in-process calls into the application
"""

from __future__ import annotations

from .client import InternalClient
from .routes import GRAPHQL_METHOD, GRAPHQL_TAG, BridgeRoute, RouteBridge, derive_field_name, to_field_value

__all__ = [
    "RouteBridge",
    "BridgeRoute",
    "InternalClient",
    "GRAPHQL_METHOD",
    "GRAPHQL_TAG",
    "derive_field_name",
    "to_field_value",
]
