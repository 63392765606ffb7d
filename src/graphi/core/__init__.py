"""
Core module - schema building, merging, directives and configuration.
"""

from __future__ import annotations

from .directives import (
    SCALAR_FACTORIES,
    DecorationRequest,
    collect_decorations,
    decorate_scalar,
    register_scalar_factory,
)
from .errors import (
    ChannelNotFoundError,
    ConfigurationError,
    DependencyError,
    GraphiError,
    SchemaMergeError,
    UnknownSubscriptionError,
)
from .rebuild import SchemaPatch, SchemaRebuilder
from .registry import SchemaRegistry
from .resolvers import ROOT, ResolverMap
from .schema import build_executable_schema, merge_schemas, wire_resolvers
from .settings import GraphiSettings, load_settings

__all__ = [
    # Errors
    "GraphiError",
    "ConfigurationError",
    "SchemaMergeError",
    "DependencyError",
    "UnknownSubscriptionError",
    "ChannelNotFoundError",
    # Resolvers
    "ROOT",
    "ResolverMap",
    # Directives
    "DecorationRequest",
    "SCALAR_FACTORIES",
    "collect_decorations",
    "decorate_scalar",
    "register_scalar_factory",
    # Schema
    "SchemaPatch",
    "SchemaRebuilder",
    "build_executable_schema",
    "wire_resolvers",
    "merge_schemas",
    # Registry
    "SchemaRegistry",
    # Settings
    "GraphiSettings",
    "load_settings",
]
