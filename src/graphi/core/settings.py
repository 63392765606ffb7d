"""
Configuration for a Graphi instance.

Options can be given as snake_case or with the camelCase names used by
the hapi plugin this package mirrors (graphqlPath, graphiqlPath, ...).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml
from graphql import GraphQLSchema

from .errors import ConfigurationError
from .utils import convert_keys_to_snake

# Option aliases that do not follow from camelCase conversion alone
_ALIASES = {
    "graphi_auth_strategy": "graphiql_auth_strategy",
}

# Options that can live in a YAML file
_SERIALIZABLE = (
    "graphql_path",
    "graphiql_path",
    "prefix",
    "websocket_path",
    "redis_url",
    "forward_headers",
    "tracing",
    "report_field_timings",
    "subscription_options",
)


@dataclass
class GraphiSettings:
    """Settings for the GraphQL endpoints, bridge, subscriptions and tracing."""
    graphql_path: str = "/graphql"
    graphiql_path: Optional[str] = "/graphiql"
    schema: Union[str, GraphQLSchema, None] = None
    resolvers: Optional[dict[str, Any]] = None
    pre_resolve: Optional[Callable[..., Any]] = None
    auth_strategy: Any = False
    graphiql_auth_strategy: Any = False
    format_error: Optional[Callable[..., Any]] = None
    subscription_options: dict[str, Any] = field(default_factory=dict)
    prefix: str = ""
    websocket_path: str = "/subscribe"
    redis_url: Optional[str] = field(default_factory=lambda: os.getenv("GRAPHI_REDIS_URL"))
    forward_headers: tuple[str, ...] = ("authorization", "cookie")
    tracing: bool = False
    tracer: Any = None
    report_field_timings: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphiSettings:
        """
        Create settings from an options dict.

        Raises:
            ConfigurationError: On unknown option names
        """
        options = convert_keys_to_snake(data)
        options = {_ALIASES.get(key, key): value for key, value in options.items()}

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown graphi options: {unknown}")

        if "forward_headers" in options:
            options["forward_headers"] = tuple(h.lower() for h in options["forward_headers"])
        if options.get("subscription_options") is None:
            options.pop("subscription_options", None)

        return cls(**options)

    def to_dict(self) -> dict[str, Any]:
        """Serializable subset, as written by save()."""
        data = {name: getattr(self, name) for name in _SERIALIZABLE}
        data["forward_headers"] = list(self.forward_headers)
        return data

    def save(self, path: Path | str = "graphi.yaml") -> None:
        """Save the serializable settings to a YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(content)


def load_settings(path: Path | str = "graphi.yaml", **overrides: Any) -> GraphiSettings | None:
    """
    Load settings from a YAML file.

    A schema_file key is read from disk (relative to the YAML file) and
    used as the schema. Keyword overrides win over file values and can
    carry what YAML cannot (resolvers, format_error, auth strategies).
    """
    path = Path(path)
    if not path.exists():
        return None

    data = yaml.safe_load(path.read_text()) or {}
    schema_file = data.pop("schema_file", None) or data.pop("schemaFile", None)
    if schema_file:
        data["schema"] = (path.parent / schema_file).read_text()

    data.update(overrides)
    return GraphiSettings.from_dict(data)
