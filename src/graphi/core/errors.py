"""
Custom exceptions for Graphi.
"""

from __future__ import annotations


class GraphiError(Exception):
    """Base exception for all graphi errors."""
    pass


class ConfigurationError(GraphiError):
    """Raised when a schema and its resolver map do not fit together."""
    pass


class SchemaMergeError(ConfigurationError):
    """Raised when two schemas declare the same type or field incompatibly."""

    def __init__(self, type_name: str, message: str):
        self.type_name = type_name
        super().__init__(f"Cannot merge type '{type_name}': {message}")


class DependencyError(GraphiError):
    """Raised when a required collaborator has not been configured."""
    pass


class UnknownSubscriptionError(GraphiError, KeyError):
    """Raised when publishing an event that the schema does not declare."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(f"Subscription '{event}' is not declared on the schema")

    def __str__(self) -> str:
        return self.args[0]


class ChannelNotFoundError(GraphiError):
    """Raised when subscribing to a path that no registered channel matches."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No subscription channel matches '{path}'")
