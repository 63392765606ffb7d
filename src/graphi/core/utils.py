"""
Utility functions for Graphi.

Includes:
- Case conversion (camelCase -> snake_case) for option names
- GraphQL name checks
- URL path joining
"""

from __future__ import annotations

import re
from typing import Any


# Pre-compiled regex patterns for better performance
_CAMEL_TO_SNAKE_PATTERN = re.compile(r'(?<!^)(?=[A-Z])')
_GRAPHQL_NAME_PATTERN = re.compile(r'^[_A-Za-z][_0-9A-Za-z]*$')


def to_snake_case(name: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        graphqlPath -> graphql_path
        graphiAuthStrategy -> graphi_auth_strategy
        HTTPResponse -> http_response
    """
    # Handle consecutive uppercase (HTTP -> http)
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    # Handle standard camelCase
    result = _CAMEL_TO_SNAKE_PATTERN.sub('_', result)
    return result.lower()


def convert_keys_to_snake(data: dict[str, Any]) -> dict[str, Any]:
    """
    Convert the top-level keys of a dict from camelCase to snake_case.

    Values are left untouched, so nested resolver maps keep their names.
    """
    return {to_snake_case(k): v for k, v in data.items()}


def is_graphql_name(name: str) -> bool:
    """Check that a string is usable as a GraphQL field name."""
    return bool(_GRAPHQL_NAME_PATTERN.match(name))


def join_path(*parts: str) -> str:
    """
    Join URL path fragments with single slashes.

    Examples:
        join_path("/test", "createPerson") -> /test/createPerson
        join_path("", "/graphql") -> /graphql
    """
    segments = [part.strip("/") for part in parts if part and part.strip("/")]
    return "/" + "/".join(segments)
