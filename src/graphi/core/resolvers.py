"""
Resolver maps - resolver functions keyed by (type name, field name).

Accepts the nested dict form used by embedding code:

    {
        "Query": {"person": get_person},
        "Person": {"fullname": get_fullname},
        "createPerson": create_person,      # bare shorthand, root Query/Mutation
    }

Bare top-level callables are stored under the empty type name ROOT.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Callable, Optional

from .errors import ConfigurationError

ROOT = ""

FieldResolver = Callable[..., Any]
ResolverKey = tuple[str, str]


class ResolverMap(Mapping[ResolverKey, FieldResolver]):
    """
    Immutable mapping of (type name, field name) -> resolver function.

    Merging returns a new map; the newer map wins on key collisions.

    Example:
        resolvers = ResolverMap.from_dict({"Query": {"person": get_person}})
        merged = resolvers.merge({"Person": {"lastname": get_lastname}})
    """

    def __init__(self, entries: Optional[Mapping[ResolverKey, FieldResolver]] = None):
        self._entries: dict[ResolverKey, FieldResolver] = dict(entries or {})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResolverMap:
        """
        Build a map from the nested dict form.

        Raises:
            ConfigurationError: If a value is neither a callable nor a mapping
                of field names to callables
        """
        entries: dict[ResolverKey, FieldResolver] = {}
        for name, value in data.items():
            if callable(value):
                entries[(ROOT, name)] = value
                continue

            if not isinstance(value, Mapping):
                raise ConfigurationError(
                    f"{name} resolver must be a function or a mapping of field resolvers"
                )

            for field_name, resolver in value.items():
                if not callable(resolver):
                    raise ConfigurationError(f"{name}.{field_name} resolver must be a function")
                entries[(name, field_name)] = resolver

        return cls(entries)

    @classmethod
    def coerce(cls, value: ResolverMap | Mapping[str, Any] | None) -> ResolverMap:
        """Accept a ResolverMap, a nested dict, or None."""
        if value is None:
            return cls()
        if isinstance(value, ResolverMap):
            return value
        return cls.from_dict(value)

    def merge(self, other: ResolverMap | Mapping[str, Any] | None) -> ResolverMap:
        """Return a new map holding both maps' entries (other wins)."""
        other = ResolverMap.coerce(other)
        return ResolverMap({**self._entries, **other._entries})

    def by_type(self) -> dict[str, dict[str, FieldResolver]]:
        """Group entries back into {type name: {field name: resolver}}."""
        grouped: dict[str, dict[str, FieldResolver]] = {}
        for (type_name, field_name), resolver in self._entries.items():
            grouped.setdefault(type_name, {})[field_name] = resolver
        return grouped

    def root_fields(self) -> dict[str, FieldResolver]:
        """Bare top-level resolvers (shorthand for root operation fields)."""
        return self.by_type().get(ROOT, {})

    def __getitem__(self, key: ResolverKey) -> FieldResolver:
        return self._entries[key]

    def __iter__(self) -> Iterator[ResolverKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResolverMap({sorted(self._entries)})"
