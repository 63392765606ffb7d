"""
Schema rebuild - construct a fresh GraphQLSchema from one or more sources.

Every named type is recreated exactly once, with field and argument types
pointing at the new objects. Patches (resolvers, enum values, scalar
functions, decorated scalar types) are applied while the new types are
constructed, so source schemas are never mutated.

Used for:
- wiring a resolver map onto a built schema
- swapping directive-decorated scalars into fields and arguments
- merging schemas registered at different times (sources oldest first)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from graphql import (
    GraphQLArgument,
    GraphQLDirective,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLType,
    GraphQLUnionType,
    is_introspection_type,
    is_list_type,
    is_non_null_type,
    is_specified_directive,
    is_specified_scalar_type,
    specified_directives,
)

from .errors import ConfigurationError, SchemaMergeError


@dataclass
class SchemaPatch:
    """
    Changes applied while rebuilding.

    field_resolvers values must already follow the graphql-core signature
    resolve(parent, info, **args).
    """
    field_resolvers: dict[tuple[str, str], Callable[..., Any]] = field(default_factory=dict)
    enum_values: dict[tuple[str, str], Any] = field(default_factory=dict)
    scalar_functions: dict[str, dict[str, Callable[..., Any]]] = field(default_factory=dict)
    field_types: dict[tuple[str, str], GraphQLScalarType] = field(default_factory=dict)
    argument_types: dict[tuple[str, str, str], GraphQLScalarType] = field(default_factory=dict)


def field_signature(definition: GraphQLField | GraphQLInputField) -> tuple:
    """Printable shape of a field used to detect merge conflicts."""
    args = getattr(definition, "args", None) or {}
    return str(definition.type), tuple(sorted((name, str(arg.type)) for name, arg in args.items()))


def swap_named_type(type_: GraphQLType, replacement: GraphQLNamedType) -> GraphQLType:
    """Replace the innermost named type, keeping list/non-null wrappers."""
    if is_non_null_type(type_):
        return GraphQLNonNull(swap_named_type(type_.of_type, replacement))
    if is_list_type(type_):
        return GraphQLList(swap_named_type(type_.of_type, replacement))
    return replacement


def _newest(values: Sequence[Any]) -> Any:
    for value in reversed(values):
        if value is not None:
            return value
    return None


SCALAR_FUNCTIONS = ("serialize", "parse_value", "parse_literal")


def custom_scalar_function(scalar: GraphQLScalarType, name: str) -> Optional[Callable[..., Any]]:
    """The scalar's own serialize/parse function, or None when it is the default."""
    function = getattr(scalar, name)
    if getattr(function, "__func__", function) is getattr(GraphQLScalarType, name):
        return None
    return function


class SchemaRebuilder:
    """
    Rebuilds schemas type by type.

    Usage:
        merged = SchemaRebuilder([old_schema, new_schema]).build()
        wired = SchemaRebuilder([schema], SchemaPatch(field_resolvers=...)).build()
    """

    def __init__(self, schemas: Sequence[GraphQLSchema], patch: Optional[SchemaPatch] = None):
        if not schemas:
            raise ValueError("At least one schema is required")
        self.schemas = list(schemas)
        self.patch = patch or SchemaPatch()
        self._sources: dict[str, list[GraphQLNamedType]] = {}
        self._types: dict[str, GraphQLNamedType] = {}

        for schema in self.schemas:
            for name, type_ in schema.type_map.items():
                if is_introspection_type(type_):
                    continue
                self._sources.setdefault(name, []).append(type_)

    # =========================================================================
    # Public API
    # =========================================================================

    def build(self) -> GraphQLSchema:
        """Check for conflicts and construct the new schema."""
        self._check_conflicts()

        types = [self.named(name) for name in self._sources]

        return GraphQLSchema(
            query=self._root("query_type"),
            mutation=self._root("mutation_type"),
            subscription=self._root("subscription_type"),
            types=types,
            directives=[*specified_directives, *self._directives()],
            description=_newest([schema.description for schema in self.schemas]),
        )

    def named(self, name: str) -> GraphQLNamedType:
        """Get (building on first use) the new type with this name."""
        if name not in self._types:
            self._types[name] = self._build_named(name, self._sources[name])
        return self._types[name]

    def replace(self, type_: GraphQLType) -> GraphQLType:
        """Map a (possibly wrapped) source type onto the new type objects."""
        if is_non_null_type(type_):
            return GraphQLNonNull(self.replace(type_.of_type))
        if is_list_type(type_):
            return GraphQLList(self.replace(type_.of_type))
        if is_introspection_type(type_):
            return type_
        return self.named(type_.name)

    # =========================================================================
    # Conflict detection
    # =========================================================================

    def _check_conflicts(self):
        for name, sources in self._sources.items():
            kinds = {type(source) for source in sources}
            if len(kinds) > 1:
                kind_names = sorted(kind.__name__ for kind in kinds)
                raise SchemaMergeError(name, f"declared as different kinds {kind_names}")

            if not isinstance(sources[0], (GraphQLObjectType, GraphQLInterfaceType, GraphQLInputObjectType)):
                continue

            seen: dict[str, tuple] = {}
            for source in sources:
                for field_name, definition in source.fields.items():
                    signature = field_signature(definition)
                    if field_name in seen and seen[field_name] != signature:
                        raise SchemaMergeError(
                            name,
                            f"field '{field_name}' declared as {seen[field_name][0]} "
                            f"and as {signature[0]} with different arguments or types",
                        )
                    seen[field_name] = signature

    # =========================================================================
    # Named types
    # =========================================================================

    def _build_named(self, name: str, sources: list[GraphQLNamedType]) -> GraphQLNamedType:
        newest = sources[-1]

        if isinstance(newest, GraphQLScalarType):
            return self._scalar(name, sources)
        if isinstance(newest, GraphQLEnumType):
            return self._enum(name, sources)
        if isinstance(newest, GraphQLObjectType):
            return GraphQLObjectType(
                name,
                fields=lambda: self._output_fields(name, sources),
                interfaces=lambda: self._interfaces(sources),
                is_type_of=_newest([source.is_type_of for source in sources]),
                description=_newest([source.description for source in sources]),
                ast_node=newest.ast_node,
                extensions=newest.extensions,
            )
        if isinstance(newest, GraphQLInterfaceType):
            return GraphQLInterfaceType(
                name,
                fields=lambda: self._output_fields(name, sources),
                interfaces=lambda: self._interfaces(sources),
                resolve_type=_newest([source.resolve_type for source in sources]),
                description=_newest([source.description for source in sources]),
                ast_node=newest.ast_node,
                extensions=newest.extensions,
            )
        if isinstance(newest, GraphQLUnionType):
            return GraphQLUnionType(
                name,
                types=lambda: [self.named(member) for member in self._member_names(sources)],
                resolve_type=_newest([source.resolve_type for source in sources]),
                description=_newest([source.description for source in sources]),
                ast_node=newest.ast_node,
                extensions=newest.extensions,
            )
        if isinstance(newest, GraphQLInputObjectType):
            return GraphQLInputObjectType(
                name,
                fields=lambda: self._input_fields(name, sources),
                description=_newest([source.description for source in sources]),
                out_type=newest.out_type,
                ast_node=newest.ast_node,
                extensions=newest.extensions,
            )

        raise ConfigurationError(f"Unsupported type '{name}' ({type(newest).__name__})")

    def _scalar(self, name: str, sources: list[GraphQLNamedType]) -> GraphQLScalarType:
        newest = sources[-1]
        functions = self.patch.scalar_functions.get(name) or {}
        if is_specified_scalar_type(newest):
            if functions:
                raise ConfigurationError(f"Built-in scalar '{name}' cannot be given resolvers")
            return newest
        if len(sources) == 1 and not functions:
            return newest

        # a fragment that only re-declares the scalar keeps earlier functions
        carried = {
            function_name: _newest([custom_scalar_function(source, function_name) for source in sources])
            for function_name in SCALAR_FUNCTIONS
        }
        carried.update(functions)

        return GraphQLScalarType(
            name,
            serialize=carried["serialize"],
            parse_value=carried["parse_value"],
            parse_literal=carried["parse_literal"],
            description=_newest([source.description for source in sources]),
            specified_by_url=_newest([source.specified_by_url for source in sources]),
            ast_node=newest.ast_node,
            extensions=newest.extensions,
        )

    def _enum(self, name: str, sources: list[GraphQLNamedType]) -> GraphQLEnumType:
        patched = {key[1]: value for key, value in self.patch.enum_values.items() if key[0] == name}
        if len(sources) == 1 and not patched:
            return sources[0]

        values: dict[str, GraphQLEnumValue] = {}
        for source in sources:
            for value_name, value in source.values.items():
                internal = value.value
                # a re-declared value keeps the internal value wired earlier
                if value_name in values and internal == value_name:
                    internal = values[value_name].value
                values[value_name] = GraphQLEnumValue(
                    patched.get(value_name, internal),
                    description=value.description,
                    deprecation_reason=value.deprecation_reason,
                    ast_node=value.ast_node,
                )

        newest = sources[-1]
        return GraphQLEnumType(
            name,
            values,
            description=newest.description,
            ast_node=newest.ast_node,
            extensions=newest.extensions,
        )

    # =========================================================================
    # Fields
    # =========================================================================

    def _interfaces(self, sources: list[GraphQLNamedType]) -> list[GraphQLInterfaceType]:
        names: dict[str, None] = {}
        for source in sources:
            for interface in source.interfaces:
                names.setdefault(interface.name, None)
        return [self.named(name) for name in names]

    def _member_names(self, sources: list[GraphQLNamedType]) -> list[str]:
        names: dict[str, None] = {}
        for source in sources:
            for member in source.types:
                names.setdefault(member.name, None)
        return list(names)

    def _collect_fields(self, sources: list[GraphQLNamedType]) -> dict[str, list[Any]]:
        collected: dict[str, list[Any]] = {}
        for source in sources:
            for field_name, definition in source.fields.items():
                collected.setdefault(field_name, []).append(definition)
        return collected

    def _output_fields(self, type_name: str, sources: list[GraphQLNamedType]) -> dict[str, GraphQLField]:
        fields = {}
        for field_name, definitions in self._collect_fields(sources).items():
            newest = definitions[-1]

            resolve = self.patch.field_resolvers.get((type_name, field_name))
            if resolve is None:
                resolve = _newest([definition.resolve for definition in definitions])

            decorated = self.patch.field_types.get((type_name, field_name))
            field_type = swap_named_type(newest.type, decorated) if decorated else self.replace(newest.type)

            args = {}
            for arg_name, arg in newest.args.items():
                decorated_arg = self.patch.argument_types.get((type_name, field_name, arg_name))
                args[arg_name] = GraphQLArgument(
                    swap_named_type(arg.type, decorated_arg) if decorated_arg else self.replace(arg.type),
                    default_value=arg.default_value,
                    description=arg.description,
                    deprecation_reason=arg.deprecation_reason,
                    out_name=arg.out_name,
                    extensions=arg.extensions,
                    ast_node=arg.ast_node,
                )

            fields[field_name] = GraphQLField(
                field_type,
                args=args,
                resolve=resolve,
                subscribe=_newest([definition.subscribe for definition in definitions]),
                description=newest.description,
                deprecation_reason=newest.deprecation_reason,
                extensions=newest.extensions,
                ast_node=newest.ast_node,
            )
        return fields

    def _input_fields(self, type_name: str, sources: list[GraphQLNamedType]) -> dict[str, GraphQLInputField]:
        fields = {}
        for field_name, definitions in self._collect_fields(sources).items():
            newest = definitions[-1]
            decorated = self.patch.field_types.get((type_name, field_name))
            fields[field_name] = GraphQLInputField(
                swap_named_type(newest.type, decorated) if decorated else self.replace(newest.type),
                default_value=newest.default_value,
                description=newest.description,
                deprecation_reason=newest.deprecation_reason,
                out_name=newest.out_name,
                extensions=newest.extensions,
                ast_node=newest.ast_node,
            )
        return fields

    # =========================================================================
    # Schema-level parts
    # =========================================================================

    def _root(self, attribute: str) -> Optional[GraphQLObjectType]:
        root = _newest([getattr(schema, attribute) for schema in self.schemas])
        return self.named(root.name) if root else None

    def _directives(self) -> list[GraphQLDirective]:
        directives: dict[str, GraphQLDirective] = {}
        for schema in self.schemas:
            for directive in schema.directives:
                if not is_specified_directive(directive):
                    directives[directive.name] = directive

        return [
            GraphQLDirective(
                directive.name,
                locations=directive.locations,
                args={
                    arg_name: GraphQLArgument(
                        self.replace(arg.type),
                        default_value=arg.default_value,
                        description=arg.description,
                        out_name=arg.out_name,
                        ast_node=arg.ast_node,
                    )
                    for arg_name, arg in directive.args.items()
                },
                is_repeatable=directive.is_repeatable,
                description=directive.description,
                ast_node=directive.ast_node,
            )
            for directive in directives.values()
        ]
