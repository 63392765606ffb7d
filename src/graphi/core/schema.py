"""
Executable schema builder.

Turns schema text plus a resolver map into a GraphQLSchema whose fields
carry live resolvers, enum values and scalar functions.

Usage:
    from graphi.core.schema import build_executable_schema

    schema = build_executable_schema(
        '''
        type Person { firstname: String! @constr(min: 2) }
        type Query { person(firstname: String!): Person! }
        ''',
        {"Query": {"person": get_person}},
    )

Resolvers are called as resolver(parent, args, context, info). With a
pre_resolve hook they are called as resolver(aux, parent, args, context, info)
where aux is what pre_resolve(parent, args, context) returned for that call.
"""

from __future__ import annotations

import logging
from inspect import isawaitable
from typing import Any, Callable, Mapping, Optional, Union

from graphql import (
    DocumentNode,
    GraphQLEnumType,
    GraphQLError,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    build_ast_schema,
    get_named_type,
    parse,
)

from .directives import collect_decorations, decorate_scalar
from .errors import ConfigurationError
from .rebuild import SchemaPatch, SchemaRebuilder
from .resolvers import ROOT, FieldResolver, ResolverMap

logger = logging.getLogger(__name__)

PreResolveHook = Callable[[Any, dict[str, Any], Any], Any]
SchemaDocument = Union[str, DocumentNode]
Resolvers = Union[ResolverMap, Mapping[str, Any], None]

# Resolver map keys understood on scalar types; any other key sets serialize
SCALAR_FUNCTION_KEYS = {
    "serialize": "serialize",
    "parse_value": "parse_value",
    "parseValue": "parse_value",
    "parse_literal": "parse_literal",
    "parseLiteral": "parse_literal",
}


def adapt_resolver(resolver: FieldResolver, pre_resolve: Optional[PreResolveHook] = None) -> Callable:
    """
    Adapt a resolver(parent, args, context, info) to graphql-core's
    resolve(parent, info, **args) calling convention.
    """
    if pre_resolve is None:
        def resolve(parent, info, **args):
            return resolver(parent, args, info.context, info)
    else:
        def resolve(parent, info, **args):
            aux = pre_resolve(parent, args, info.context)
            if isawaitable(aux):
                return _resolve_after_hook(aux, resolver, parent, args, info)
            return resolver(aux, parent, args, info.context, info)

    resolve.__wrapped__ = resolver
    return resolve


async def _resolve_after_hook(aux, resolver, parent, args, info):
    aux = await aux
    result = resolver(aux, parent, args, info.context, info)
    if isawaitable(result):
        result = await result
    return result


def resolver_patch(
    schema: GraphQLSchema,
    resolvers: Resolvers,
    pre_resolve: Optional[PreResolveHook] = None,
) -> SchemaPatch:
    """
    Check a resolver map against a schema and translate it into a patch.

    Raises:
        ConfigurationError: For unknown types, fields or enum values
    """
    patch = SchemaPatch()

    for type_name, field_resolvers in ResolverMap.coerce(resolvers).by_type().items():
        if type_name == ROOT:
            _patch_root_fields(schema, field_resolvers, pre_resolve, patch)
            continue

        type_ = schema.get_type(type_name)
        if type_ is None:
            raise ConfigurationError(f"{type_name} defined in resolvers, but not in schema")

        for field_name, resolver in field_resolvers.items():
            if isinstance(type_, GraphQLScalarType):
                function_name = SCALAR_FUNCTION_KEYS.get(field_name, "serialize")
                patch.scalar_functions.setdefault(type_name, {})[function_name] = resolver

            elif isinstance(type_, GraphQLEnumType):
                if field_name not in type_.values:
                    raise ConfigurationError(f"{type_name}.{field_name} enum definition missing from schema")
                patch.enum_values[(type_name, field_name)] = resolver

            elif isinstance(type_, (GraphQLObjectType, GraphQLInterfaceType)):
                if field_name not in type_.fields:
                    raise ConfigurationError(f"{type_name}.{field_name} defined in resolvers, but not in schema")
                patch.field_resolvers[(type_name, field_name)] = adapt_resolver(resolver, pre_resolve)

            # input objects and unions have nothing to resolve

    return patch


def _patch_root_fields(schema, field_resolvers, pre_resolve, patch):
    roots = [root for root in (schema.query_type, schema.mutation_type) if root is not None]
    for field_name, resolver in field_resolvers.items():
        owners = [root for root in roots if field_name in root.fields]
        if not owners:
            raise ConfigurationError(f"{field_name} resolver has no matching Query or Mutation field")
        for root in owners:
            patch.field_resolvers[(root.name, field_name)] = adapt_resolver(resolver, pre_resolve)


def _decoration_patch(schema: GraphQLSchema, document: DocumentNode, patch: SchemaPatch):
    for request in collect_decorations(document):
        owner = schema.get_type(request.type_name)
        definition = owner.fields[request.field_name]

        if request.argument:
            key = (request.type_name, request.field_name, request.argument)
            target_type = definition.args[request.argument].type
            current = patch.argument_types
        else:
            key = (request.type_name, request.field_name)
            target_type = definition.type
            current = patch.field_types

        base = current.get(key) or get_named_type(target_type)
        if not isinstance(base, GraphQLScalarType):
            raise ConfigurationError(
                f"@{request.directive} on {request.location} needs a scalar type, not {base.name}"
            )
        current[key] = decorate_scalar(base, request)


def build_executable_schema(
    document: SchemaDocument,
    resolvers: Resolvers = None,
    pre_resolve: Optional[PreResolveHook] = None,
) -> GraphQLSchema:
    """
    Build an executable schema from SDL and a resolver map.

    Args:
        document: Schema text or parsed document
        resolvers: Resolver map (nested dict or ResolverMap)
        pre_resolve: Optional hook run before every wired field resolver

    Returns:
        New GraphQLSchema with resolvers, enum values, scalar functions
        and directive-decorated scalars in place

    Raises:
        ConfigurationError: If the document is invalid or does not match the resolvers
    """
    try:
        document_ast = parse(document) if isinstance(document, str) else document
        base = build_ast_schema(document_ast, assume_valid_sdl=True)
    except GraphQLError as e:
        raise ConfigurationError(f"Invalid schema document: {e.message}") from e
    except TypeError as e:
        raise ConfigurationError(f"Invalid schema document: {e}") from e

    patch = resolver_patch(base, resolvers, pre_resolve)
    _decoration_patch(base, document_ast, patch)

    schema = SchemaRebuilder([base], patch).build()
    logger.info(
        f"Built executable schema: {len(patch.field_resolvers)} resolvers, "
        f"{len(patch.field_types) + len(patch.argument_types)} decorated scalars"
    )
    return schema


def wire_resolvers(
    schema: GraphQLSchema,
    resolvers: Resolvers,
    pre_resolve: Optional[PreResolveHook] = None,
) -> GraphQLSchema:
    """
    Attach a resolver map to an already built schema.

    Returns the same schema when there is nothing to attach.
    """
    patch = resolver_patch(schema, resolvers, pre_resolve)
    if not (patch.field_resolvers or patch.enum_values or patch.scalar_functions):
        return schema
    return SchemaRebuilder([schema], patch).build()


def merge_schemas(schema: Optional[GraphQLSchema], extra_schema: GraphQLSchema) -> GraphQLSchema:
    """
    Merge two schemas so types and fields of both are queryable.

    Raises:
        SchemaMergeError: If a type or field is declared incompatibly
    """
    if schema is None:
        return extra_schema
    return SchemaRebuilder([schema, extra_schema]).build()
