"""
Scalar directives - validation scalars declared inline in schema text.

    type Person {
        firstname: String @constr(min: 2, max: 100)
    }

    type Query {
        person(age: Int @conint(ge: 0)): Person
    }

Each directive whose name matches a registered scalar factory is turned
into a decoration request at build time. The schema rebuild then swaps the
field (or argument) type for a constrained scalar that keeps the base
scalar's coercion and validates the result through pydantic.

Directives with unknown names are left alone, so schemas can carry
directives meant for other tooling.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from graphql import (
    BooleanValueNode,
    DocumentNode,
    FloatValueNode,
    GraphQLError,
    GraphQLScalarType,
    InputObjectTypeDefinitionNode,
    InputObjectTypeExtensionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
    IntValueNode,
    ListValueNode,
    NullValueNode,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    ValueNode,
)
from pydantic import TypeAdapter, ValidationError, confloat, conint, constr

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ScalarFactory = Callable[..., GraphQLScalarType]

_FIELD_OWNERS = (
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
)
_INPUT_OWNERS = (InputObjectTypeDefinitionNode, InputObjectTypeExtensionNode)


@dataclass
class DecorationRequest:
    """
    A directive found on a field, argument or input field.

    argument is None for output fields and input object fields.
    """
    type_name: str
    field_name: str
    directive: str
    args: dict[str, Any] = field(default_factory=dict)
    argument: Optional[str] = None

    @property
    def location(self) -> str:
        path = f"{self.type_name}.{self.field_name}"
        return f"{path}({self.argument})" if self.argument else path

    def scalar_name(self, base_name: str) -> str:
        """Unique name for the decorated scalar in the schema's type map."""
        parts = [base_name, self.directive, self.type_name, self.field_name]
        if self.argument:
            parts.append(self.argument)
        return "_".join(parts)


def literal_value(node: ValueNode) -> Any:
    """
    Read a directive argument literal at face value.

    Integer and float literals become numbers, booleans become bools,
    lists are converted item by item, anything else keeps its raw value.
    """
    if isinstance(node, IntValueNode):
        return int(node.value)
    if isinstance(node, FloatValueNode):
        return float(node.value)
    if isinstance(node, BooleanValueNode):
        return node.value
    if isinstance(node, NullValueNode):
        return None
    if isinstance(node, ListValueNode):
        return [literal_value(value) for value in node.values]
    return getattr(node, "value", None)


def _read_directives(directives, known: Mapping) -> list[tuple[str, dict[str, Any]]]:
    found = []
    for directive in directives or ():
        name = directive.name.value
        if name not in known:
            continue
        args = {arg.name.value: literal_value(arg.value) for arg in directive.arguments or ()}
        found.append((name, args))
    return found


def collect_decorations(
    document: DocumentNode,
    factories: Optional[Mapping[str, ScalarFactory]] = None,
) -> list[DecorationRequest]:
    """
    Walk a parsed schema document and list every known scalar directive.

    Args:
        document: Parsed SDL document
        factories: Scalar factories by directive name (default: registered ones)

    Returns:
        Decoration requests in document order
    """
    known = SCALAR_FACTORIES if factories is None else factories
    requests: list[DecorationRequest] = []

    for definition in document.definitions:
        if isinstance(definition, _FIELD_OWNERS):
            type_name = definition.name.value
            for field_node in definition.fields or ():
                field_name = field_node.name.value
                for directive, args in _read_directives(field_node.directives, known):
                    requests.append(DecorationRequest(type_name, field_name, directive, args))
                for arg_node in field_node.arguments or ():
                    for directive, args in _read_directives(arg_node.directives, known):
                        requests.append(DecorationRequest(
                            type_name, field_name, directive, args, argument=arg_node.name.value,
                        ))

        elif isinstance(definition, _INPUT_OWNERS):
            type_name = definition.name.value
            for field_node in definition.fields or ():
                for directive, args in _read_directives(field_node.directives, known):
                    requests.append(DecorationRequest(type_name, field_node.name.value, directive, args))

    return requests


def decorate_scalar(
    base: GraphQLScalarType,
    request: DecorationRequest,
    factories: Optional[Mapping[str, ScalarFactory]] = None,
) -> GraphQLScalarType:
    """
    Build the constrained scalar for one decoration request.

    Raises:
        ConfigurationError: If the factory rejects the directive arguments
    """
    known = SCALAR_FACTORIES if factories is None else factories
    factory = known[request.directive]
    name = request.scalar_name(base.name)
    try:
        scalar = factory(base, name, **request.args)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid @{request.directive} on {request.location}: {e}")
    logger.debug(f"Decorated {request.location} with @{request.directive} as {name}")
    return scalar


# =============================================================================
# Scalar factories
# =============================================================================


def constrained_scalar(
    base: GraphQLScalarType,
    name: str,
    constrained_type: Any,
    description: Optional[str] = None,
) -> GraphQLScalarType:
    """
    Wrap a base scalar with a pydantic constrained type.

    The base scalar coerces first; pydantic validates (and may transform)
    the coerced value. Validation failures become GraphQL errors.
    """
    adapter = TypeAdapter(constrained_type)

    def validate(value: Any) -> Any:
        if value is None:
            return None
        try:
            return adapter.validate_python(value)
        except ValidationError as e:
            messages = "; ".join(error["msg"] for error in e.errors())
            raise GraphQLError(f"{name}: {messages}")

    def serialize(value: Any) -> Any:
        return validate(base.serialize(value))

    def parse_value(value: Any) -> Any:
        return validate(base.parse_value(value))

    def parse_literal(value_node: ValueNode, variables: Optional[dict[str, Any]] = None) -> Any:
        return validate(base.parse_literal(value_node, variables))

    return GraphQLScalarType(
        name,
        serialize=serialize,
        parse_value=parse_value,
        parse_literal=parse_literal,
        description=description or f"{base.name} constrained by {constrained_type!r}",
    )


def _rename(args: dict[str, Any], aliases: dict[str, str]) -> dict[str, Any]:
    return {aliases.get(key, key): value for key, value in args.items()}


def string_factory(base: GraphQLScalarType, name: str, **args: Any) -> GraphQLScalarType:
    """@constr(min, max, pattern, strip_whitespace, to_lower, to_upper)"""
    args = _rename(args, {"min": "min_length", "max": "max_length"})
    return constrained_scalar(base, name, constr(**args))


def int_factory(base: GraphQLScalarType, name: str, **args: Any) -> GraphQLScalarType:
    """@conint(min, max, gt, lt, multiple_of)"""
    args = _rename(args, {"min": "ge", "max": "le"})
    return constrained_scalar(base, name, conint(**args))


def float_factory(base: GraphQLScalarType, name: str, **args: Any) -> GraphQLScalarType:
    """@confloat(min, max, gt, lt, multiple_of)"""
    args = _rename(args, {"min": "ge", "max": "le"})
    return constrained_scalar(base, name, confloat(**args))


SCALAR_FACTORIES: dict[str, ScalarFactory] = {
    "constr": string_factory,
    "conint": int_factory,
    "confloat": float_factory,
}


def register_scalar_factory(name: str, factory: ScalarFactory) -> None:
    """
    Register a scalar factory under a directive name.

    The factory is called as factory(base_scalar, scalar_name, **directive_args)
    and must return a GraphQLScalarType named scalar_name.
    """
    SCALAR_FACTORIES[name] = factory
    logger.info(f"Registered scalar directive @{name}")
