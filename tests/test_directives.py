"""Tests for scalar directives (@constr, @conint, @confloat)."""

from __future__ import annotations

import pytest
from graphql import GraphQLError, GraphQLScalarType, graphql_sync, parse, validate

from graphi.core.directives import (
    DecorationRequest,
    collect_decorations,
    constrained_scalar,
    register_scalar_factory,
)
from graphi.core.errors import ConfigurationError
from graphi.core.schema import build_executable_schema


DECORATED_SCHEMA = """
    type Person {
        firstname: String @constr(min: 2, max: 10)
        age: Int @conint(min: 0)
    }

    type Query {
        person(firstname: String @constr(min: 2), age: Int @conint(max: 150)): Person
        score(value: Float @confloat(gt: 0.5)): Float
    }
"""


def echo_person(parent, args, context, info):
    return {"firstname": args.get("firstname"), "age": args.get("age")}


@pytest.fixture
def schema():
    return build_executable_schema(DECORATED_SCHEMA, {
        "Query": {
            "person": echo_person,
            "score": lambda parent, args, context, info: args["value"],
        },
    })


class TestCollectDecorations:
    def test_collects_fields_and_arguments(self):
        requests = collect_decorations(parse(DECORATED_SCHEMA))

        assert [request.location for request in requests] == [
            "Person.firstname",
            "Person.age",
            "Query.person(firstname)",
            "Query.person(age)",
            "Query.score(value)",
        ]
        assert requests[0].args == {"min": 2, "max": 10}
        assert requests[4].args == {"gt": 0.5}

    def test_literal_values_at_face_value(self):
        document = parse("""
            type Query {
                a: String @constr(min: 2, pattern: "^a", strip_whitespace: true)
            }
        """)
        (request,) = collect_decorations(document)

        assert request.args == {"min": 2, "pattern": "^a", "strip_whitespace": True}

    def test_unknown_directives_skipped(self):
        document = parse("type Query { a: String @JoiInvalid(min: 2) @deprecated }")

        assert collect_decorations(document) == []

    def test_object_extensions_and_input_fields(self):
        document = parse("""
            input PersonInput { firstname: String @constr(min: 1) }
            type Query { a: String }
            extend type Query { b: Int @conint(max: 3) }
        """)

        assert [request.location for request in collect_decorations(document)] == [
            "PersonInput.firstname",
            "Query.b",
        ]

    def test_scalar_name(self):
        request = DecorationRequest("Query", "person", "constr", {}, argument="firstname")

        assert request.scalar_name("String") == "String_constr_Query_person_firstname"


class TestDecoratedSchema:
    def test_decorated_types_are_in_the_schema(self, schema):
        assert "String_constr_Person_firstname" in schema.type_map
        assert "Int_conint_Query_person_age" in schema.type_map
        assert str(schema.get_type("Person").fields["firstname"].type) == "String_constr_Person_firstname"

    def test_valid_values_pass(self, schema):
        result = graphql_sync(schema, '{ person(firstname: "tom", age: 30) { firstname age } }')

        assert result.errors is None
        assert result.data == {"person": {"firstname": "tom", "age": 30}}

    def test_argument_literal_rejected_during_validation(self, schema):
        errors = validate(schema, parse('{ person(age: 200) { age } }'))

        assert errors
        assert "less than or equal to 150" in errors[0].message

    def test_output_value_rejected_as_field_error(self):
        schema = build_executable_schema(DECORATED_SCHEMA, {
            "Query": {"person": lambda *_: {"firstname": "x", "age": -1}},
        })
        result = graphql_sync(schema, "{ person { firstname age } }")

        assert result.data == {"person": {"firstname": None, "age": None}}
        messages = sorted(error.message for error in result.errors)
        assert "at least 2 characters" in messages[1]
        assert "greater than or equal to 0" in messages[0]

    def test_float_constraint(self, schema):
        ok = graphql_sync(schema, "{ score(value: 0.75) }")
        assert ok.data == {"score": 0.75}

        errors = validate(schema, parse("{ score(value: 0.25) }"))
        assert "greater than 0.5" in errors[0].message

    def test_variables_are_validated(self, schema):
        query = "query ($age: Int_conint_Query_person_age) { person(age: $age) { age } }"
        result = graphql_sync(schema, query, variable_values={"age": 151})

        assert result.data is None
        assert "less than or equal to 150" in result.errors[0].message

    def test_invalid_directive_arguments(self):
        with pytest.raises(ConfigurationError, match="Invalid @constr on Query.a"):
            build_executable_schema("type Query { a: String @constr(bogus: 1) }")

    def test_directive_on_non_scalar_field(self):
        schema_text = """
            type Person { name: String }
            type Query { person: Person @constr(min: 1) }
        """
        with pytest.raises(ConfigurationError, match="needs a scalar type"):
            build_executable_schema(schema_text)


class TestScalarFactoryRegistry:
    def test_register_custom_factory(self):
        def shout(base: GraphQLScalarType, name: str, **args):
            return GraphQLScalarType(name, serialize=lambda value: base.serialize(value).upper() + args["suffix"])

        register_scalar_factory("shout", shout)
        schema = build_executable_schema(
            'type Query { greeting: String @shout(suffix: "!") }',
            {"Query": {"greeting": lambda *_: "hello"}},
        )
        result = graphql_sync(schema, "{ greeting }")

        assert result.data == {"greeting": "HELLO!"}

    def test_constrained_scalar_keeps_base_coercion(self):
        from graphql import GraphQLInt
        from pydantic import conint

        scalar = constrained_scalar(GraphQLInt, "SmallInt", conint(le=5))

        assert scalar.serialize(3.0) == 3
        with pytest.raises(GraphQLError, match="SmallInt"):
            scalar.parse_value(6)
