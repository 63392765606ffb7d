"""Tests for SchemaRegistry registration and merging."""

from __future__ import annotations

from datetime import date

import pytest
from graphql import graphql_sync, print_schema

from graphi.core.errors import ConfigurationError, DependencyError, SchemaMergeError
from graphi.core.registry import SchemaRegistry
from graphi.core.schema import build_executable_schema, merge_schemas
from graphi.websocket import ChannelHub


def get_person(parent, args, context, info):
    return {"firstname": args["firstname"], "lastname": "arnold"}


def get_property(parent, args, context, info):
    return {"address": args["address"], "owner": "tom"}


class TestRegister:
    def test_first_registration_replaces(self, person_schema):
        registry = SchemaRegistry()
        schema = registry.register(person_schema, {"Query": {"person": get_person}})

        assert registry.schema is schema
        assert registry.current() == (schema, registry.resolvers)
        result = graphql_sync(schema, '{ person(firstname: "tom") { lastname } }')
        assert result.data == {"person": {"lastname": "arnold"}}

    def test_later_registration_merges(self, person_schema, property_schema):
        registry = SchemaRegistry()
        registry.register(person_schema, {"Query": {"person": get_person}})
        schema = registry.register(property_schema, {"Query": {"property": get_property}})

        assert set(schema.query_type.fields) == {"person", "property"}
        result = graphql_sync(schema, '{ person(firstname: "tom") { lastname } property(address: "a") { owner } }')
        assert result.errors is None
        assert result.data == {"person": {"lastname": "arnold"}, "property": {"owner": "tom"}}
        assert set(registry.resolvers) == {("Query", "person"), ("Query", "property")}

    def test_registering_same_schema_twice_is_idempotent(self, person_schema):
        calls = []

        def counting_person(parent, args, context, info):
            calls.append(args)
            return get_person(parent, args, context, info)

        registry = SchemaRegistry()
        first = registry.register(person_schema, {"Query": {"person": counting_person}})
        second = registry.register(person_schema, {"Query": {"person": counting_person}})

        assert print_schema(first) == print_schema(second)
        result = graphql_sync(second, '{ person(firstname: "tom") { lastname } }')
        assert result.data == {"person": {"lastname": "arnold"}}
        assert calls == [{"firstname": "tom"}]

    def test_older_resolver_kept_when_newer_schema_has_none(self, person_schema):
        registry = SchemaRegistry()
        registry.register(person_schema, {"Query": {"person": get_person}})
        schema = registry.register(person_schema)

        result = graphql_sync(schema, '{ person(firstname: "tom") { lastname } }')
        assert result.data == {"person": {"lastname": "arnold"}}

    def test_resolvers_before_schema_are_pending(self, person_schema):
        registry = SchemaRegistry()
        assert registry.register(resolvers={"Query": {"person": get_person}}) is None
        assert registry.schema is None

        schema = registry.register(person_schema)
        result = graphql_sync(schema, '{ person(firstname: "tom") { lastname } }')
        assert result.data == {"person": {"lastname": "arnold"}}

    def test_resolvers_only_rewires_current_schema(self, person_schema):
        registry = SchemaRegistry()
        registry.register(person_schema)
        schema = registry.register(resolvers={"person": get_person})

        result = graphql_sync(schema, '{ person(firstname: "tom") { lastname } }')
        assert result.data == {"person": {"lastname": "arnold"}}

    def test_prebuilt_schema(self, person_schema):
        registry = SchemaRegistry()
        built = build_executable_schema(person_schema, {"Query": {"person": get_person}})

        assert registry.register(built) is built

    def test_resolvers_not_in_schema(self, person_schema):
        registry = SchemaRegistry()

        with pytest.raises(ConfigurationError):
            registry.register(person_schema, {"Query": {"human": get_person}})
        assert registry.schema is None

    def test_unsupported_schema_value(self):
        with pytest.raises(ConfigurationError, match="Cannot register schema of type int"):
            SchemaRegistry().register(42)


class TestMerge:
    def test_conflicting_field_types(self, person_schema):
        registry = SchemaRegistry()
        registry.register(person_schema)

        with pytest.raises(SchemaMergeError, match="Person"):
            registry.register("""
                type Person { firstname: Int }
                type Query { other: Person }
            """)

    def test_conflicting_kinds(self, person_schema):
        registry = SchemaRegistry()
        registry.register(person_schema)

        with pytest.raises(SchemaMergeError, match="different kinds"):
            registry.register("""
                enum Person { A B }
                type Query { other: Person }
            """)

    def test_merge_unions_enums_and_fields(self):
        left = build_executable_schema("""
            enum Color { RED }
            type Cat { name: String }
            union Pet = Cat
            type Query { pet: Pet color: Color }
        """)
        right = build_executable_schema("""
            enum Color { BLUE }
            type Dog { name: String }
            union Pet = Dog
            type Query { pets: [Pet] }
            type Mutation { adopt(name: String!): Pet }
        """)

        merged = merge_schemas(left, right)

        assert set(merged.get_type("Color").values) == {"RED", "BLUE"}
        assert {member.name for member in merged.get_type("Pet").types} == {"Cat", "Dog"}
        assert set(merged.query_type.fields) == {"pet", "color", "pets"}
        assert merged.mutation_type.name == "Mutation"

    def test_redeclared_scalar_keeps_functions(self):
        registry = SchemaRegistry()
        registry.register(
            """
                scalar Date
                type Query { today: Date }
            """,
            {
                "Date": {"serialize": lambda value: value.isoformat()},
                "Query": {"today": lambda *_: date(2020, 1, 1)},
            },
        )
        schema = registry.register(
            """
                scalar Date
                type Query { tomorrow: Date }
            """,
            {"Query": {"tomorrow": lambda *_: date(2020, 1, 2)}},
        )

        result = graphql_sync(schema, "{ today tomorrow }")
        assert result.errors is None
        assert result.data == {"today": "2020-01-01", "tomorrow": "2020-01-02"}

    def test_newer_scalar_functions_win(self):
        registry = SchemaRegistry()
        registry.register(
            "scalar Date type Query { today: Date }",
            {
                "Date": {"serialize": lambda value: value.isoformat()},
                "Query": {"today": lambda *_: date(2020, 1, 1)},
            },
        )
        schema = registry.register(
            "scalar Date type Query { other: Date }",
            {"Date": {"serialize": lambda value: value.strftime("%d/%m/%Y")}},
        )

        assert graphql_sync(schema, "{ today }").data == {"today": "01/01/2020"}

    def test_redeclared_enum_keeps_internal_values(self):
        def red():
            pass

        registry = SchemaRegistry()
        registry.register(
            """
                enum Color { RED BLUE }
                type Query { color: Color }
            """,
            {"Color": {"RED": red}, "Query": {"color": lambda *_: red}},
        )
        schema = registry.register("""
            enum Color { RED BLUE }
            type Query { other: Color }
        """)

        result = graphql_sync(schema, "{ color }")
        assert result.errors is None
        assert result.data == {"color": "RED"}

    def test_merge_with_nothing(self, person_schema):
        schema = build_executable_schema(person_schema)

        assert merge_schemas(None, schema) is schema

    def test_merge_keeps_decorated_scalars(self):
        decorated = """
            type Person { firstname: String @constr(min: 2) }
            type Query { person: Person }
        """
        registry = SchemaRegistry()
        registry.register(decorated, {"Query": {"person": lambda *_: {"firstname": "x"}}})
        schema = registry.register(decorated)

        result = graphql_sync(schema, "{ person { firstname } }")
        assert result.data == {"person": {"firstname": None}}
        assert "at least 2 characters" in result.errors[0].message


class TestSubscriptionRegistration:
    def test_subscription_without_hub(self, subscription_schema):
        registry = SchemaRegistry()

        with pytest.raises(DependencyError):
            registry.register(subscription_schema)

    def test_subscription_channels_registered(self, subscription_schema):
        hub = ChannelHub()
        registry = SchemaRegistry(hub=hub)
        registry.register(subscription_schema, subscription_options={"filter": None})

        assert sorted(hub.channels) == ["/anyPerson", "/personCreated/{firstname}"]

    def test_resolver_only_registration_keeps_options(self, subscription_schema):
        def only_public(path, message):
            return message.get("public", False)

        hub = ChannelHub()
        registry = SchemaRegistry(hub=hub)
        registry.register(subscription_schema, subscription_options={"filter": only_public})
        registry.register(resolvers={"Query": {"person": get_person}})

        assert hub.match("/anyPerson").options == {"filter": only_public}

    def test_default_options_from_constructor(self, subscription_schema):
        def only_public(path, message):
            return message.get("public", False)

        hub = ChannelHub()
        registry = SchemaRegistry(hub=hub, subscription_options={"filter": only_public})
        registry.register(subscription_schema)

        assert hub.match("/personCreated/john").options == {"filter": only_public}
