"""Pytest configuration and shared fixtures.

Organization:
    - Schema Fixtures: SDL documents shared across test modules
    - Application Fixtures: FastAPI app with a Graphi instance
"""

from __future__ import annotations

import os

import pytest
from fastapi import FastAPI

from graphi import Graphi
from graphi.core import directives

# Ensure tests run without external infrastructure
os.environ.pop("GRAPHI_REDIS_URL", None)


# ============================================================================
# Schema Fixtures
# ============================================================================

PERSON_SCHEMA = """
    type Person {
        firstname: String!
        lastname: String!
    }

    type Query {
        person(firstname: String!): Person!
    }
"""

PROPERTY_SCHEMA = """
    type Property {
        address: String!
        owner: String
    }

    type Query {
        property(address: String!): Property
    }
"""

SUBSCRIPTION_SCHEMA = """
    type Person {
        firstname: String!
        lastname: String!
    }

    type Query {
        person(firstname: String!): Person!
    }

    type Mutation {
        createPerson(firstname: String!, lastname: String!): Person!
    }

    type Subscription {
        personCreated(firstname: String): Person!
        anyPerson: Person!
    }
"""


@pytest.fixture
def person_schema() -> str:
    return PERSON_SCHEMA


@pytest.fixture
def property_schema() -> str:
    return PROPERTY_SCHEMA


@pytest.fixture
def subscription_schema() -> str:
    return SUBSCRIPTION_SCHEMA


@pytest.fixture(autouse=True)
def restore_scalar_factories():
    """Keep factories registered by one test from leaking into the next."""
    saved = dict(directives.SCALAR_FACTORIES)
    yield
    directives.SCALAR_FACTORIES.clear()
    directives.SCALAR_FACTORIES.update(saved)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app() -> FastAPI:
    """Fresh FastAPI application for each test."""
    return FastAPI()


@pytest.fixture
def get_person():
    """Query.person resolver returning a fixed lastname."""
    def resolve(parent, args, context, info):
        return {"firstname": args["firstname"], "lastname": "arnold"}
    return resolve


@pytest.fixture
def graphi(app: FastAPI, person_schema: str, get_person) -> Graphi:
    """Graphi mounted on the app with the person schema."""
    return Graphi(app, schema=person_schema, resolvers={"Query": {"person": get_person}})
