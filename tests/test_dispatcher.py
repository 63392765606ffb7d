"""Tests for the GraphQL HTTP endpoint."""

from __future__ import annotations

import json

import pytest
from fastapi import FastAPI, Header, HTTPException
from fastapi.testclient import TestClient

from graphi import Graphi


PERSON_QUERY = '{ person(firstname: "tom") { lastname } }'


@pytest.fixture
def client(graphi: Graphi, app: FastAPI):
    with TestClient(app) as client:
        yield client


class TestQueries:
    def test_get_with_query_string(self, client):
        res = client.get("/graphql", params={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.json() == {"data": {"person": {"lastname": "arnold"}}}

    def test_post_with_json_body(self, client):
        res = client.post("/graphql", json={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.json()["data"]["person"]["lastname"] == "arnold"

    def test_resolver_receives_request_as_context(self, app, person_schema):
        def get_person(parent, args, context, info):
            assert args["firstname"] == "tom"
            assert context.url.path == "/graphql"
            return {"firstname": "tom", "lastname": "arnold"}

        Graphi(app, schema=person_schema, resolvers={"Query": {"person": get_person}})
        with TestClient(app) as client:
            res = client.get("/graphql", params={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.json()["data"]["person"]["lastname"] == "arnold"

    def test_variables_and_operation_name(self, client):
        query = """
            query Other { person(firstname: "x") { firstname } }
            query ByName($name: String!) { person(firstname: $name) { firstname } }
        """
        res = client.post("/graphql", json={
            "query": query,
            "variables": json.dumps({"name": "billy"}),
            "operationName": "ByName",
        })

        assert res.status_code == 200
        assert res.json() == {"data": {"person": {"firstname": "billy"}}}

    def test_variables_as_object(self, client):
        res = client.post("/graphql", json={
            "query": "query ($name: String!) { person(firstname: $name) { firstname } }",
            "variables": {"name": "billy"},
        })

        assert res.json() == {"data": {"person": {"firstname": "billy"}}}

    def test_get_with_variables(self, client):
        res = client.get("/graphql", params={
            "query": "query ($name: String!) { person(firstname: $name) { firstname } }",
            "variables": '{"name": "billy"}',
        })

        assert res.json() == {"data": {"person": {"firstname": "billy"}}}

    def test_other_methods_read_the_body(self, client):
        res = client.put("/graphql", json={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.json()["data"]["person"]["lastname"] == "arnold"

    def test_async_resolvers(self, app, person_schema):
        async def get_person(parent, args, context, info):
            return {"firstname": args["firstname"], "lastname": "async"}

        Graphi(app, schema=person_schema, resolvers={"Query": {"person": get_person}})
        with TestClient(app) as client:
            res = client.post("/graphql", json={"query": PERSON_QUERY})

        assert res.json() == {"data": {"person": {"lastname": "async"}}}


class TestRequestErrors:
    def test_options_passes_through(self, client):
        res = client.options("/graphql")

        assert res.status_code == 200

    def test_invalid_variables(self, client):
        res = client.post("/graphql", json={"query": PERSON_QUERY, "variables": "{not json"})

        assert res.status_code == 400
        assert res.json()["detail"] == "Unable to parse variables"

    def test_invalid_variables_in_query_string(self, client):
        res = client.get("/graphql", params={"query": PERSON_QUERY, "variables": "invalid"})

        assert res.status_code == 400
        assert res.json()["detail"] == "Unable to parse variables"

    def test_variables_must_be_an_object(self, client):
        res = client.post("/graphql", json={"query": PERSON_QUERY, "variables": "[1, 2]"})

        assert res.status_code == 400

    def test_empty_post(self, client):
        res = client.post("/graphql")

        assert res.status_code == 400
        assert res.json()["detail"].startswith("Invalid GraphQL request")

    def test_syntax_error(self, client):
        res = client.post("/graphql", json={"query": "{ person( "})

        assert res.status_code == 400
        assert "Syntax Error" in res.json()["detail"]

    def test_validation_error(self, client):
        res = client.post("/graphql", json={"query": '{ person(firstname: "tom") @foo { lastname } }'})

        assert res.status_code == 400
        assert "Unknown directive" in res.json()["detail"]

    def test_invalid_json_body(self, client):
        res = client.post("/graphql", content=b"{nope", headers={"content-type": "application/json"})

        assert res.status_code == 400

    def test_no_schema_registered(self, app):
        Graphi(app)
        with TestClient(app) as client:
            res = client.post("/graphql", json={"query": "{ a }"})

        assert res.status_code == 503


class TestFieldErrors:
    SCHEMA = """
        type Person {
            firstname: String!
            lastname: String
        }

        type Query {
            person(firstname: String!): Person
        }
    """

    @staticmethod
    def failing(parent, args, context, info):
        raise ValueError("my custom error")

    def test_resolver_error_is_a_field_error(self, app):
        Graphi(app, schema=self.SCHEMA, resolvers={"Query": {"person": self.failing}})
        with TestClient(app) as client:
            res = client.post("/graphql", json={"query": PERSON_QUERY})

        assert res.status_code == 200
        body = res.json()
        assert body["data"] == {"person": None}
        assert body["errors"][0]["message"] == "my custom error"
        assert body["errors"][0]["path"] == ["person"]

    def test_format_error(self, app):
        def format_error(error):
            return {"message": error.message, "code": "CUSTOM"}

        Graphi(
            app,
            schema=self.SCHEMA,
            resolvers={"Query": {"person": self.failing}},
            formatError=format_error,
        )
        with TestClient(app) as client:
            res = client.post("/graphql", json={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.json()["errors"] == [{"message": "my custom error", "code": "CUSTOM"}]

    def test_errors_are_logged(self, app, caplog):
        Graphi(app, schema=self.SCHEMA, resolvers={"Query": {"person": self.failing}})
        with TestClient(app) as client:
            with caplog.at_level("ERROR", logger="graphi.runtime.dispatcher"):
                client.post("/graphql", json={"query": PERSON_QUERY})

        assert "my custom error" in caplog.text


class TestRoutes:
    def test_auth_strategy(self, app, person_schema, get_person):
        def require_token(authorization: str = Header(default="")):
            if authorization != "Bearer secret":
                raise HTTPException(status_code=401, detail="Unauthorized")

        Graphi(
            app,
            schema=person_schema,
            resolvers={"Query": {"person": get_person}},
            authStrategy=require_token,
        )
        with TestClient(app) as client:
            denied = client.post("/graphql", json={"query": PERSON_QUERY})
            allowed = client.post(
                "/graphql",
                json={"query": PERSON_QUERY},
                headers={"authorization": "Bearer secret"},
            )
            page = client.get("/graphiql")

        assert denied.status_code == 401
        assert allowed.status_code == 200
        # graphiql has its own strategy
        assert page.status_code == 200

    def test_custom_paths_and_prefix(self, app, person_schema, get_person):
        Graphi(
            app,
            schema=person_schema,
            resolvers={"Query": {"person": get_person}},
            graphqlPath="/gql",
            graphiqlPath=None,
            prefix="/api",
        )
        with TestClient(app) as client:
            res = client.get("/api/gql", params={"query": PERSON_QUERY})
            page = client.get("/api/graphiql")

        assert res.status_code == 200
        assert page.status_code == 404

    def test_graphiql_page(self, client):
        res = client.get("/graphiql", params={"query": PERSON_QUERY})

        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        assert '"endpointURL": "/graphql"' in res.text
        assert "person(firstname" in res.text
        assert '"variables": "{}"' in res.text

    def test_routes_are_tagged(self, graphi, app):
        tagged = [route for route in app.routes if "graphi" in getattr(route, "tags", [])]

        assert {route.path for route in tagged} == {"/graphql", "/graphiql"}
