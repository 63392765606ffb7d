"""Tests for the GraphiQL page."""

from __future__ import annotations

from graphi.playground import get_graphiql_html


def test_defaults():
    html = get_graphiql_html()

    assert '"endpointURL": "/graphql"' in html
    assert '"variables": "{}"' in html
    assert "graphiql.min.js" in html


def test_prepopulated_fields():
    html = get_graphiql_html(
        endpoint_url="/api/graphql",
        query="{ person { lastname } }",
        variables={"name": "tom"},
        operation_name="Person",
    )

    assert '"endpointURL": "/api/graphql"' in html
    assert '"query": "{ person { lastname } }"' in html
    assert '"operationName": "Person"' in html
    assert '\\"name\\": \\"tom\\"' in html


def test_script_tags_are_escaped():
    html = get_graphiql_html(query="</script><script>alert(1)</script>")

    assert "</script><script>alert(1)" not in html
    assert "\\u003c/script>" in html
