"""
Graphi Playground - GraphiQL page for exploring the schema.

Usage:
    from graphi.playground import get_graphiql_html

    html = get_graphiql_html(
        endpoint_url="/graphql",
        query="{ person(firstname: \\"billy\\") { lastname } }",
    )
"""

from __future__ import annotations

import json
from typing import Any, Optional

GRAPHIQL_VERSION = "3.0.10"
REACT_VERSION = "18.2.0"

_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <title>{title}</title>
    <style>
        body {{ height: 100vh; margin: 0; overflow: hidden; }}
        #graphiql {{ height: 100vh; }}
    </style>
    <link rel="stylesheet" href="https://unpkg.com/graphiql@{graphiql_version}/graphiql.min.css" />
</head>
<body>
    <div id="graphiql">Loading...</div>
    <script crossorigin src="https://unpkg.com/react@{react_version}/umd/react.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/react-dom@{react_version}/umd/react-dom.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/graphiql@{graphiql_version}/graphiql.min.js"></script>
    <script>
        const config = {config};
        const fetcher = GraphiQL.createFetcher({{ url: config.endpointURL }});
        const root = ReactDOM.createRoot(document.getElementById("graphiql"));
        root.render(React.createElement(GraphiQL, {{
            fetcher: fetcher,
            query: config.query,
            variables: config.variables,
            operationName: config.operationName,
            defaultEditorToolsVisibility: true,
        }}));
    </script>
</body>
</html>
"""


def get_graphiql_html(
    endpoint_url: str = "/graphql",
    query: Optional[str] = None,
    variables: Any = None,
    operation_name: Optional[str] = None,
    *,
    title: str = "GraphiQL",
) -> str:
    """
    Render the GraphiQL page.

    Args:
        endpoint_url: URL of the GraphQL endpoint the page queries
        query: Initial query text
        variables: Initial variables, as a JSON string or an object (default "{}")
        operation_name: Initial operation name
        title: Page title

    Returns:
        HTML string
    """
    if variables is None or variables == "":
        variables = "{}"
    if not isinstance(variables, str):
        variables = json.dumps(variables, indent=2)

    config = json.dumps({
        "endpointURL": endpoint_url,
        "query": query,
        "variables": variables,
        "operationName": operation_name,
    })
    # Keep user-supplied text from closing the script element
    config = config.replace("<", "\\u003c")

    return _TEMPLATE.format(
        title=title,
        config=config,
        graphiql_version=GRAPHIQL_VERSION,
        react_version=REACT_VERSION,
    )


__all__ = ["get_graphiql_html"]
