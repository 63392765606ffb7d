"""
Route-to-resolver bridge - ordinary routes answering GraphQL fields.

A route takes part when it is declared with the reserved GRAPHQL method
or carries the reserved "graphql" tag:

    @app.api_route("/createPerson", methods=["GRAPHQL"])
    async def create_person(person: PersonIn): ...

    @router.post("/person", tags=["graphql"])       # still reachable over POST
    async def person(query: PersonQuery): ...

At startup every such route becomes a root resolver named after its path
with the realm prefix stripped (/test/createPerson -> createPerson). The
resolver forwards field arguments to the route through an in-process HTTP
call; a response >= 400 becomes a field error carrying the status code.

No client can send the GRAPHQL verb, so routes declared that way are only
reachable through GraphQL. Tagged routes keep their REST verb as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Sequence

import httpx
from fastapi.routing import APIRoute
from graphql import GraphQLError, GraphQLResolveInfo

from ..core.utils import is_graphql_name, join_path
from .client import InternalClient

logger = logging.getLogger(__name__)

GRAPHQL_METHOD = "GRAPHQL"
GRAPHQL_TAG = "graphql"

# Verb used for tagged routes that accept several
_METHOD_PREFERENCE = ("POST", "PUT", "PATCH", "GET", "DELETE")


@dataclass(frozen=True)
class BridgeRoute:
    """A route selected for GraphQL, with the call it will receive."""
    field_name: str
    method: str
    prefix: str
    path: str

    @property
    def url(self) -> str:
        return join_path(self.prefix, self.field_name)


def derive_field_name(path: str, prefix: str = "") -> str:
    """
    Field name for a route path.

    Examples:
        derive_field_name("/person") -> person
        derive_field_name("/test/createPerson", "/test") -> createPerson
    """
    prefix = prefix.rstrip("/")
    if prefix and (path == prefix or path.startswith(prefix + "/")):
        path = path[len(prefix):]
    return path.lstrip("/")


class RouteBridge:
    """
    Scans an application's routes and synthesizes bridge resolvers.

    Usage:
        bridge = RouteBridge(app, prefixes=["/test"])
        resolvers = bridge.resolvers()     # {"createPerson": <resolver>, ...}
        registry.register(resolvers=resolvers)
    """

    def __init__(
        self,
        app: Any,
        prefixes: Optional[Sequence[str]] = None,
        forward_headers: Sequence[str] = ("authorization", "cookie"),
        client: Optional[InternalClient] = None,
    ):
        """
        Initialize bridge.

        Args:
            app: FastAPI application whose routes are scanned and called
            prefixes: Realm prefixes to strip when naming fields
            forward_headers: Request headers copied onto bridge calls
            client: Internal client (default: one bound to app)
        """
        self.app = app
        self.prefixes: list[str] = [p.rstrip("/") for p in prefixes or () if p.strip("/")]
        self.forward_headers = tuple(h.lower() for h in forward_headers)
        self.client = client or InternalClient(app)

    def add_prefix(self, prefix: str):
        """Register a realm prefix (e.g. the prefix a router was included with)."""
        prefix = prefix.rstrip("/")
        if prefix and prefix not in self.prefixes:
            self.prefixes.append(prefix)

    def prefix_for(self, path: str) -> str:
        """Longest registered prefix that the path lives under."""
        matches = [p for p in self.prefixes if path == p or path.startswith(p + "/")]
        return max(matches, key=len) if matches else ""

    def scan(self) -> Iterator[BridgeRoute]:
        """Yield every route that takes part in GraphQL."""
        for route in self.app.routes:
            if not isinstance(route, APIRoute):
                continue

            methods = {method.upper() for method in route.methods or ()}
            if GRAPHQL_METHOD in methods:
                method = GRAPHQL_METHOD
            elif GRAPHQL_TAG in (route.tags or []):
                method = next((m for m in _METHOD_PREFERENCE if m in methods), None)
                if method is None:
                    logger.warning(f"Skipping graphql-tagged route {route.path}: no usable method in {methods}")
                    continue
            else:
                continue

            prefix = self.prefix_for(route.path)
            field_name = derive_field_name(route.path, prefix)
            if not is_graphql_name(field_name):
                logger.warning(
                    f"Skipping route {route.path}: '{field_name}' is not a valid GraphQL field name"
                )
                continue

            yield BridgeRoute(field_name=field_name, method=method, prefix=prefix, path=route.path)

    def resolvers(self) -> dict[str, Callable]:
        """Bare top-level resolver map for every participating route."""
        resolvers = {}
        for route in self.scan():
            if route.field_name in resolvers:
                logger.warning(f"Route {route.path} overrides bridge resolver '{route.field_name}'")
            resolvers[route.field_name] = self.make_resolver(route)
        if resolvers:
            logger.info(f"Bridged {len(resolvers)} routes to GraphQL: {sorted(resolvers)}")
        return resolvers

    def make_resolver(self, route: BridgeRoute) -> Callable:
        """Create the resolver(parent, args, context, info) for one route."""
        async def resolve(parent: Any, args: dict[str, Any], context: Any, info: GraphQLResolveInfo):
            response = await self.client.call(
                route.method,
                route.url,
                args,
                headers=self._forwarded_headers(context),
            )
            return to_field_value(response)

        resolve.__name__ = f"bridge_{route.field_name}"
        resolve.route = route
        return resolve

    def _forwarded_headers(self, context: Any) -> dict[str, str]:
        headers = getattr(context, "headers", None)
        if not headers:
            return {}
        return {name: headers[name] for name in self.forward_headers if name in headers}

    async def close(self):
        await self.client.close()


def to_field_value(response: httpx.Response) -> Any:
    """
    Turn a bridge call's response into a field value.

    Raises:
        GraphQLError: For status codes >= 400, with statusCode and error
            (reason phrase) in the error's extensions
    """
    if response.status_code < 400:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    raise GraphQLError(
        _error_message(response),
        extensions={"statusCode": response.status_code, "error": response.reason_phrase},
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list):
            return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return response.reason_phrase
