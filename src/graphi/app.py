"""
Graphi - GraphQL endpoints for a FastAPI application.

Usage:
    from fastapi import FastAPI
    from graphi import Graphi

    app = FastAPI()
    graphi = Graphi(
        app,
        schema='''
            type Person { firstname: String! lastname: String! }
            type Query { person(firstname: String!): Person! }
        ''',
        resolvers={"Query": {"person": get_person}},
    )

Routes declared with the GRAPHQL method (or tagged "graphql") answer the
root field named after their path:

    @app.api_route("/createPerson", methods=["GRAPHQL"], include_in_schema=False)
    async def create_person(person: PersonIn):
        return person
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Request, WebSocket, params
from fastapi.responses import HTMLResponse, Response
from graphql import GraphQLSchema

from .bridge import RouteBridge
from .core.errors import ConfigurationError
from .core.registry import SchemaRegistry
from .core.resolvers import ROOT
from .core.schema import PreResolveHook, Resolvers, build_executable_schema
from .core.settings import GraphiSettings
from .playground import get_graphiql_html
from .runtime.dispatcher import RequestDispatcher
from .runtime.events import FieldResolveEvents
from .websocket import ChannelHub, SubscriptionPublisher, SubscriptionRouter

logger = logging.getLogger(__name__)

PLUGIN_TAG = "graphi"
GRAPHQL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class Graphi:
    """
    GraphQL plugin for a FastAPI application.

    Features:
    - GraphQL endpoint (GET query string or JSON body) and GraphiQL page
    - Incremental schema registration with merging
    - Routes bridged to root fields (GRAPHQL method or "graphql" tag)
    - Subscriptions published over websocket channels
    - Field resolve events and optional OpenTelemetry tracing
    """

    def __init__(
        self,
        app: Optional[FastAPI] = None,
        *,
        settings: Optional[GraphiSettings] = None,
        hub: Optional[ChannelHub] = None,
        **options: Any,
    ):
        """
        Initialize plugin.

        Args:
            app: Application to attach to (or call init_app later)
            settings: Full settings object; mutually exclusive with options
            hub: Realtime transport for subscriptions (default: one on
                settings.redis_url when that is set, else none)
            **options: Settings as keyword options, snake_case or camelCase

        Raises:
            ConfigurationError: On unknown options, or if the initial schema
                and resolvers do not fit
            DependencyError: If the initial schema has subscriptions but no hub
        """
        if settings is not None and options:
            raise ConfigurationError("Pass either settings or keyword options, not both")
        self.settings = settings or GraphiSettings.from_dict(options)

        if hub is None and self.settings.redis_url:
            hub = ChannelHub(self.settings.redis_url)
        self.hub = hub

        self.events = FieldResolveEvents()
        self.registry = SchemaRegistry(hub=hub, subscription_options=self.settings.subscription_options)
        self.dispatcher = RequestDispatcher(self.registry, self.settings, self.events)
        self.publisher = SubscriptionPublisher(self.registry, hub)
        self.subscriptions = SubscriptionRouter(hub) if hub is not None else None

        self.app: Optional[FastAPI] = None
        self.bridge: Optional[RouteBridge] = None
        self._bridge_resolvers: dict[str, Callable] = {}
        self._bridged: set[str] = set()
        self._started = False

        if self.settings.schema is not None or self.settings.resolvers:
            self.registry.register(
                self.settings.schema,
                self.settings.resolvers,
                pre_resolve=self.settings.pre_resolve,
            )

        if app is not None:
            self.init_app(app)

    # =========================================================================
    # Application wiring
    # =========================================================================

    def init_app(self, app: FastAPI):
        """Add the GraphQL, GraphiQL and websocket routes and lifecycle hooks."""
        self.app = app
        self.bridge = RouteBridge(app, forward_headers=self.settings.forward_headers)
        app.state.graphi = self

        router = APIRouter(prefix=_normalize_prefix(self.settings.prefix), tags=[PLUGIN_TAG])

        async def graphql_endpoint(request: Request) -> Response:
            await self.startup()
            return await self.dispatcher.dispatch(request)

        router.add_api_route(
            self.settings.graphql_path,
            graphql_endpoint,
            methods=GRAPHQL_METHODS,
            dependencies=_auth_dependencies(self.settings.auth_strategy),
            name="graphql",
        )

        if self.settings.graphiql_path:
            router.add_api_route(
                self.settings.graphiql_path,
                self._graphiql_endpoint,
                methods=["GET", "POST"],
                dependencies=_auth_dependencies(self.settings.graphiql_auth_strategy),
                response_class=HTMLResponse,
                name="graphiql",
            )

        if self.subscriptions is not None:
            async def websocket_endpoint(websocket: WebSocket):
                await self.startup()
                await self.subscriptions.handle_connection(websocket)

            router.add_api_websocket_route(self.settings.websocket_path, websocket_endpoint, name="graphi_subscribe")

        app.include_router(router)
        self._wrap_lifespan(app)

        logger.info(
            f"Graphi mounted: graphql={self.graphql_url}"
            f"{', graphiql=' + self.settings.graphiql_path if self.settings.graphiql_path else ''}"
            f"{', websocket=' + self.settings.websocket_path if self.subscriptions else ''}"
        )

    def _wrap_lifespan(self, app: FastAPI):
        original = app.router.lifespan_context

        @asynccontextmanager
        async def lifespan(asgi_app: Any):
            await self.startup()
            try:
                async with original(asgi_app) as state:
                    yield state
            finally:
                await self.shutdown()

        app.router.lifespan_context = lifespan

    def include_router(self, router: APIRouter, prefix: str = "", **kwargs: Any):
        """
        Include a router and remember its prefix as a realm prefix.

        Bridged routes under the prefix are named without it:
        /test/createPerson answers the createPerson field.
        """
        if self.app is None:
            raise ConfigurationError("include_router requires init_app to have been called")
        self.app.include_router(router, prefix=prefix, **kwargs)
        self.bridge.add_prefix(prefix)

    @property
    def graphql_url(self) -> str:
        return _normalize_prefix(self.settings.prefix) + self.settings.graphql_path

    async def _graphiql_endpoint(self, request: Request) -> HTMLResponse:
        query = request.query_params
        endpoint_url = request.scope.get("root_path", "") + self.graphql_url
        return HTMLResponse(get_graphiql_html(
            endpoint_url=endpoint_url,
            query=query.get("query"),
            variables=query.get("variables"),
            operation_name=query.get("operationName"),
        ))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def startup(self):
        """Bridge participating routes and start the hub. Idempotent."""
        if self._started:
            return
        self._started = True

        if self.bridge is not None:
            self._bridge_resolvers = self.bridge.resolvers()
            self._wire_bridge(warn=True)

        if self.hub is not None:
            await self.hub.startup()

    async def shutdown(self):
        if self.hub is not None:
            await self.hub.shutdown()
        if self.bridge is not None:
            await self.bridge.close()
        self._started = False

    def _wire_bridge(self, warn: bool = False):
        """Register bridge resolvers for root fields the active schema declares."""
        schema = self.registry.schema
        if schema is None or not self._bridge_resolvers:
            return

        roots = [root for root in (schema.query_type, schema.mutation_type) if root is not None]
        explicit = {
            field_name
            for (type_name, field_name) in self.registry.resolvers
            if type_name in (ROOT, *(root.name for root in roots))
        } - self._bridged

        fitting = {}
        for field_name, resolver in self._bridge_resolvers.items():
            if field_name in self._bridged or field_name in explicit:
                continue
            if any(field_name in root.fields for root in roots):
                fitting[field_name] = resolver
            elif warn:
                logger.warning(
                    f"Route {resolver.route.path} has no matching Query or Mutation field '{field_name}'"
                )

        if fitting:
            self.registry.register(resolvers=fitting)
            self._bridged.update(fitting)

    # =========================================================================
    # Programmatic surface
    # =========================================================================

    def build_schema(
        self,
        schema: str,
        resolvers: Resolvers = None,
        pre_resolve: Optional[PreResolveHook] = None,
    ) -> GraphQLSchema:
        """Build an executable schema without registering it."""
        return build_executable_schema(schema, resolvers, pre_resolve)

    def register_schema(
        self,
        schema: Union[str, GraphQLSchema, None] = None,
        resolvers: Resolvers = None,
        *,
        pre_resolve: Optional[PreResolveHook] = None,
        subscription_options: Optional[dict[str, Any]] = None,
    ) -> Optional[GraphQLSchema]:
        """
        Register (merge) a schema and resolvers into the active schema.

        Raises:
            ConfigurationError: If schema and resolvers do not fit, or on merge conflicts
            DependencyError: If the schema has subscriptions but no hub is configured
        """
        active = self.registry.register(
            schema,
            resolvers,
            pre_resolve=pre_resolve,
            subscription_options=subscription_options,
        )
        if self._started:
            self._wire_bridge()
        return self.registry.schema if self._started else active

    async def publish(self, event: str, payload: dict[str, Any]) -> int:
        """
        Publish a payload for a declared subscription event.

        Raises:
            UnknownSubscriptionError: If the event is not a Subscription field
            DependencyError: If no hub is configured
        """
        return await self.publisher.publish(event, payload)

    @property
    def schema(self) -> Optional[GraphQLSchema]:
        return self.registry.schema


def _normalize_prefix(prefix: str) -> str:
    prefix = (prefix or "").strip("/")
    return f"/{prefix}" if prefix else ""


def _auth_dependencies(strategy: Any) -> Optional[list[params.Depends]]:
    """FastAPI dependencies for an auth strategy; False or None means none."""
    if strategy is False or strategy is None:
        return None
    strategies = strategy if isinstance(strategy, (list, tuple)) else [strategy]
    return [s if isinstance(s, params.Depends) else Depends(s) for s in strategies]
