"""
Request dispatcher - one GraphQL HTTP request from source to response.

Flow:
1. OPTIONS passes straight through
2. Request span (when tracing is enabled and a parent span exists)
3. query / variables / operationName from the query string (GET) or JSON body
4. variables JSON-decoded when given as a string
5. parse
6. validate against the active schema
7. execute with FieldResolveMiddleware
8. errors formatted (format_error) and logged
9. 200 with {"data", "errors"?}
10. request span closed on every branch

Steps 4-6 fail the whole request with 400; failures inside execution stay
per field and the response is still 200.
"""

from __future__ import annotations

import json
import logging
from inspect import isawaitable
from typing import Any, Callable, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse, Response
from graphql import ExecutionResult, GraphQLError, GraphQLSyntaxError, execute, parse, validate

from ..core.registry import SchemaRegistry
from ..core.settings import GraphiSettings
from .events import FieldResolveEvents
from .middleware import FieldResolveMiddleware
from .tracing import FieldTimings, find_parent_span, get_graphql_tracer, start_request_span, tag_error

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """
    Runs the GraphQL request state machine against a SchemaRegistry.

    Usage:
        dispatcher = RequestDispatcher(registry, settings, events)

        @app.api_route("/graphql", methods=["GET", "POST"])
        async def graphql(request: Request):
            return await dispatcher.dispatch(request)
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        settings: Optional[GraphiSettings] = None,
        events: Optional[FieldResolveEvents] = None,
    ):
        self.registry = registry
        self.settings = settings or GraphiSettings()
        self.events = events or FieldResolveEvents()
        self.tracer = None
        if self.settings.tracing:
            self.tracer = self.settings.tracer or get_graphql_tracer()

    async def dispatch(self, request: Request) -> Response:
        """
        Handle one request.

        Raises:
            HTTPException: 400 for bad variables, syntax or validation errors;
                503 when no schema has been registered
        """
        if request.method.upper() == "OPTIONS":
            return Response(status_code=200)

        source = await self._read_source(request)

        span = None
        if self.tracer is not None:
            parent = find_parent_span(request)
            if parent is not None:
                span = start_request_span(self.tracer, parent, request, source)

        try:
            return await self._run(request, source, span)
        finally:
            if span is not None:
                span.end()

    async def _run(self, request: Request, source: dict[str, Any], span) -> Response:
        schema = self.registry.schema
        if schema is None:
            raise HTTPException(status_code=503, detail="No GraphQL schema registered")

        operation_name = source.get("operationName")
        variables = self._decode_variables(source.get("variables"), span)

        query = source.get("query")
        try:
            document = parse(query if isinstance(query, str) else "")
        except GraphQLSyntaxError as e:
            self._bad_request(f"Invalid GraphQL request: {e.message}", span)

        errors = validate(schema, document)
        if errors:
            self._bad_request(", ".join(error.message for error in errors), span)

        timings = FieldTimings() if self.settings.report_field_timings else None
        middleware = FieldResolveMiddleware(self.events, self.tracer, span, timings)

        result = execute(
            schema,
            document,
            context_value=request,
            variable_values=variables,
            operation_name=operation_name,
            middleware=[middleware],
        )
        if isawaitable(result):
            result = await result

        if timings is not None:
            timings.report(span)

        return JSONResponse(self._build_body(result, span))

    async def _read_source(self, request: Request) -> dict[str, Any]:
        """Query parameters for GET, JSON body for anything else."""
        if request.method.upper() == "GET":
            return dict(request.query_params)

        body = await request.body()
        if not body:
            return {}
        try:
            payload = json.loads(body)
        except ValueError:
            raise HTTPException(status_code=400, detail="Unable to parse request body as JSON")
        return payload if isinstance(payload, dict) else {}

    def _decode_variables(self, raw: Any, span) -> Optional[dict[str, Any]]:
        if not raw:
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                self._bad_request("Unable to parse variables", span)
        if raw is not None and not isinstance(raw, dict):
            self._bad_request("Variables must be a JSON object", span)
        return raw

    def _bad_request(self, message: str, span):
        tag_error(span, message)
        raise HTTPException(status_code=400, detail=message)

    def _build_body(self, result: ExecutionResult, span) -> dict[str, Any]:
        body: dict[str, Any] = {"data": result.data}
        if not result.errors:
            return body

        formatter: Callable[[GraphQLError], Any] = self.settings.format_error or _default_format
        body["errors"] = [formatter(error) for error in result.errors]

        logger.error(f"GraphQL execution returned errors: {json.dumps(body, default=str)}")
        tag_error(span, "; ".join(error.message for error in result.errors))
        return body


def _default_format(error: GraphQLError) -> dict[str, Any]:
    return error.formatted
