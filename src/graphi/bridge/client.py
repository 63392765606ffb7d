"""
In-process HTTP client for calling the application's own routes.

Requests go through httpx's ASGI transport straight into the FastAPI app,
so they pass the app's middleware, dependencies and auth like any other
request, without touching the network.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

INTERNAL_BASE_URL = "http://graphi.internal"


class InternalClient:
    """
    HTTP client bound to one ASGI application.

    Usage:
        client = InternalClient(app)
        response = await client.call("GRAPHQL", "/test/createPerson", {"firstname": "tom"})
    """

    def __init__(self, app: Any, timeout: float = 30.0):
        """
        Initialize internal client.

        Args:
            app: ASGI application to call into
            timeout: Request timeout in seconds
        """
        self.app = app
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=self.app),
                base_url=INTERNAL_BASE_URL,
                timeout=self.timeout,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def call(
        self,
        method: str,
        url: str,
        payload: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Call a route of the application.

        GET and DELETE send the payload as query parameters, any other
        method as a JSON body.
        """
        client = await self._get_client()

        if method.upper() in ("GET", "DELETE"):
            params = {key: value for key, value in (payload or {}).items() if value is not None}
            return await client.request(method, url, params=params, headers=headers)
        return await client.request(method, url, json=payload or {}, headers=headers)
