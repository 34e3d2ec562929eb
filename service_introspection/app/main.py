"""
Introspection service for 254Carbon Access Layer.
"""

from typing import Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from .adapters.subrequest_client import IntrospectionRoute, SubrequestClient
from .introspection.adapter import IntrospectionAdapter
from .introspection.context import AdapterResponse, RequestContext


class IntrospectionService(BaseService):
    """Introspection service implementation."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, **config_overrides):
        super().__init__("introspection", 8020, **config_overrides)
        self.http_client = http_client

        route = IntrospectionRoute(
            self.config.introspection_url,
            self.config.introspection_client_id,
            self.config.introspection_client_secret,
            timeout=self.config.introspection_timeout,
            http_client=http_client
        )
        self.subrequest_client = SubrequestClient({self.config.introspection_route: route})
        self.adapter = IntrospectionAdapter(
            route=self.config.introspection_route,
            header_prefix=self.config.header_prefix,
            nested_claims=self.config.nested_claims,
            metrics=self.metrics
        )

        self._setup_introspection_routes()

    def _setup_introspection_routes(self):
        """Set up introspection-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "introspection",
                "message": "254Carbon Access Layer - Introspection Service",
                "version": "1.0.0",
                "route": self.config.introspection_route
            }

        @self.app.api_route("/auth/introspect", methods=["GET", "POST"])
        async def introspect(request: Request):
            """Introspect the bearer token of the inbound request."""
            context = RequestContext.from_request(request, self.subrequest_client)
            result = await self.adapter.handle(context)
            return to_http_response(result)

    async def _check_dependencies(self):
        """Check introspection dependencies."""
        dependencies = {}

        # The introspection endpoint only accepts POST; any non-5xx answer means it is up
        try:
            if self.http_client is not None:
                response = await self.http_client.get(self.config.introspection_url, timeout=2.0)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self.config.introspection_url, timeout=2.0)
            dependencies["keycloak"] = "ok" if response.status_code < 500 else "error"
        except httpx.HTTPError:
            dependencies["keycloak"] = "error"

        return dependencies


def to_http_response(result: AdapterResponse) -> Response:
    """Render an adapter response for the caller."""
    if result.status == 204:
        response = Response(status_code=204)
    else:
        response = PlainTextResponse(result.body, status_code=result.status)
    # Claim values may be any Unicode; Starlette only encodes latin-1 itself
    response.raw_headers.extend(result.raw_headers)
    return response


def create_app():
    """Create FastAPI application."""
    service = IntrospectionService()
    return service.app


if __name__ == "__main__":
    service = IntrospectionService()
    service.run()
