"""
Internal subrequest routes for the Introspection service.

A route is a named, pre-configured call to the identity provider. The
adapter only knows the route name; this module knows how to reach the
provider behind it.
"""

import httpx
from dataclasses import dataclass
from typing import Dict, Optional

from shared.logging import get_logger
from shared.errors import ConfigurationError, UpstreamTimeoutError, UpstreamUnavailableError


@dataclass(frozen=True)
class SubrequestReply:
    """Status and body returned by a subrequest route."""
    status: int
    body: str


class IntrospectionRoute:
    """RFC 7662 token introspection call against the identity provider."""

    def __init__(self, introspection_url: str, client_id: str, client_secret: str,
                 timeout: float = 5.0, http_client: Optional[httpx.AsyncClient] = None):
        self.introspection_url = introspection_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.http_client = http_client
        self.logger = get_logger("introspection.route")

    async def send(self, token: str) -> SubrequestReply:
        """POST the token to the introspection endpoint."""

        async def _post(client: httpx.AsyncClient) -> httpx.Response:
            return await client.post(
                self.introspection_url,
                data={"token": token, "token_type_hint": "access_token"},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout
            )

        try:
            if self.http_client is not None:
                response = await _post(self.http_client)
            else:
                async with httpx.AsyncClient() as client:
                    response = await _post(client)

        except httpx.TimeoutException as e:
            self.logger.error("Introspection request timed out", url=self.introspection_url, error=str(e))
            raise UpstreamTimeoutError(details={"timeout_seconds": self.timeout})
        except httpx.HTTPError as e:
            self.logger.error("Introspection request failed", url=self.introspection_url, error=str(e))
            raise UpstreamUnavailableError(details={"http_error": str(e)})

        return SubrequestReply(status=response.status_code, body=response.text)


class SubrequestClient:
    """Dispatches subrequests to named routes."""

    def __init__(self, routes: Dict[str, IntrospectionRoute]):
        self.routes = dict(routes)

    def has_route(self, name: str) -> bool:
        return name in self.routes

    async def send(self, route: str, token: str) -> SubrequestReply:
        if route not in self.routes:
            raise ConfigurationError(
                f"Unknown subrequest route: {route}",
                details={"route": route, "known_routes": sorted(self.routes)}
            )
        return await self.routes[route].send(token)
