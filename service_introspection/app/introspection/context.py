"""
Per-request context handed to the introspection adapter.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import Request

from shared.errors import ResponseAlreadySentError
from ..adapters.subrequest_client import SubrequestClient, SubrequestReply
from .claims import encode_headers


class IntrospectionState(str, Enum):
    """Lifecycle of a single introspection."""
    STARTED = "started"
    AWAITING_SUBREQUEST = "awaiting_subrequest"
    COMPLETED = "completed"


class IntrospectionOutcome(str, Enum):
    """Terminal outcome of a single introspection."""
    SUCCESS = "success"
    PARSE_ERROR = "parse_error"
    NESTED_REJECTED = "nested_rejected"
    PROPAGATED = "propagated"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AdapterResponse:
    """Terminal response for the original request."""
    status: int
    outcome: IntrospectionOutcome
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    raw_headers: List[Tuple[bytes, bytes]] = field(default_factory=list)


class ResponseHandle:
    """Single-use handle producing the terminal response."""

    def __init__(self):
        self._response: Optional[AdapterResponse] = None

    @property
    def sent(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> Optional[AdapterResponse]:
        return self._response

    def send(self, status: int, outcome: IntrospectionOutcome, body: str = "",
             headers: Optional[Dict[str, str]] = None) -> AdapterResponse:
        if self._response is not None:
            raise ResponseAlreadySentError(
                f"Response already sent with status {self._response.status}"
            )
        self._response = AdapterResponse(
            status=status,
            outcome=outcome,
            body=body,
            headers=dict(headers or {}),
            raw_headers=encode_headers(headers or {})
        )
        return self._response


async def _never_disconnected() -> bool:
    return False


class RequestContext:
    """
    Explicit stand-in for the host request object.

    Carries the bearer token, the ability to issue a named subrequest and the
    single-use response handle. `is_disconnected` reports whether the inbound
    client went away while the subrequest was in flight.
    """

    def __init__(self, token: str, subrequest_client: SubrequestClient,
                 is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None):
        self.token = token
        self.subrequest_client = subrequest_client
        self.state = IntrospectionState.STARTED
        self._is_disconnected = is_disconnected or _never_disconnected
        self._handle = ResponseHandle()

    @classmethod
    def from_request(cls, request: Request, subrequest_client: SubrequestClient) -> "RequestContext":
        """Build a context from an inbound FastAPI request."""
        return cls(
            token=extract_bearer_token(request.headers.get("Authorization")),
            subrequest_client=subrequest_client,
            is_disconnected=request.is_disconnected
        )

    async def subrequest(self, route: str) -> SubrequestReply:
        return await self.subrequest_client.send(route, self.token)

    async def is_disconnected(self) -> bool:
        return await self._is_disconnected()

    @property
    def responded(self) -> bool:
        return self._handle.sent

    @property
    def response(self) -> Optional[AdapterResponse]:
        return self._handle.response

    def respond(self, status: int, outcome: IntrospectionOutcome, body: str = "",
                headers: Optional[Dict[str, str]] = None) -> AdapterResponse:
        response = self._handle.send(status, outcome, body, headers)
        self.state = IntrospectionState.COMPLETED
        return response


def extract_bearer_token(auth_header: Optional[str]) -> str:
    """Return the token from an Authorization header, or an empty string."""
    if not auth_header:
        return ""
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return credentials.strip()
