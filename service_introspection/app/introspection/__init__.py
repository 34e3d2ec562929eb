"""
Token introspection package.

Forwards the inbound bearer token to the identity provider through a named
subrequest route and turns the RFC 7662 answer into a terminal response:

- 204 plus one `Token-<claim>` header per claim when the token introspects.
- The provider's own status and body when it answers anything but 200.
- A fixed 500 when the answer cannot be mapped to headers.
"""

from .adapter import IntrospectionAdapter
from .claims import claims_to_headers, parse_introspection_response, stringify_claim
from .context import (
    AdapterResponse,
    IntrospectionOutcome,
    IntrospectionState,
    RequestContext,
    ResponseHandle,
)

__all__ = [
    "IntrospectionAdapter",
    "AdapterResponse",
    "IntrospectionOutcome",
    "IntrospectionState",
    "RequestContext",
    "ResponseHandle",
    "claims_to_headers",
    "parse_introspection_response",
    "stringify_claim",
]
