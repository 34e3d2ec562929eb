"""
Adapters package for the Introspection service.

Contains the HTTP client wrapper for the identity provider's RFC 7662
introspection endpoint, exposed to the adapter as named subrequest routes.
Transport failures are mapped to shared errors here; status codes and bodies
are passed back untouched.
"""

from .subrequest_client import IntrospectionRoute, SubrequestClient, SubrequestReply

__all__ = [
    "IntrospectionRoute",
    "SubrequestClient",
    "SubrequestReply",
]
