"""
Shared error handling for 254Carbon Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(AccessLayerException):
    """Invalid or inconsistent service configuration."""

    status_code = 500

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class IntrospectionParseError(AccessLayerException):
    """The provider answered 200 with a body that is not a JSON object."""

    status_code = 500

    def __init__(self, message: str = "Failed to parse Keycloak response", details: Optional[Dict[str, Any]] = None):
        super().__init__("INTROSPECTION_PARSE_ERROR", message, details)


class NestedClaimError(AccessLayerException):
    """A claim value is a JSON object and the nested policy does not allow it."""

    status_code = 500

    def __init__(self, message: str = "Unsupported nested claim in Keycloak response",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("NESTED_CLAIM_ERROR", message, details)


class UpstreamUnavailableError(AccessLayerException):
    """The introspection endpoint could not be reached."""

    status_code = 502

    def __init__(self, message: str = "Keycloak introspection endpoint unreachable",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)


class UpstreamTimeoutError(AccessLayerException):
    """The introspection endpoint did not answer in time."""

    status_code = 504

    def __init__(self, message: str = "Keycloak introspection request timed out",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_TIMEOUT", message, details)


class ResponseAlreadySentError(RuntimeError):
    """A terminal response was already produced for this request."""
