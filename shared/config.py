"""
Shared configuration management for 254Carbon Access Layer.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Introspection subrequest
    introspection_route: str = Field(default="/_oauth2_send_request")
    introspection_url: str = Field(
        default="http://localhost:8080/realms/254carbon/protocol/openid-connect/token/introspect"
    )
    introspection_client_id: str = Field(default="access-layer")
    introspection_client_secret: str = Field(default="access-layer-secret")
    introspection_timeout: float = Field(default=5.0, gt=0)

    # Header mapping
    header_prefix: str = Field(default="Token-")
    nested_claims: Literal["reject", "flatten"] = Field(default="reject")

    @field_validator("introspection_route")
    @classmethod
    def _route_is_internal_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("introspection_route must be an absolute internal path")
        return value


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
