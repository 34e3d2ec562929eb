"""
Integration tests for the introspection flow against the mock Keycloak.
"""

import pytest
import httpx

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from mocks.keycloak.server import MockKeycloakServer
from service_introspection.app.main import IntrospectionService

REALM_URL = "http://keycloak/realms/254carbon"
INTROSPECTION_URL = f"{REALM_URL}/protocol/openid-connect/token/introspect"


class TestIntrospectionFlow:
    """Integration tests for the complete introspection flow."""

    @pytest.fixture
    def keycloak(self):
        """Create mock Keycloak."""
        return MockKeycloakServer()

    @pytest.fixture
    def keycloak_client(self, keycloak):
        """HTTP client routed to the mock Keycloak app."""
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=keycloak.app), base_url="http://keycloak")

    def make_gateway(self, keycloak_client, **overrides):
        """HTTP client routed to an introspection service backed by the mock Keycloak."""
        overrides.setdefault("introspection_url", INTROSPECTION_URL)
        service = IntrospectionService(http_client=keycloak_client, **overrides)
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=service.app), base_url="http://introspection")

    async def login(self, keycloak_client, username="john.doe", password="password123"):
        response = await keycloak_client.post(
            "/realms/254carbon/protocol/openid-connect/token",
            params={
                "grant_type": "password",
                "client_id": "access-layer",
                "username": username,
                "password": password,
            }
        )
        assert response.status_code == 200
        return response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_active_token_flow(self, keycloak_client):
        """Test login, then introspection through the service."""
        token = await self.login(keycloak_client)

        async with self.make_gateway(keycloak_client) as gateway:
            response = await gateway.get("/auth/introspect", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 204
        assert response.headers["Token-active"] == "true"
        assert response.headers["Token-sub"] == "user1"
        assert response.headers["Token-username"] == "john.doe"
        assert response.headers["Token-roles"] == "user,analyst"
        assert response.headers["Token-scope"] == "openid profile email"
        assert response.headers["Token-exp"].isdigit()

    @pytest.mark.asyncio
    async def test_expired_token_flow(self, keycloak, keycloak_client):
        """Test an expired token introspects as inactive."""
        token = keycloak._issue_token("user1", expires_in=-60)["access_token"]

        async with self.make_gateway(keycloak_client) as gateway:
            response = await gateway.get("/auth/introspect", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 204
        assert response.headers["Token-active"] == "false"
        assert "Token-sub" not in response.headers

    @pytest.mark.asyncio
    async def test_invalid_client_credentials(self, keycloak_client):
        """Test the provider's 401 reaches the caller unchanged."""
        token = await self.login(keycloak_client)

        async with self.make_gateway(keycloak_client, introspection_client_secret="wrong") as gateway:
            response = await gateway.get("/auth/introspect", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid_client", "error_description": "Invalid client credentials"}

    @pytest.mark.asyncio
    async def test_unknown_realm(self, keycloak_client):
        """Test a misrouted introspection URL propagates the 404."""
        async with self.make_gateway(
            keycloak_client,
            introspection_url="http://keycloak/realms/other/protocol/openid-connect/token/introspect"
        ) as gateway:
            response = await gateway.get("/auth/introspect", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 404
        assert response.json() == {"detail": "Realm not found"}

    @pytest.mark.asyncio
    async def test_openid_configuration_advertises_introspection(self, keycloak_client):
        """Test the discovery document points at the introspection endpoint."""
        response = await keycloak_client.get("/realms/254carbon/.well-known/openid-configuration")

        assert response.status_code == 200
        assert response.json()["introspection_endpoint"].endswith("/protocol/openid-connect/token/introspect")
