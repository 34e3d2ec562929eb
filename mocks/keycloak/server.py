"""
Mock Keycloak server providing token issuance and introspection endpoints.
"""

import jwt
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone
from fastapi import FastAPI, HTTPException, Depends, Form, Query
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from shared.logging import get_logger


class MockKeycloakServer:
    """Mock Keycloak server implementation."""

    def __init__(self, port: int = 8080, client_secret: str = "access-layer-secret"):
        self.port = port
        self.logger = get_logger("mock.keycloak")
        self.app = FastAPI(title="Mock Keycloak", version="1.0.0")

        # Mock configuration
        self.realm = "254carbon"
        self.client_id = "access-layer"
        self.client_secret = client_secret
        self.issuer = f"http://localhost:{port}/realms/{self.realm}"

        # Mock users
        self.users = {
            "user1": {
                "sub": "user1",
                "preferred_username": "john.doe",
                "email": "john.doe@254carbon.com",
                "tenant_id": "tenant-1",
                "roles": ["user", "analyst"],
                "password": "password123"
            },
            "admin": {
                "sub": "admin",
                "preferred_username": "admin",
                "email": "admin@254carbon.com",
                "tenant_id": "tenant-1",
                "roles": ["admin", "superuser"],
                "password": "admin123"
            }
        }

        # HS256 signing key (mock only)
        self.private_key = "mock-private-key"

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock Keycloak routes."""
        basic = HTTPBasic(auto_error=False)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-keycloak",
                "message": "Mock Keycloak server for 254Carbon Access Layer",
                "version": "1.0.0",
                "realm": self.realm,
                "issuer": self.issuer
            }

        @self.app.get("/realms/{realm}/.well-known/openid-configuration")
        async def openid_configuration(realm: str):
            """OpenID Connect configuration."""
            self._check_realm(realm)

            return {
                "issuer": self.issuer,
                "token_endpoint": f"{self.issuer}/protocol/openid-connect/token",
                "introspection_endpoint": f"{self.issuer}/protocol/openid-connect/token/introspect",
                "grant_types_supported": ["password", "client_credentials"],
                "introspection_endpoint_auth_methods_supported": ["client_secret_basic"],
                "id_token_signing_alg_values_supported": ["HS256"]
            }

        @self.app.post("/realms/{realm}/protocol/openid-connect/token")
        async def token_endpoint(
            realm: str,
            grant_type: str = Query(...),
            client_id: str = Query(...),
            username: Optional[str] = Query(None),
            password: Optional[str] = Query(None)
        ):
            """Token endpoint for authentication."""
            self._check_realm(realm)

            if client_id != self.client_id:
                raise HTTPException(status_code=400, detail="Invalid client")

            if grant_type == "password":
                return self._handle_password_grant(username, password)
            elif grant_type == "client_credentials":
                return self._issue_token("service-account", roles=["service-account"])
            else:
                raise HTTPException(status_code=400, detail="Unsupported grant type")

        @self.app.post("/realms/{realm}/protocol/openid-connect/token/introspect")
        async def introspection_endpoint(
            realm: str,
            token: str = Form(""),
            token_type_hint: Optional[str] = Form(None),
            credentials: Optional[HTTPBasicCredentials] = Depends(basic)
        ):
            """RFC 7662 token introspection."""
            self._check_realm(realm)

            if (credentials is None or credentials.username != self.client_id
                    or credentials.password != self.client_secret):
                self.logger.warning("Introspection client authentication failed")
                return JSONResponse(
                    status_code=401,
                    content={"error": "invalid_client", "error_description": "Invalid client credentials"}
                )

            return self.introspect(token)

    def _check_realm(self, realm: str):
        if realm != self.realm:
            raise HTTPException(status_code=404, detail="Realm not found")

    def introspect(self, token: str) -> Dict[str, Any]:
        """Return RFC 7662 claims for a token issued by this server."""
        try:
            payload = jwt.decode(
                token,
                self.private_key,
                algorithms=["HS256"],
                audience=self.client_id,
                issuer=self.issuer
            )
        except jwt.InvalidTokenError as e:
            self.logger.info("Inactive token introspected", reason=str(e))
            return {"active": False}

        claims = {
            "active": True,
            "sub": payload["sub"],
            "username": payload.get("preferred_username", payload["sub"]),
            "email": payload.get("email"),
            "tenant_id": payload.get("tenant_id"),
            "roles": payload.get("roles", []),
            "scope": payload["scope"],
            "client_id": payload["azp"],
            "token_type": "Bearer",
            "iss": payload["iss"],
            "iat": payload["iat"],
            "exp": payload["exp"]
        }
        return {key: value for key, value in claims.items() if value is not None}

    def _handle_password_grant(self, username: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """Handle password grant type."""
        if not username or not password:
            raise HTTPException(status_code=400, detail="Username and password required")

        for user_id, user in self.users.items():
            if user["preferred_username"] == username and user["password"] == password:
                return self._issue_token(user_id)

        raise HTTPException(status_code=401, detail="Invalid credentials")

    def _issue_token(self, user_id: str, roles=None, expires_in: int = 3600) -> Dict[str, Any]:
        """Issue a signed access token."""
        user_data = self.users.get(user_id, {})
        now = datetime.now(timezone.utc)

        access_token_payload = {
            "iss": self.issuer,
            "sub": user_id,
            "aud": self.client_id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
            "azp": self.client_id,
            "scope": "openid profile email",
            "roles": roles if roles is not None else user_data.get("roles", [])
        }
        for claim in ("preferred_username", "email", "tenant_id"):
            if claim in user_data:
                access_token_payload[claim] = user_data[claim]

        access_token = jwt.encode(access_token_payload, self.private_key, algorithm="HS256")

        return {
            "access_token": access_token,
            "expires_in": expires_in,
            "token_type": "Bearer",
            "not-before-policy": 0,
            "scope": "openid profile email"
        }


def create_app():
    """Create mock Keycloak application."""
    server = MockKeycloakServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
