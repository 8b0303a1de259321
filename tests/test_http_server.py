# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Tests for npm_package_server.http_server module.
"""

import pytest
from starlette.testclient import TestClient

from npm_package_server import __version__
from npm_package_server.config import ServerConfig
from npm_package_server.http_server import create_app, is_auth_valid


@pytest.fixture
def open_client(tmp_path):
    return TestClient(create_app(ServerConfig(temp_dir=tmp_path)))


@pytest.fixture
def secured_client(tmp_path):
    return TestClient(create_app(ServerConfig(temp_dir=tmp_path, auth_token="s3cret")))


class TestAuthCheck:
    """Test bearer token comparison."""

    def test_no_token_configured(self):
        assert is_auth_valid(None, None)

    def test_bearer_token(self):
        assert is_auth_valid("Bearer s3cret", "s3cret")

    def test_raw_token(self):
        assert is_auth_valid("s3cret", "s3cret")

    @pytest.mark.parametrize("header", [None, "", "Bearer wrong", "Basic s3cret", "bearer s3cret"])
    def test_rejected(self, header):
        assert not is_auth_valid(header, "s3cret")


class TestRoutes:
    """Test HTTP routes without authentication."""

    def test_health(self, open_client):
        response = open_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "npm-package-mcp-server",
            "version": __version__,
        }

    def test_unknown_path(self, open_client):
        response = open_client.get("/nope")

        assert response.status_code == 404

    def test_cors_preflight(self, open_client):
        response = open_client.options(
            "/mcp",
            headers={
                "Origin": "https://agent.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type, Mcp-Session-Id",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestAuthentication:
    """Test the bearer token gate applied to every route."""

    def test_health_requires_token(self, secured_client):
        response = secured_client.get("/health")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Invalid or missing authentication token"}

    def test_wrong_token(self, secured_client):
        response = secured_client.get("/health", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_valid_bearer_token(self, secured_client):
        response = secured_client.get("/health", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 200

    def test_valid_raw_token(self, secured_client):
        response = secured_client.get("/health", headers={"Authorization": "s3cret"})

        assert response.status_code == 200

    def test_mcp_endpoint_requires_token(self, secured_client):
        response = secured_client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

        assert response.status_code == 401

    def test_unknown_path_requires_token(self, secured_client):
        assert secured_client.get("/nope").status_code == 401

    def test_preflight_answered_without_token(self, secured_client):
        response = secured_client.options(
            "/mcp",
            headers={
                "Origin": "https://agent.example",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
