"""Tests for health check endpoint."""

from typing import Any

import pytest
from starlette.testclient import TestClient

from kubehop.config import Config, HostKeyVerifier, Settings
from kubehop.dependencies import Dependencies


class TestHealthCheck:
    """Tests for health check endpoint."""

    @pytest.fixture
    def client(self) -> TestClient:
        """Create test client for HTTP server."""
        from kubehop.server import create_server

        deps = Dependencies.from_config(Config(settings=Settings(), host_keys=HostKeyVerifier()))
        server = create_server(deps)
        return TestClient(server.http_app())

    def test_health_returns_ok(self, client: Any) -> None:
        """Health endpoint returns OK status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.text == "OK"

    def test_health_returns_plain_text(self, client: Any) -> None:
        """Health endpoint returns plain text content type."""
        response = client.get("/health")
        assert "text/plain" in response.headers["content-type"]
