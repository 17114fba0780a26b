"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status and version fields
  - No authentication required
  - Bad credentials are ignored rather than rejected
"""

from __future__ import annotations

from conftest import basic


def test_health_returns_200(client):
    """Health endpoint returns 200 with status and version."""
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"]


def test_health_no_auth_required(client):
    """Health endpoint is accessible without any authentication headers."""
    resp = client.get("/health", headers={})
    assert resp.status_code == 200
    assert "www-authenticate" not in resp.headers


def test_health_ignores_bad_credentials(client):
    """The health check never consults the access policy, so wrong credentials do not matter."""
    resp = client.get("/health", headers=basic("mallory", "nope"))
    assert resp.status_code == 200
