"""
tests/test_health.py -- Integration tests for GET /.

Covers:
  - 200 response with success flag, message, version and environment
  - No authentication required
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200(api_client):
    """Health endpoint reports that the API is running."""
    client, _, _ = api_client
    resp = client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["message"] == "ElectriFind API is running..."
    assert data["version"] == VERSION
    assert data["environment"]


def test_health_no_auth_required(api_client):
    """Health endpoint ignores an invalid Authorization header."""
    client, _, _ = api_client
    resp = client.get("/", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200
