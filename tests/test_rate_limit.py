"""
tests/test_rate_limit.py -- Per-IP limits: the application limit on every /api
route and the tighter limit on credential-accepting routes.

conftest.py raises both limits so the rest of the suite never trips them.
Here the limit providers are pointed at tiny limits instead; slowapi keys its
counters by the limit string, so this does not collide with other modules.
"""

from __future__ import annotations

from types import SimpleNamespace

import api.limiter as api_limiter

TOO_MANY = {
    "success": False,
    "error": "Too many requests from this IP, please try again later",
}


def _limits(monkeypatch, login="1000/minute", api="10000/minute"):
    monkeypatch.setattr(
        api_limiter,
        "get_settings",
        lambda: SimpleNamespace(login_rate_limit=login, api_rate_limit=api),
    )


def test_login_limited_after_threshold(api_client, monkeypatch):
    client, _, _ = api_client
    _limits(monkeypatch, login="2/minute")

    body = {"phone": "03001112222", "password": "Wrong1234"}
    statuses = [client.post("/api/auth/login", json=body).status_code for _ in range(3)]

    assert statuses[:2] == [401, 401]
    assert statuses[2] == 429
    resp = client.post("/api/auth/login", json=body)
    assert resp.json() == TOO_MANY
    assert "retry-after" in resp.headers


def test_bearer_route_limited_by_application_limit(api_client, monkeypatch):
    client, admin_token, _ = api_client
    _limits(monkeypatch, api="3/minute")
    headers = {"Authorization": f"Bearer {admin_token}"}

    statuses = [client.get("/api/auth/me", headers=headers).status_code for _ in range(4)]

    assert statuses == [200, 200, 200, 429]
    resp = client.get("/api/users", headers=headers)
    assert resp.status_code == 429
    assert resp.json() == TOO_MANY
    assert resp.headers["retry-after"] == "60"


def test_health_not_counted_against_application_limit(api_client, monkeypatch):
    client, _, _ = api_client
    _limits(monkeypatch, api="1/hour")

    statuses = [client.get("/").status_code for _ in range(3)]

    assert statuses == [200, 200, 200]
