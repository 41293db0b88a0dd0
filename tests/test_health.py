"""
tests/test_health.py -- Public endpoints and app-wide error envelopes.

Covers:
  - GET /health and GET /api/public need no authentication
  - Unknown routes answer 404 {"message": "Route not found"}
  - Unexpected exceptions become a generic 500; exception text only in dev mode
  - Store faults the service detects are a generic 500 as well
  - A malformed path parameter is a 400 that does not mention a body
"""

from __future__ import annotations

from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"] == "auth-service"
    assert "version" in data


def test_public_api(client: TestClient) -> None:
    resp = client.get("/api/public", headers={})
    assert resp.status_code == 200
    assert "timestamp" in resp.json()


def test_unknown_route(client: TestClient) -> None:
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Route not found"}


def _explode(*args, **kwargs):
    raise RuntimeError("store connection refused")


def test_unexpected_error_dev_mode_includes_detail(client: TestClient, tokens_by_role, monkeypatch) -> None:
    monkeypatch.setattr(client.app.state.user_store, "get_by_id", _explode)
    quiet = TestClient(client.app, raise_server_exceptions=False)
    resp = quiet.get("/api/auth/profile", headers={"Authorization": f"Bearer {tokens_by_role['user']}"})
    assert resp.status_code == 500
    assert resp.json() == {"message": "Internal server error", "error": "store connection refused"}


def test_unexpected_error_production_hides_detail(
    client: TestClient, tokens_by_role, monkeypatch, settings_factory
) -> None:
    monkeypatch.setattr(client.app.state.user_store, "get_by_id", _explode)
    monkeypatch.setattr(client.app.state, "settings", settings_factory(debug=False))
    quiet = TestClient(client.app, raise_server_exceptions=False)
    resp = quiet.get("/api/auth/profile", headers={"Authorization": f"Bearer {tokens_by_role['user']}"})
    assert resp.status_code == 500
    assert resp.json() == {"message": "Internal server error"}
    assert "store connection refused" not in resp.text


def test_bad_path_parameter_is_not_called_a_body_error(client: TestClient, tokens_by_role) -> None:
    resp = client.get("/api/users/abc", headers={"Authorization": f"Bearer {tokens_by_role['admin']}"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid request"}


def test_store_fault_after_write_is_500(client: TestClient, monkeypatch) -> None:
    signup = client.post(
        "/api/auth/signup", json={"username": "alice", "email": "alice@x.com", "password": "Abcdef1!"}
    )
    token = signup.cookies["jwt"]
    store = client.app.state.user_store
    real_get = store.get_by_id
    calls = {"n": 0}

    def vanishing_get(user_id):
        # protect_route's lookup succeeds; the re-read after the update does not.
        calls["n"] += 1
        return real_get(user_id) if calls["n"] == 1 else None

    monkeypatch.setattr(store, "get_by_id", vanishing_get)
    resp = client.put(
        "/api/auth/profile",
        json={"email": "alice@new.com"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 500
    assert resp.json() == {"message": "Internal server error"}
