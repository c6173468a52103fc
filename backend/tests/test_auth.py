from datetime import timedelta

from fastapi.testclient import TestClient

from cupbracket.auth import create_access_token
from tests.conftest import ADMIN_PASSWORD


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_admin_login_rejects_wrong_password(client: TestClient, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    response = client.post("/api/admin/login", json={"password": "nope"})
    assert response.status_code == 401


def test_admin_login_disabled_without_password(client: TestClient, monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    response = client.post("/api/admin/login", json={"password": ""})
    assert response.status_code == 401


def test_admin_route_without_token(client: TestClient):
    response = client.post("/api/tournaments", json={"name": "Cup", "capacity": 8})
    assert response.status_code == 401


def test_admin_route_with_garbage_token(client: TestClient):
    response = client.post(
        "/api/tournaments",
        json={"name": "Cup", "capacity": 8},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


def test_admin_route_with_expired_token(client: TestClient):
    token = create_access_token({"role": "admin"}, expires_delta=timedelta(minutes=-1))
    response = client.post(
        "/api/tournaments", json={"name": "Cup", "capacity": 8}, headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


def test_admin_route_with_wrong_role(client: TestClient):
    token = create_access_token({"role": "player"})
    response = client.post(
        "/api/tournaments", json={"name": "Cup", "capacity": 8}, headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 403
    assert client.get("/api/tournaments").json() == []


def test_admin_token_opens_admin_routes(client: TestClient, admin_headers):
    response = client.post("/api/tournaments", json={"name": "Cup", "capacity": 8}, headers=admin_headers)
    assert response.status_code == 201
