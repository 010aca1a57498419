from fastapi.testclient import TestClient

from app.main import app
from conftest import PASSWORD


def test_login_and_me(client: TestClient, make_user):
    user = make_user("cto", email="cto@iruka.com")

    token_res = client.post(
        "/api/v1/login/access-token",
        json={"email": "cto@iruka.com", "password": PASSWORD},
    )
    assert token_res.status_code == 200
    token = token_res.json()["access_token"]

    me_res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me_res.status_code == 200
    me = me_res.json()
    assert me["id"] == str(user.id)
    assert me["email"] == "cto@iruka.com"
    assert me["roles"] == ["cto"]
    assert "games:approve" in me["permissions"]
    assert "games:publish" not in me["permissions"]


def test_login_wrong_password(client: TestClient, make_user):
    make_user("dev", email="dev@iruka.com")
    res = client.post(
        "/api/v1/login/access-token", json={"email": "dev@iruka.com", "password": "nope"}
    )
    assert res.status_code == 401


def test_requests_without_token_are_rejected():
    client = TestClient(app)
    assert client.get("/api/v1/games").status_code == 401
    res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 403


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/health/db").json() == {"status": "ok", "db": "ok"}
