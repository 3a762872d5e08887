from fastapi.testclient import TestClient

from notekeeper.config import Settings
from notekeeper.main import create_app


def make_client(tmp_path, clock, allow_header_auth=False):
    settings = Settings(
        app_data_dir=tmp_path,
        jwt_secret="dev-secret-for-tests",
        jwt_exp_minutes=15,
        bcrypt_rounds=4,
        allow_header_auth=allow_header_auth,
        purge_interval_seconds=0,
    )
    return TestClient(create_app(settings, clock=clock))


def test_register_login_token_returned(tmp_path, clock):
    client = make_client(tmp_path, clock)
    r = client.post("/auth/register", json={"user_id": "userA", "password": "StrongPassw0rd!"})
    assert r.status_code == 201

    r = client.post("/auth/login", json={"user_id": "userA", "password": "StrongPassw0rd!"})
    assert r.status_code == 200
    data = r.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 900

    token = data["access_token"]
    r = client.post("/notes", headers={"Authorization": f"Bearer {token}"}, json={"title": "t"})
    assert r.status_code == 201
    assert r.json()["owner_user_id"] == "userA"


def test_register_twice_conflicts(tmp_path, clock):
    client = make_client(tmp_path, clock)
    body = {"user_id": "userA", "password": "StrongPassw0rd!"}
    assert client.post("/auth/register", json=body).status_code == 201
    assert client.post("/auth/register", json=body).status_code == 409


def test_login_wrong_password(tmp_path, clock):
    client = make_client(tmp_path, clock)
    client.post("/auth/register", json={"user_id": "userA", "password": "StrongPassw0rd!"})
    r = client.post("/auth/login", json={"user_id": "userA", "password": "wrongwrongwrong"})
    assert r.status_code == 401
    r = client.post("/auth/login", json={"user_id": "nobody", "password": "wrongwrongwrong"})
    assert r.status_code == 401


def test_tampered_token_is_rejected(tmp_path, clock):
    client = make_client(tmp_path, clock)
    r = client.get("/notes", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401


def test_header_auth_is_off_by_default(tmp_path, clock):
    client = make_client(tmp_path, clock)
    r = client.get("/notes", headers={"X-User-Id": "userA"})
    assert r.status_code == 401


def test_protected_requires_token_or_header(tmp_path, clock):
    client = make_client(tmp_path, clock, allow_header_auth=True)

    # no auth at all
    r = client.get("/notes")
    assert r.status_code == 401

    # header fallback only when enabled
    r = client.get("/notes", headers={"X-User-Id": "userA"})
    assert r.status_code == 200
