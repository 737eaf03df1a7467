from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from tasktracker.api import create_app
from tasktracker.security import TokenService


def test_register_and_login(client, register, app_settings):
    _, data = register("alice", password="secret")
    assert data["message"] == "User created successfully"
    assert data["user"]["username"] == "alice"
    assert data["user"]["email"] == "alice@example.com"
    assert "password" not in data["user"]

    claims = jwt.decode(data["token"], app_settings.jwt_secret, algorithms=["HS256"])
    assert claims["id"] == data["user"]["id"]
    assert claims["username"] == "alice"

    resp = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Login successful"
    assert body["user"] == data["user"]
    assert client.get("/api/tasks", headers={"Authorization": f"Bearer {body['token']}"}).status_code == 200


def test_login_with_email(client, register):
    register("alice", password="secret")
    resp = client.post("/api/auth/login", json={"username": "alice@example.com", "password": "secret"})
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "alice"


def test_register_duplicate_identity(client, register):
    register("alice", password="first")

    resp = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "new@example.com", "password": "second"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Username or email already exists"}

    resp = client.post(
        "/api/auth/register",
        json={"username": "new", "email": "alice@example.com", "password": "second"},
    )
    assert resp.status_code == 400

    assert client.post("/api/auth/login", json={"username": "alice", "password": "first"}).status_code == 200
    assert client.post("/api/auth/login", json={"username": "alice", "password": "second"}).status_code == 401
    assert client.post("/api/auth/login", json={"username": "new", "password": "second"}).status_code == 401


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"username": "alice", "email": "alice@example.com"},
        {"username": "", "email": "alice@example.com", "password": "pw"},
        {"username": "alice", "email": "   ", "password": "pw"},
    ],
)
def test_register_requires_all_fields(client, body):
    resp = client.post("/api/auth/register", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "All fields are required"}


def test_register_without_body(client):
    resp = client.post("/api/auth/register")
    assert resp.status_code == 400
    assert resp.json() == {"error": "All fields are required"}


def test_login_requires_fields(client):
    resp = client.post("/api/auth/login", json={"username": "alice"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Username and password are required"}


def test_login_failures_are_indistinguishable(client, register):
    register("alice", password="secret")
    wrong_password = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    unknown_user = client.post("/api/auth/login", json={"username": "mallory", "password": "secret"})

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"error": "Invalid credentials"}


PROTECTED_ROUTES = [
    ("get", "/api/tasks"),
    ("get", "/api/tasks/1"),
    ("post", "/api/tasks"),
    ("put", "/api/tasks/1"),
    ("delete", "/api/tasks/1"),
    ("get", "/api/stats"),
]


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
def test_missing_token(client, method, path):
    resp = client.request(method, path)
    assert resp.status_code == 401
    assert resp.json() == {"error": "Access token required"}


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
def test_expired_token_rejected_like_malformed(client, register, app_settings, method, path):
    _, data = register("alice")
    user = data["user"]
    expired = TokenService(app_settings.jwt_secret).issue(
        user["id"], user["username"], now=datetime.now(timezone.utc) - timedelta(days=2)
    )

    expired_resp = client.request(method, path, headers={"Authorization": f"Bearer {expired}"}, json={"title": "x"})
    malformed_resp = client.request(method, path, headers={"Authorization": "Bearer garbage"}, json={"title": "x"})

    assert expired_resp.status_code == malformed_resp.status_code == 403
    assert expired_resp.json() == malformed_resp.json() == {"error": "Invalid token"}


def test_token_signed_with_other_secret(client, register):
    _, data = register("alice")
    forged = TokenService("another-secret-that-is-long-enough-too").issue(data["user"]["id"], "alice")
    resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 403


def login_statuses(client, attempts):
    return [
        client.post("/api/auth/login", json={"username": "alice", "password": "pw"}).status_code
        for _ in range(attempts)
    ]


def test_login_rate_limit_follows_app_settings(app_settings):
    limited = app_settings.model_copy(update={"rate_limit_enabled": True, "auth_rate_limit": "2/minute"})
    with TestClient(create_app(limited)) as client:
        statuses = login_statuses(client, 4)
    assert statuses == [401, 401, 429, 429]


def test_rate_limit_is_per_app(app_settings):
    limited = app_settings.model_copy(update={"rate_limit_enabled": True, "auth_rate_limit": "2/minute"})
    limited_app = create_app(limited)
    open_app = create_app(app_settings)

    with TestClient(limited_app) as client:
        assert login_statuses(client, 3) == [401, 401, 429]
    with TestClient(open_app) as client:
        assert login_statuses(client, 5) == [401] * 5


def test_token_is_second_word_of_header(client, register):
    headers, _ = register("alice")
    token = headers["Authorization"].split(" ")[1]

    resp = client.get("/api/tasks", headers={"Authorization": "Basic xyz"})
    assert resp.status_code == 403
    assert resp.json() == {"error": "Invalid token"}

    resp = client.get("/api/tasks", headers={"Authorization": "Bearer"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Access token required"}

    assert client.get("/api/tasks", headers={"Authorization": f"Token {token}"}).status_code == 200
