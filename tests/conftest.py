import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from tasktracker.api import create_app
from tasktracker.config import Settings
from tasktracker.database import Database

JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def app_settings(tmp_path):
    """Settings pointing at an isolated SQLite file for each test."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}",
        jwt_secret=JWT_SECRET,
        bcrypt_rounds=4,
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return ``(auth_headers, response_body)``."""

    def _register(username="alice", email=None, password="secret123"):
        resp = client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": email or f"{username}@example.com",
                "password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return {"Authorization": f"Bearer {data['token']}"}, data

    return _register


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}")
    await db.init_db()
    yield db
    await db.dispose()
