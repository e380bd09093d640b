"""
Shared test setup

Environment is set before any project module is imported: config reads it
once at import time.
"""

import os

os.environ.setdefault("HUB_JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("HUB_ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("HUB_STORE_BACKEND", "memory")
os.environ.setdefault("HUB_LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database.hub import Hub  # noqa: E402
from database.memory_store import MemoryDocumentStore  # noqa: E402
from server.main import create_app  # noqa: E402


@pytest.fixture
def hub():
    return Hub(MemoryDocumentStore())


@pytest.fixture
def client(hub):
    with TestClient(create_app(hub=hub)) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """register(email, name) -> Authorization headers for a new account"""

    def _register(email: str, name: str = "Tester", password: str = "hunter22"):
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "displayName": name},
        )
        assert response.status_code == 200, response.text
        client.cookies.clear()
        token = response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _register
