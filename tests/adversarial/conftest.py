"""
Shared fixtures for adversarial tests.

Provides an HTTP client over the real routes with in-memory storage, for
tests that probe the API the way an attacker would.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.adapters.repository.memory import InMemoryAccountRepository, InMemoryPendingRegistrationStore
from src.api.main import app
from src.config.settings import Settings, get_settings

ATTACK_SECRET = "adversarial-signing-secret-at-least-32-bytes"


@pytest.fixture
def api_settings() -> Settings:
    return Settings(
        storage_backend="memory",
        jwt_secret_key=ATTACK_SECRET,
        bcrypt_cost=4,
        public_base_url="http://testserver",
        frontend_base_url="http://front.test",
    )


@pytest.fixture
def api_client(api_settings: Settings, email_sender) -> Generator[TestClient, None, None]:
    """Client over the real app; storage is fresh for every test."""
    app.state.accounts = InMemoryAccountRepository()
    app.state.pending_store = InMemoryPendingRegistrationStore()
    app.state.pool = None
    app.state.email_sender = email_sender
    app.dependency_overrides[get_settings] = lambda: api_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def confirmed_account(api_client: TestClient, email_sender) -> tuple[str, str]:
    """Register and confirm victim@example.com; returns (email, password)."""
    email, password = "victim@example.com", "victim123"
    api_client.post("/v1/register", json={"email": email, "password": password})
    token = email_sender.last.query_param("token")
    response = api_client.get("/v1/confirm-email", params={"token": token})
    assert response.status_code == 200
    return email, password
