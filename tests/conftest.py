"""Pytest configuration and fixtures."""

import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from fakes import TEST_ACCESS_KEY, TEST_REGION, TEST_SECRET_KEY, FakeS3Backend
from storage_console.auth import SecretCipher
from storage_console.dependencies import get_session_manager, get_storage_service
from storage_console.main import app
from storage_console.operations import ShutdownState, operation_counter, shutdown_coordinator
from storage_console.sessions import InMemorySessionStore, SessionManager
from storage_console.storage.clients import StorageClientCache
from storage_console.storage.service import StorageService


@pytest.fixture
def s3_backend():
    """Fake storage service with one known account."""
    return FakeS3Backend(credentials={TEST_ACCESS_KEY: TEST_SECRET_KEY})


@pytest.fixture
def client_cache(s3_backend):
    return StorageClientCache(client_factory=s3_backend.client_factory)


@pytest.fixture
def storage(client_cache):
    """Storage service with small pages so pagination is exercised."""
    return StorageService(client_cache, stats_timeout=2.0, stats_delay=0, page_size=2)


@pytest.fixture
def sessions(client_cache):
    return SessionManager(
        store=InMemorySessionStore(),
        clients=client_cache,
        cipher=SecretCipher(Fernet.generate_key()),
        ttl_seconds=3600,
    )


@pytest.fixture
def reset_operations():
    """Start every test with an idle counter and a running coordinator."""
    operation_counter._value = 0
    shutdown_coordinator.state = ShutdownState.RUNNING
    shutdown_coordinator.exit_code = None
    shutdown_coordinator.signal_name = None
    yield
    operation_counter._value = 0
    shutdown_coordinator.state = ShutdownState.RUNNING


@pytest.fixture
def client(sessions, storage, reset_operations):
    """Create a test client wired to the fake storage service."""
    app.dependency_overrides[get_session_manager] = lambda: sessions
    app.dependency_overrides[get_storage_service] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_payload():
    return {"accessKey": TEST_ACCESS_KEY, "secretKey": TEST_SECRET_KEY, "region": TEST_REGION}


@pytest.fixture
def login_data(client, login_payload):
    """Log in and return the login response data."""
    response = client.post("/auth/login", json=login_payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


@pytest.fixture
def auth_headers(login_data):
    """Return headers with a valid session token."""
    return {"Authorization": f"Bearer {login_data['token']}"}
