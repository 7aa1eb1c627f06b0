"""Pytest fixtures for pusher-auth tests."""

import base64

import pytest

from pusher_auth.client import PusherClient
from pusher_auth.config import PusherConfig
from pusher_auth.types import Credential

NOW = 1_700_000_000


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep PUSHER_* variables from the environment out of the tests."""
    for name in (
        "PUSHER_APP_ID",
        "PUSHER_KEY",
        "PUSHER_SECRET",
        "PUSHER_HOST",
        "PUSHER_PORT",
        "PUSHER_SCHEME",
        "PUSHER_ENCRYPTION_MASTER_KEY_BASE64",
        "PUSHER_TIMESTAMP_GRACE",
        "PUSHER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credential() -> Credential:
    """Credential used across signing tests."""
    return Credential(key="test-key", secret="test-secret-32-characters-long!")


@pytest.fixture
def clock():
    """Fixed clock returning NOW."""
    return lambda: NOW


@pytest.fixture
def socket_id() -> str:
    """Sample socket ID for testing."""
    return "123456.7890123"


@pytest.fixture
def master_key() -> bytes:
    """A 32-byte encryption master key."""
    return bytes(range(32))


@pytest.fixture
def config(master_key) -> PusherConfig:
    """Create a test configuration."""
    return PusherConfig(
        app_id="20",
        key="test-key",
        secret="test-secret-32-characters-long!",
        host="localhost",
        port=8080,
        scheme="http",
        encryption_master_key_base64=base64.b64encode(master_key).decode(),
    )


@pytest.fixture
def client(config, clock) -> PusherClient:
    """Client with a fixed clock."""
    return PusherClient(config=config, clock=clock)
