"""Shared fixtures for libs/vault_auth tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest


class FakeClock:
    """Manually advanced clock injected into authenticators."""

    def __init__(self, start: datetime) -> None:
        self.start = start
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def at(self, seconds: float) -> None:
        """Jump to ``start + seconds``."""
        self.now = self.start + timedelta(seconds=seconds)


def _login_response(token: str = "hvs.test-token", ttl: int = 3600) -> dict:
    # Shape of hvac's JSON adapter output for auth/<mount>/login
    return {
        "request_id": "c5b2a0c9-7f3c-4e2b-9a64-1f8e0a3d5b11",
        "lease_id": "",
        "renewable": False,
        "lease_duration": 0,
        "data": None,
        "auth": {
            "client_token": token,
            "accessor": "accessor-123",
            "policies": ["default", "trading"],
            "lease_duration": ttl,
            "renewable": True,
        },
    }


@pytest.fixture()
def login_response() -> Callable[..., dict]:
    """Factory for Vault login responses: login_response(token=..., ttl=...)."""
    return _login_response


@pytest.fixture()
def clock() -> FakeClock:
    """Fake clock starting at 2025-01-15T12:00:00Z."""
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC))


@pytest.fixture()
def mock_hvac_client():
    """Create a mock hvac client for testing."""
    client = MagicMock()
    client.token = None
    client.auth.approle.login.return_value = _login_response()
    client.auth.kubernetes.login.return_value = _login_response()
    client.auth.aws.iam_login.return_value = _login_response()
    return client


@pytest.fixture()
def jwt_file(tmp_path):
    """Service-account token file with a fake JWT."""
    path = tmp_path / "token"
    path.write_text("eyJhbGciOiJSUzI1NiJ9.fake.jwt\n", encoding="utf-8")
    return path
