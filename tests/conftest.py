"""Shared fixtures: fake verifier, controllable clock and app clients."""

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from blogapi.app.core.config import Settings
from blogapi.app.exceptions import VerificationError
from blogapi.app.main import create_app
from blogapi.app.middleware.auth import Principal, Verifier

USER_TOKEN = "user-token"
ADMIN_TOKEN = "admin-token"
STRING_ADMIN_TOKEN = "string-admin-token"
NON_ADMIN_TOKEN = "good-token"


class FakeVerifier(Verifier):
    """Verifier backed by a fixed token table; records every call."""

    def __init__(self, tokens: Optional[Dict[str, Principal]] = None):
        self.tokens = dict(tokens or {})
        self.calls: List[str] = []

    def add(self, token: str, uid: str, **claims) -> None:
        self.tokens[token] = Principal(uid=uid, claims={"uid": uid, **claims})

    async def verify_credential(self, credential: str) -> Principal:
        self.calls.append(credential)
        if not credential:
            raise VerificationError("id token is empty")
        principal = self.tokens.get(credential)
        if principal is None:
            raise VerificationError("unknown token")
        return principal


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def verifier() -> FakeVerifier:
    v = FakeVerifier()
    v.add(USER_TOKEN, "u1")
    v.add(ADMIN_TOKEN, "admin1", admin=True)
    # String "true" is not a boolean true
    v.add(STRING_ADMIN_TOKEN, "u2", admin="true")
    v.add(NON_ADMIN_TOKEN, "u1", admin=False)
    return v


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'blogapi-test.db'}",
        rate_limit_requests=100,
        rate_limit_window_seconds=60.0,
        redis_enabled=False,
        log_level="WARNING",
        cors_origins=["*"],
    )


@pytest.fixture
def app_factory(settings, verifier, fake_clock):
    """Build an app with the fake verifier and clock; overrides patch settings."""

    def factory(**overrides):
        app_settings = settings.model_copy(update=overrides)
        return create_app(settings=app_settings, verifier=verifier, clock=fake_clock)

    return factory


@pytest.fixture
def client(app_factory):
    with TestClient(app_factory()) as test_client:
        yield test_client
