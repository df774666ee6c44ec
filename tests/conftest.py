from __future__ import annotations

import pytest

from compass_mfa import create_app
from compass_mfa.db import MemoryEnrollmentStore
from compass_mfa.enrollment import TwoFactorEnrollment
from compass_mfa.mfa import issue_identity_token
from compass_mfa.totp import hotp, time_step

# 2001-09-09T01:46:30Z, start of step 33333333
T0 = 33333333 * 30


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wrong_code(key: bytes, at: float, window: int = 1) -> str:
    """A six-digit code that does not match any step in the window around `at`."""
    step = time_step(at)
    valid = {hotp(key, step + off) for off in range(-window, window + 1)}
    for digit in "0123456789":
        candidate = digit * 6
        if candidate not in valid:
            return candidate
    raise AssertionError("unreachable")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryEnrollmentStore()


@pytest.fixture
def enrollment(store, clock):
    return TwoFactorEnrollment(store, issuer="Test Issuer", max_attempts=3, lock_seconds=60, clock=clock)


@pytest.fixture
def app(store, clock):
    app = create_app(
        config={
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "MFA_MAX_ATTEMPTS": 3,
            "MFA_LOCK_SECONDS": 60,
        },
        store=store,
    )
    app.extensions["compass_mfa"].clock = clock
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(app):
    def make(user_id: str) -> dict:
        with app.app_context():
            return {"Authorization": f"Bearer {issue_identity_token(user_id)}"}

    return make


@pytest.fixture(name="wrong_code")
def wrong_code_fixture():
    return wrong_code
