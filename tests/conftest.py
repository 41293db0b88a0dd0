"""
tests/conftest.py -- Shared test fixtures for Gatekeeper.

This module provides:
  - ManualClock: an advanceable clock for token expiry and rate-limit windows
  - make_store(): isolated named shared-memory SQLite UserStore
  - client: TestClient over the real app with a patched lifespan
  - seeded users (admin / moderator / regular) and their bearer tokens

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

The DEBUG env var must be set before any project import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
import time_machine
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import ROLE_ADMIN, ROLE_MODERATOR, ROLE_USER, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.config import Settings

# Any fixed point works; a round number makes failure output easy to read.
START_TIME = 1_700_000_000.0

TEST_PASSWORD = "Abcdefg1!"


class ManualClock:
    """Clock that only moves when a test tells it to.

    Wraps a time-machine traveller with ticking off, so time.time() is frozen
    for everything in the process: TokenService through this clock, and the
    rate limiters' `limits` MemoryStorage directly. advance() shifts both.
    """

    def __init__(self, coordinates: time_machine.Coordinates) -> None:
        self._coordinates = coordinates

    def now(self) -> float:
        return time.time()

    def advance(self, seconds: float) -> None:
        self._coordinates.shift(seconds)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    """Settings for tests: dev mode, a fixed key, and the cheapest bcrypt cost."""
    values = {
        "debug": True,
        "secret_key": "test-secret-key-that-is-long-enough-0123456789",
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(**values)


def make_store() -> UserStore:
    """Fresh named shared-memory store, unique per call."""
    return UserStore(f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(settings: Settings, user_store: UserStore, clock: ManualClock):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and clock into app.state so routes never touch the
    production database or the system clock.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, user_store, clock)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> Generator[ManualClock, None, None]:
    """Freeze time at START_TIME for the test; advance it with clock.advance()."""
    traveller = time_machine.travel(START_TIME, tick=False)
    coordinates = traveller.start()
    yield ManualClock(coordinates)
    traveller.stop()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory():
    """Build Settings with per-test overrides, e.g. settings_factory(debug=False)."""
    return make_settings


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def client(settings: Settings, store: UserStore, clock: ManualClock) -> Generator[TestClient, None, None]:
    """Function-scoped TestClient: every test gets an empty store and fresh limiters."""
    app.router.lifespan_context = _patch_lifespan(settings, store, clock)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def seeded(store: UserStore, hasher: PasswordHasher) -> dict[str, User]:
    """One user per role, all with TEST_PASSWORD. Keys are the role names."""
    users: dict[str, User] = {}
    for role in (ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN):
        uid = store.create_user(
            User(
                username=f"{role}1",
                email=f"{role}1@example.com",
                role=role,
                hashed_password=hasher.hash(TEST_PASSWORD),
            )
        )
        users[role] = store.get_by_id(uid)
    return users


@pytest.fixture
def tokens_by_role(client: TestClient, seeded: dict[str, User]) -> dict[str, str]:
    """Bearer tokens for the seeded users, issued by the running app."""
    token_service = client.app.state.token_service
    return {role: token_service.issue(user.id) for role, user in seeded.items()}
