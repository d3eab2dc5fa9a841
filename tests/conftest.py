"""Shared test fixtures for the NoteVault test suite.

Every test gets its own file-backed SQLite store under pytest's tmp_path,
initialised through the same ``init_schema`` path the app runs at startup,
so tests are isolated without any truncation step.
"""

import itertools
import os

# Force auth off and keep logs readable before any app imports.
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_REQUESTS"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from notevault.core.config import settings
from notevault.core.token_factory import create_token
from notevault.database import Store
from notevault.main import create_app
from notevault.services import user_service


@pytest.fixture()
def store(tmp_path):
    """A fresh, fully initialised store for one test."""
    s = Store(f"sqlite:///{tmp_path / 'notes.db'}")
    s.init_schema()
    yield s
    s.dispose()


@pytest.fixture()
def db(store):
    """Per-test database session."""
    session = store.session()
    yield session
    session.close()


@pytest.fixture()
def make_user(db):
    """Factory registering accounts: ``make_user()`` or ``make_user("alice")``."""
    counter = itertools.count(1)

    def _make(username: str = None, password: str = "correct horse"):
        return user_service.register_user(db, username or f"user{next(counter)}", password)

    return _make


@pytest.fixture()
def user(make_user):
    return make_user("alice")


@pytest.fixture()
def client(store):
    """TestClient around an app that owns the per-test store."""
    with TestClient(create_app(store)) as c:
        yield c


@pytest.fixture()
def auth_enabled(monkeypatch):
    """Turn bearer-token authentication on for one test."""
    monkeypatch.setattr(settings, "auth_enabled", True)


def bearer(user_id: int, username: str) -> dict:
    """Authorization header for the given account."""
    token = create_token(user_id, username, settings.jwt_secret_key, settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


def post_action(client, action: str, headers: dict = None, **fields):
    """POST one ``{"action": ...}`` body to the notes endpoint."""
    return client.post("/api/notes", json={"action": action, **fields}, headers=headers or {})
