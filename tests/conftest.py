# tests/conftest.py

from __future__ import annotations

import pytest

import db
from auth import Identity
from config import get_settings
from models.user import User


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Cheap bcrypt for the whole suite; settings are cached so reset around each test."""
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def database():
    """Fresh in-memory SQLite per test, wired into the db module."""
    eng = db.configure("sqlite://")
    db.init_db()
    yield eng
    eng.dispose()


def _user(email: str) -> User:
    return db.create_user(email, "not-a-real-hash", email.split("@")[0])


@pytest.fixture()
def alice(database) -> Identity:
    u = _user("alice@example.com")
    return Identity(user_id=u.id, email=u.email, name=u.name)


@pytest.fixture()
def bob(database) -> Identity:
    u = _user("bob@example.com")
    return Identity(user_id=u.id, email=u.email, name=u.name)
