"""
Shared fixtures.

The environment is pinned BEFORE khe_api is imported: in-memory SQLite,
a throwaway uploads folder and mock push/mail providers.
"""

from __future__ import annotations

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="khe-uploads-")
os.environ["PUSH_PROVIDER"] = "mock"
os.environ["MAIL_PROVIDER"] = "mock"
os.environ["APP_ENV"] = "test"

from typing import Callable, Iterator, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from khe_api.data_client import tables  # noqa: E402,F401
from khe_api.data_client.tables import ROLE_ATTENDEE, User  # noqa: E402
from khe_api.data_client.user_client import create_user  # noqa: E402
from khe_api.db import Base, SessionLocal, engine  # noqa: E402
from khe_api.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema() -> Iterator[None]:
    """Clean slate per test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def session() -> Iterator:
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user() -> Callable[..., Tuple[User, Tuple[str, str]]]:
    """
    Create a committed user; returns (user, basic_auth) where basic_auth is
    the (key, token) pair accepted by every authenticated route.
    """

    def _make(email: str = "hacker@kent.edu", role: str = ROLE_ATTENDEE, password: str = "pass"):
        with SessionLocal() as s:
            user = create_user(s, email, password, role=role)
            s.commit()
            return user, (user.id, user.token)

    return _make
