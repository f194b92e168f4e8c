from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

# The app reads its configuration at import time
_TEST_DB_DIR = tempfile.mkdtemp(prefix="blog-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_TEST_DB_DIR) / 'test.db'}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ.pop("REDIS_URL", None)
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app import models  # noqa: E402
from app.auth import create_access_token  # noqa: E402
from app.db import SessionLocal  # noqa: E402
from app.main import app, run_startup_tasks  # noqa: E402
from app.services.accounts import hash_password  # noqa: E402

TEST_PASSWORD = "password123"

# Children before parents
_TABLES = (
    models.CommentLike,
    models.PostLike,
    models.Notification,
    models.Report,
    models.Comment,
    models.Follow,
    models.Post,
    models.User,
)

_password_hash: str | None = None


def _test_password_hash() -> str:
    # bcrypt is slow on purpose; hash the shared test password once
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(TEST_PASSWORD)
    return _password_hash


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> None:
    run_startup_tasks()


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    """Every test starts from empty tables and a fresh rate limiter."""
    yield
    session = SessionLocal()
    try:
        for model in _TABLES:
            session.query(model).delete(synchronize_session=False)
        session.commit()
    finally:
        session.close()
    app.state.rate_limiter.reset()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(db: Session) -> Callable[..., models.User]:
    """Factory creating users directly in the database."""
    counter = {"n": 0}

    def _make_user(
        firstname: str = "Test",
        lastname: str = "User",
        email: str | None = None,
        role: str = models.ROLE_USER,
        banned: bool = False,
        subscribed: bool = False,
    ) -> models.User:
        counter["n"] += 1
        user = models.User(
            firstname=firstname,
            lastname=lastname,
            email=email or f"user{counter['n']}@example.com",
            password_hash=_test_password_hash(),
            role=role,
            banned=banned,
            subscribed=subscribed,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def user(make_user) -> models.User:
    return make_user(firstname="Alice", lastname="Author", email="alice@example.com")


@pytest.fixture()
def other_user(make_user) -> models.User:
    return make_user(firstname="Bob", lastname="Reader", email="bob@example.com")


@pytest.fixture()
def admin_user(make_user) -> models.User:
    return make_user(
        firstname="Ada", lastname="Admin", email="admin@example.com", role=models.ROLE_ADMIN
    )


def _auth_headers(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}


@pytest.fixture()
def auth_headers() -> Callable[[models.User], dict[str, str]]:
    """Bearer header for a user."""
    return _auth_headers


@pytest.fixture()
def create_post(client: TestClient) -> Callable[..., dict]:
    """Create a post through the API and return its JSON."""

    def _create_post(author: models.User, title: str = "Hello world", **fields) -> dict:
        payload = {"title": title, "content": "Some interesting content", **fields}
        response = client.post("/posts", json=payload, headers=_auth_headers(author))
        assert response.status_code == 201, response.text
        return response.json()

    return _create_post
