"""Test registration, login, and token/cookie authentication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from app.auth import JWT_ALGORITHM, JWT_SECRET_KEY, create_access_token
from app.settings import AUTH_COOKIE_NAME

from conftest import TEST_PASSWORD


def _register(client, **overrides):
    payload = {
        "firstname": "Grace",
        "lastname": "Hopper",
        "email": "grace@example.com",
        "password": "secret123",
        **overrides,
    }
    return client.post("/auth/register", json=payload)


def test_register_returns_token_and_sets_cookie(client):
    response = _register(client, email="  Grace@Example.COM ")

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "grace@example.com"
    assert data["user"]["role"] == "USER"
    assert data["user"]["handle"] == "@grace"
    assert AUTH_COOKIE_NAME in response.cookies


def test_register_duplicate_email_is_conflict(client):
    assert _register(client).status_code == 201

    response = _register(client, email="GRACE@example.com")
    assert response.status_code == 409


def test_register_rejects_invalid_name(client):
    response = _register(client, firstname="R2D2")
    assert response.status_code == 422


def test_register_rejects_invalid_email(client):
    response = _register(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid email format"


def test_register_rejects_short_password(client):
    response = _register(client, password="12345")
    assert response.status_code == 422


def test_authenticate_success(client, user):
    response = client.post(
        "/auth/authenticate", json={"email": "ALICE@example.com", "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id


def test_authenticate_wrong_password(client, user):
    response = client.post(
        "/auth/authenticate", json={"email": user.email, "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_authenticate_unknown_email(client):
    response = client.post(
        "/auth/authenticate", json={"email": "nobody@example.com", "password": TEST_PASSWORD}
    )
    assert response.status_code == 401


def test_authenticate_banned_user(client, make_user):
    banned = make_user(email="banned@example.com", banned=True)

    response = client.post(
        "/auth/authenticate", json={"email": banned.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 401
    assert "banned" in response.json()["detail"]


def test_cookie_authenticates_requests(client):
    assert _register(client).status_code == 201

    # TestClient keeps the auth cookie from the register response
    response = client.get("/users/me")
    assert response.status_code == 200
    assert response.json()["email"] == "grace@example.com"


def test_logout_clears_cookie(client):
    assert _register(client).status_code == 201

    response = client.post("/auth/logout")
    assert response.status_code == 204
    assert client.get("/users/me").status_code == 401


def test_me_requires_auth(client):
    response = client.get("/users/me")
    assert response.status_code == 401


def test_invalid_token_rejected(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_expired_token_rejected(client, user):
    payload = {
        "sub": user.email,
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        "type": "access",
    }
    token = jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_token_for_deleted_account_rejected(client):
    token = create_access_token("ghost@example.com")
    response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
