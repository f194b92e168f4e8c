"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import JWT_ACCESS_TOKEN_EXPIRE_MINUTES, create_access_token
from ..deps import get_db
from ..services import accounts
from ..settings import AUTH_COOKIE_NAME, AUTH_COOKIE_SECURE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _issue_token(response: Response, db: Session, user: models.User) -> schemas.AuthResponse:
    """Create an access token, set it as the auth cookie and build the response body."""
    token = create_access_token(user.email)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=AUTH_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return schemas.AuthResponse(token=token, user=accounts.to_profile(db, user, user))


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """
    Register a new account and sign it in.

    New accounts always get the USER role. Duplicate emails answer 409.
    """
    user = accounts.register_user(db, payload)
    return _issue_token(response, db, user)


@router.post("/authenticate", response_model=schemas.AuthResponse)
def authenticate(
    payload: schemas.LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """
    Login with email and password.

    Banned accounts are rejected only after their credentials check out.
    """
    user = accounts.authenticate_user(db, payload.email, payload.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.banned:
        logger.info(f"Rejected login for banned user {user.id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Your account has been banned",
        )

    return _issue_token(response, db, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response) -> None:
    """Clear the auth cookie. Bearer tokens simply expire."""
    response.delete_cookie(key=AUTH_COOKIE_NAME, path="/")
