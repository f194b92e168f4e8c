from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from .db import get_session


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; anything left uncommitted by a failed request is rolled back."""
    for session in get_session():
        try:
            yield session
        except Exception:
            session.rollback()
            raise
