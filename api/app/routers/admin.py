"""Admin and moderation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_admin
from ..deps import get_db
from ..errors import ValidationError
from ..services import accounts
from ..services.dashboard import get_dashboard_stats

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


@router.put("/users/{id}/ban", response_model=schemas.UserProfile)
def toggle_ban(
    id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.UserProfile:
    """
    Ban or unban a user (admin only).

    Banned users can still sign in with an existing token and read, but every
    mutation is rejected with 403. Admins cannot ban themselves.
    """
    if id == admin.id:
        raise ValidationError("Cannot ban yourself")

    user = accounts.get_user_or_404(db, id)
    user.banned = not user.banned
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {admin.id} set banned={user.banned} for user {user.id}")
    return accounts.to_profile(db, user, admin)


@router.delete("/users/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> None:
    """
    Delete a user and everything they own or appear in (admin only).

    Admins cannot delete themselves.
    """
    if id == admin.id:
        raise ValidationError("Cannot delete yourself")

    user = accounts.get_user_or_404(db, id)
    accounts.delete_user(db, user)
    logger.info(f"Admin {admin.id} deleted user {id}")


@router.put("/users/{id}", response_model=schemas.UserProfile)
def update_user(
    id: int,
    payload: schemas.AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.UserProfile:
    """Edit any user's profile or role (admin only)."""
    user = accounts.get_user_or_404(db, id)
    accounts.apply_profile_update(user, payload)
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {admin.id} updated user {user.id}")
    return accounts.to_profile(db, user, admin)


@router.get("/dashboard", response_model=schemas.DashboardStats)
def dashboard(
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
) -> schemas.DashboardStats:
    """Platform totals, daily post activity and the most reported users."""
    return get_dashboard_stats(db)
