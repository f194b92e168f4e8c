"""User profile and follow endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import ensure_not_banned, get_current_user, get_current_user_optional
from ..deps import get_db
from ..services import accounts, interactions, social_graph

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[schemas.UserProfile])
def list_users(
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.UserProfile]:
    """List all users, newest first."""
    users = db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).all()
    return accounts.to_profiles(db, users, current_user)


@router.get("/me", response_model=schemas.UserProfile)
def get_me(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserProfile:
    """Get the current user's profile."""
    return accounts.to_profile(db, current_user, current_user)


@router.put("/me", response_model=schemas.UserProfile)
def update_me(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserProfile:
    """Update the current user's profile. Omitted fields are left unchanged."""
    ensure_not_banned(current_user, "update your profile")
    accounts.apply_profile_update(current_user, payload)
    db.commit()
    db.refresh(current_user)
    return accounts.to_profile(db, current_user, current_user)


@router.put("/me/subscribe", response_model=schemas.UserProfile)
def toggle_subscribe(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserProfile:
    """
    Toggle the new-post subscription.

    Subscribed users are notified whenever someone they follow publishes a post.
    """
    ensure_not_banned(current_user, "subscribe")
    current_user.subscribed = not current_user.subscribed
    db.commit()
    db.refresh(current_user)
    return accounts.to_profile(db, current_user, current_user)


@router.get("/{user_id}", response_model=schemas.UserProfile)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.UserProfile:
    user = accounts.get_user_or_404(db, user_id)
    return accounts.to_profile(db, user, current_user)


@router.post("/{user_id}/follow", response_model=schemas.UserProfile)
def toggle_follow(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserProfile:
    """
    Follow or unfollow a user.

    Returns the target's profile with the updated follower count and follow state.
    """
    return interactions.toggle_follow(db, user_id, current_user)


@router.get("/{user_id}/followers", response_model=list[schemas.UserProfile])
def list_followers(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.UserProfile]:
    accounts.get_user_or_404(db, user_id)
    return accounts.to_profiles(db, social_graph.list_followers(db, user_id), current_user)


@router.get("/{user_id}/following", response_model=list[schemas.UserProfile])
def list_following(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.UserProfile]:
    accounts.get_user_or_404(db, user_id)
    return accounts.to_profiles(db, social_graph.list_following(db, user_id), current_user)
