"""Post management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import (
    ensure_not_banned,
    get_current_user,
    get_current_user_optional,
    require_ownership,
)
from ..deps import get_db
from ..errors import ForbiddenError
from ..services import posts as post_service

router = APIRouter(prefix="/posts", tags=["Posts"])
logger = logging.getLogger(__name__)


@router.get("", response_model=schemas.Page[schemas.Post])
def list_posts(
    cursor: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.Page[schemas.Post]:
    """
    List posts, newest first.

    Hidden posts are included only for their owner and for admins.
    """
    items, next_cursor = post_service.list_posts(db, current_user, cursor, limit)
    return schemas.Page(
        items=post_service.to_views(db, items, current_user), next_cursor=next_cursor
    )


@router.get("/feed", response_model=schemas.Page[schemas.Post])
def following_feed(
    cursor: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Page[schemas.Post]:
    """Posts by the users the current user follows."""
    items, next_cursor = post_service.list_feed(db, current_user, cursor, limit)
    return schemas.Page(
        items=post_service.to_views(db, items, current_user), next_cursor=next_cursor
    )


@router.get("/user/{user_id}", response_model=schemas.Page[schemas.Post])
def list_user_posts(
    user_id: int,
    cursor: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.Page[schemas.Post]:
    """List one author's posts, newest first."""
    items, next_cursor = post_service.list_user_posts(db, user_id, current_user, cursor, limit)
    return schemas.Page(
        items=post_service.to_views(db, items, current_user), next_cursor=next_cursor
    )


@router.post("", response_model=schemas.Post, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: schemas.PostCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Post:
    """
    Create a post.

    Followers of the author who are subscribed receive a NEW_POST notification.
    """
    ensure_not_banned(current_user, "create posts")
    post = post_service.create_post(db, current_user, payload)
    return post_service.to_view(db, post, current_user)


@router.get("/{post_id}", response_model=schemas.Post)
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.Post:
    """
    Get a single post.

    Hidden posts answer 404 unless the viewer is the owner or an admin.
    """
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    return post_service.to_view(db, post, current_user)


@router.put("/{post_id}", response_model=schemas.Post)
def update_post(
    post_id: int,
    payload: schemas.PostCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Post:
    """Replace a post's content. Only the owner can edit."""
    ensure_not_banned(current_user, "edit posts")
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    if post.author_id != current_user.id:
        raise ForbiddenError("Only the author can edit this post")

    post = post_service.update_post(db, post, payload)
    return post_service.to_view(db, post, current_user)


@router.put("/{post_id}/hide", response_model=schemas.Post)
def toggle_hide_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Post:
    """Hide or unhide a post (owner or admin)."""
    ensure_not_banned(current_user, "hide posts")
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    require_ownership(post.author_id, current_user)

    post = post_service.toggle_hidden(db, post)
    return post_service.to_view(db, post, current_user)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    """
    Delete a post (owner or admin).

    Comments, likes, reports and notifications about the post go with it.
    """
    ensure_not_banned(current_user, "delete posts")
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    require_ownership(post.author_id, current_user)

    post_service.delete_post(db, post)
