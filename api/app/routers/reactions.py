"""Like endpoints for posts and comments."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..services import interactions

router = APIRouter(prefix="/posts", tags=["Reactions"])


@router.post("/{post_id}/like", response_model=schemas.Post)
def toggle_post_like(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Post:
    """
    Like or unlike a post.

    Returns the post with its updated like count and ``is_liked`` flag.
    """
    return interactions.toggle_post_like(db, post_id, current_user)


@router.post("/comments/{comment_id}/like", response_model=schemas.Comment)
def toggle_comment_like(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Comment:
    """Like or unlike a comment."""
    return interactions.toggle_comment_like(db, comment_id, current_user)
