"""Comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import ensure_not_banned, get_current_user, get_current_user_optional
from ..deps import get_db
from ..errors import ForbiddenError
from ..services import posts as post_service

router = APIRouter(prefix="/posts", tags=["Comments"])


@router.get("/{post_id}/comments", response_model=list[schemas.Comment])
def list_comments(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.Comment]:
    """List a post's comments, newest first."""
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    comments = post_service.list_comments(db, post.id)
    return post_service.to_comment_views(db, comments, current_user)


@router.post(
    "/{post_id}/comments",
    response_model=schemas.Comment,
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    post_id: int,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Comment:
    """
    Comment on a post.

    The post author receives a COMMENT notification.
    """
    ensure_not_banned(current_user, "comment")
    post = post_service.get_visible_post_or_404(db, post_id, current_user)
    comment = post_service.add_comment(db, post, current_user, payload)
    return post_service.to_comment_views(db, [comment], current_user)[0]


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    """Delete a comment (comment author, post author or admin)."""
    ensure_not_banned(current_user, "delete comments")
    comment = post_service.get_comment_or_404(db, comment_id)
    post_service.get_visible_post_or_404(db, comment.post_id, current_user)
    if not post_service.can_delete_comment(comment, current_user):
        raise ForbiddenError()

    post_service.delete_comment(db, comment)
