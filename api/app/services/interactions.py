"""
Like and follow toggles.

Each toggle is a delete-if-present followed, when nothing was deleted, by an
insert-if-absent. Both are single statements guarded by the table's primary
key or unique constraint, so two concurrent toggles by the same user can
never leave a duplicate row behind. A notification is only emitted when the
insert actually created the row.
"""

from __future__ import annotations

import logging

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import ensure_not_banned
from ..errors import ValidationError
from . import accounts, posts
from .notifications import NotificationService

logger = logging.getLogger(__name__)


def _insert_ignore(db: Session, model, values: dict, index_elements: list[str]) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING.

    Returns:
        True if a row was inserted, False if it already existed
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise RuntimeError(f"Unsupported database dialect: {dialect}")

    stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)
    result = db.execute(stmt)
    return result.rowcount == 1


def _delete_where(db: Session, model, *criteria) -> bool:
    """Delete matching rows. Returns True if anything was removed."""
    count = db.query(model).filter(*criteria).delete(synchronize_session=False)
    return count > 0


# ============================================================================
# LIKES
# ============================================================================


def toggle_post_like(db: Session, post_id: int, user: models.User) -> schemas.Post:
    """Like or unlike a post. Only a new like notifies the post author."""
    ensure_not_banned(user, "like posts")
    post = posts.get_visible_post_or_404(db, post_id, user)

    removed = _delete_where(
        db,
        models.PostLike,
        models.PostLike.post_id == post.id,
        models.PostLike.user_id == user.id,
    )
    if not removed:
        inserted = _insert_ignore(
            db,
            models.PostLike,
            {"post_id": post.id, "user_id": user.id, "created_at": models.utcnow()},
            ["post_id", "user_id"],
        )
        if inserted:
            NotificationService.create(
                db, post.author_id, user, models.NOTIFICATION_LIKE, post.id
            )

    db.commit()
    return posts.to_view(db, post, user)


def toggle_comment_like(db: Session, comment_id: int, user: models.User) -> schemas.Comment:
    """
    Like or unlike a comment.

    A new like notifies the comment author; the notification points at the
    comment's post.
    """
    ensure_not_banned(user, "like comments")
    comment = posts.get_comment_or_404(db, comment_id)
    posts.get_visible_post_or_404(db, comment.post_id, user)

    removed = _delete_where(
        db,
        models.CommentLike,
        models.CommentLike.comment_id == comment.id,
        models.CommentLike.user_id == user.id,
    )
    if not removed:
        inserted = _insert_ignore(
            db,
            models.CommentLike,
            {"comment_id": comment.id, "user_id": user.id, "created_at": models.utcnow()},
            ["comment_id", "user_id"],
        )
        if inserted:
            NotificationService.create(
                db, comment.author_id, user, models.NOTIFICATION_LIKE, comment.post_id
            )

    db.commit()
    return posts.to_comment_views(db, [comment], user)[0]


# ============================================================================
# FOLLOWS
# ============================================================================


def toggle_follow(db: Session, target_id: int, follower: models.User) -> schemas.UserProfile:
    """
    Follow or unfollow a user.

    Following notifies the target; unfollowing retracts that FOLLOW
    notification so the feed keeps no stale follow events.
    """
    ensure_not_banned(follower, "follow users")
    if target_id == follower.id:
        raise ValidationError("You cannot follow yourself")
    target = accounts.get_user_or_404(db, target_id)

    removed = _delete_where(
        db,
        models.Follow,
        models.Follow.follower_id == follower.id,
        models.Follow.following_id == target.id,
    )
    if removed:
        NotificationService.retract(
            db, target.id, follower.id, models.NOTIFICATION_FOLLOW, follower.id
        )
        logger.info(f"User {follower.id} unfollowed user {target.id}")
    else:
        inserted = _insert_ignore(
            db,
            models.Follow,
            {
                "follower_id": follower.id,
                "following_id": target.id,
                "created_at": models.utcnow(),
            },
            ["follower_id", "following_id"],
        )
        if inserted:
            NotificationService.create(
                db, target.id, follower, models.NOTIFICATION_FOLLOW, follower.id
            )
            logger.info(f"User {follower.id} followed user {target.id}")

    db.commit()
    return accounts.to_profile(db, target, follower)
