"""Follow graph queries.

Edges live only in the ``follows`` table, so a user's followers and the
following lists that contain them are the same rows read from two sides.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models


def following_ids(user_id: int):
    """Subquery of the ids the user follows, for ``IN`` filters."""
    return select(models.Follow.following_id).where(models.Follow.follower_id == user_id)


def list_followers(db: Session, user_id: int) -> list[models.User]:
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.follower_id == models.User.id)
        .filter(models.Follow.following_id == user_id)
        .order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
        .all()
    )


def list_following(db: Session, user_id: int) -> list[models.User]:
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.following_id == models.User.id)
        .filter(models.Follow.follower_id == user_id)
        .order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
        .all()
    )


def subscribed_follower_ids(db: Session, user_id: int) -> list[int]:
    """Followers of ``user_id`` who opted in to new-post notifications."""
    rows = (
        db.query(models.Follow.follower_id)
        .join(models.User, models.User.id == models.Follow.follower_id)
        .filter(
            models.Follow.following_id == user_id,
            models.User.subscribed.is_(True),
        )
        .all()
    )
    return [follower_id for (follower_id,) in rows]


def viewer_following_set(db: Session, viewer_id: int | None, user_ids: list[int]) -> set[int]:
    """Which of ``user_ids`` the viewer follows, in one query."""
    if viewer_id is None or not user_ids:
        return set()
    rows = (
        db.query(models.Follow.following_id)
        .filter(
            models.Follow.follower_id == viewer_id,
            models.Follow.following_id.in_(user_ids),
        )
        .all()
    )
    return {following_id for (following_id,) in rows}


def delete_edges_for_user(db: Session, user_id: int) -> int:
    """Remove every follow edge the user is on, in either direction."""
    return (
        db.query(models.Follow)
        .filter(
            (models.Follow.follower_id == user_id)
            | (models.Follow.following_id == user_id)
        )
        .delete(synchronize_session=False)
    )
