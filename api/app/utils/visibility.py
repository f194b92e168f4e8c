"""Visibility and access control utilities for posts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_

from .. import models

if TYPE_CHECKING:
    from sqlalchemy.orm import Query


def can_access_post(post: models.Post, user: models.User | None) -> bool:
    """
    Check if a user can access a post based on visibility rules.

    Access is allowed if:
    - Post is not hidden, OR
    - User is the post owner, OR
    - User is an admin

    Hidden posts must look missing to everyone else, so callers answer 404
    rather than 403 when this returns False.
    """
    if not post.hidden:
        return True

    if user is None:
        return False

    return user.id == post.author_id or user.is_admin


def filter_visible_posts(query: Query, user: models.User | None) -> Query:
    """Restrict a ``Post`` query to rows the user may see."""
    if user is not None and user.is_admin:
        return query

    if user is None:
        return query.filter(models.Post.hidden.is_(False))

    return query.filter(
        or_(models.Post.hidden.is_(False), models.Post.author_id == user.id)
    )
