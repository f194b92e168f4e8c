"""
Posts and comments.

Views are built in batches: one aggregate query per count (likes, comments,
reports) for a whole page of posts instead of one per post.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..errors import NotFoundError, ValidationError
from ..pagination import apply_id_cursor, encode_cursor
from ..utils.visibility import can_access_post, filter_visible_posts
from . import accounts, social_graph
from .notifications import NotificationService

logger = logging.getLogger(__name__)


def time_ago(value: datetime, now: datetime | None = None) -> str:
    """Relative label for a timestamp: "Just now", "5m ago", "3h ago", "2d ago" or the date."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - value).total_seconds())

    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return value.date().isoformat()


# ============================================================================
# POST LOOKUPS
# ============================================================================


def get_post_or_404(db: Session, post_id: int) -> models.Post:
    post = db.query(models.Post).filter(models.Post.id == post_id).first()
    if not post:
        raise NotFoundError("Post not found")
    return post


def get_visible_post_or_404(
    db: Session, post_id: int, viewer: models.User | None
) -> models.Post:
    """Hidden posts answer 404 to viewers who are neither the owner nor an admin."""
    post = get_post_or_404(db, post_id)
    if not can_access_post(post, viewer):
        raise NotFoundError("Post not found")
    return post


def _page(query, cursor: str | None, limit: int) -> tuple[list[models.Post], str | None]:
    query = apply_id_cursor(query, models.Post.id, cursor)
    posts = (
        query.options(joinedload(models.Post.author))
        .order_by(models.Post.id.desc())
        .limit(limit + 1)
        .all()
    )
    has_more = len(posts) > limit
    items = posts[:limit]
    next_cursor = encode_cursor(items[-1].id) if has_more and items else None
    return items, next_cursor


def list_posts(
    db: Session, viewer: models.User | None, cursor: str | None, limit: int
) -> tuple[list[models.Post], str | None]:
    query = filter_visible_posts(db.query(models.Post), viewer)
    return _page(query, cursor, limit)


def list_user_posts(
    db: Session, author_id: int, viewer: models.User | None, cursor: str | None, limit: int
) -> tuple[list[models.Post], str | None]:
    accounts.get_user_or_404(db, author_id)
    query = filter_visible_posts(
        db.query(models.Post).filter(models.Post.author_id == author_id), viewer
    )
    return _page(query, cursor, limit)


def list_feed(
    db: Session, viewer: models.User, cursor: str | None, limit: int
) -> tuple[list[models.Post], str | None]:
    """Posts by the users the viewer follows, newest first."""
    query = filter_visible_posts(
        db.query(models.Post).filter(
            models.Post.author_id.in_(social_graph.following_ids(viewer.id))
        ),
        viewer,
    )
    return _page(query, cursor, limit)


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """LIKE pattern matching ``term`` literally anywhere in the value."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def search_posts(
    db: Session, term: str, viewer: models.User | None, limit: int
) -> list[models.Post]:
    """Case-insensitive match on title or category."""
    pattern = contains_pattern(term)
    query = filter_visible_posts(
        db.query(models.Post).filter(
            models.Post.title.ilike(pattern, escape=LIKE_ESCAPE)
            | models.Post.category.ilike(pattern, escape=LIKE_ESCAPE)
        ),
        viewer,
    )
    return (
        query.options(joinedload(models.Post.author))
        .order_by(models.Post.id.desc())
        .limit(limit)
        .all()
    )


# ============================================================================
# POST VIEWS
# ============================================================================


def to_views(
    db: Session, posts: list[models.Post], viewer: models.User | None
) -> list[schemas.Post]:
    if not posts:
        return []
    post_ids = [p.id for p in posts]

    like_counts = dict(
        db.query(models.PostLike.post_id, func.count())
        .filter(models.PostLike.post_id.in_(post_ids))
        .group_by(models.PostLike.post_id)
        .all()
    )
    comment_counts = dict(
        db.query(models.Comment.post_id, func.count(models.Comment.id))
        .filter(models.Comment.post_id.in_(post_ids))
        .group_by(models.Comment.post_id)
        .all()
    )
    report_counts = dict(
        db.query(models.Report.reported_post_id, func.count(models.Report.id))
        .filter(models.Report.reported_post_id.in_(post_ids))
        .group_by(models.Report.reported_post_id)
        .all()
    )
    liked: set[int] = set()
    if viewer is not None:
        liked = {
            pid
            for (pid,) in db.query(models.PostLike.post_id).filter(
                models.PostLike.post_id.in_(post_ids),
                models.PostLike.user_id == viewer.id,
            )
        }

    now = datetime.now(timezone.utc)
    views = []
    for post in posts:
        is_owner = viewer is not None and viewer.id == post.author_id
        views.append(
            schemas.Post(
                id=post.id,
                user=accounts.to_summary(post.author),
                time=time_ago(post.created_at, now),
                read_time=post.read_time,
                title=post.title,
                content=post.content,
                images=list(post.images or []),
                category=post.category,
                tags=list(post.tags or []),
                likes=like_counts.get(post.id, 0),
                comments=comment_counts.get(post.id, 0),
                is_liked=post.id in liked,
                can_edit=is_owner,
                can_delete=is_owner or (viewer is not None and viewer.is_admin),
                reports_count=report_counts.get(post.id, 0),
                hidden=bool(post.hidden),
                created_at=post.created_at,
                updated_at=post.updated_at,
            )
        )
    return views


def to_view(db: Session, post: models.Post, viewer: models.User | None) -> schemas.Post:
    return to_views(db, [post], viewer)[0]


# ============================================================================
# POST MUTATIONS
# ============================================================================


def _clean_images(images: list[str]) -> list[str]:
    cleaned = []
    for image in images:
        url = accounts.clean_media_url(image, "Image")
        if url:
            cleaned.append(url)
    return cleaned


def _clean_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        tag = (tag or "").strip()
        if not tag:
            continue
        if len(tag) > 50:
            raise ValidationError("Tags must be at most 50 characters")
        if tag not in seen:
            seen.append(tag)
    return seen


def _apply_fields(post: models.Post, payload: schemas.PostCreate) -> None:
    title = payload.title.strip()
    content = payload.content.strip()
    if len(title) < 3:
        raise ValidationError("Title must be between 3 and 150 characters")
    if len(content) < 3:
        raise ValidationError("Content must be at least 3 characters")

    post.title = title
    post.content = content
    post.category = (payload.category or "").strip() or None
    post.read_time = (payload.read_time or "").strip() or None
    post.images = _clean_images(payload.images)
    post.tags = _clean_tags(payload.tags)


def create_post(db: Session, author: models.User, payload: schemas.PostCreate) -> models.Post:
    """Create a post and notify the author's subscribed followers."""
    post = models.Post(author_id=author.id, hidden=False)
    _apply_fields(post, payload)
    db.add(post)
    db.flush()

    NotificationService.fan_out(
        db,
        social_graph.subscribed_follower_ids(db, author.id),
        author,
        models.NOTIFICATION_NEW_POST,
        post.id,
    )

    db.commit()
    db.refresh(post)
    logger.info(f"User {author.id} created post {post.id}")
    return post


def update_post(db: Session, post: models.Post, payload: schemas.PostCreate) -> models.Post:
    _apply_fields(post, payload)
    post.updated_at = models.utcnow()
    db.commit()
    db.refresh(post)
    return post


def toggle_hidden(db: Session, post: models.Post) -> models.Post:
    post.hidden = not post.hidden
    db.commit()
    db.refresh(post)
    logger.info(f"Post {post.id} hidden={post.hidden}")
    return post


def delete_comments(db: Session, comment_ids: list[int]) -> int:
    """Delete comments and the likes on them. Does not commit."""
    if not comment_ids:
        return 0
    db.query(models.CommentLike).filter(models.CommentLike.comment_id.in_(comment_ids)).delete(
        synchronize_session=False
    )
    return (
        db.query(models.Comment)
        .filter(models.Comment.id.in_(comment_ids))
        .delete(synchronize_session=False)
    )


def delete_posts(db: Session, post_ids: list[int]) -> int:
    """
    Delete posts with their comments, likes, reports and post notifications.

    Does not commit.
    """
    if not post_ids:
        return 0

    comment_ids = [
        cid for (cid,) in db.query(models.Comment.id).filter(models.Comment.post_id.in_(post_ids))
    ]
    delete_comments(db, comment_ids)

    db.query(models.PostLike).filter(models.PostLike.post_id.in_(post_ids)).delete(
        synchronize_session=False
    )
    db.query(models.Report).filter(models.Report.reported_post_id.in_(post_ids)).delete(
        synchronize_session=False
    )
    for post_id in post_ids:
        NotificationService.delete_for_post(db, post_id)

    return (
        db.query(models.Post)
        .filter(models.Post.id.in_(post_ids))
        .delete(synchronize_session=False)
    )


def delete_post(db: Session, post: models.Post) -> None:
    post_id = post.id
    delete_posts(db, [post_id])
    db.commit()
    logger.info(f"Deleted post {post_id}")


# ============================================================================
# COMMENTS
# ============================================================================


def get_comment_or_404(db: Session, comment_id: int) -> models.Comment:
    comment = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.post))
        .filter(models.Comment.id == comment_id)
        .first()
    )
    if not comment:
        raise NotFoundError("Comment not found")
    return comment


def list_comments(db: Session, post_id: int) -> list[models.Comment]:
    return (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(models.Comment.post_id == post_id)
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
        .all()
    )


def add_comment(
    db: Session, post: models.Post, author: models.User, payload: schemas.CommentCreate
) -> models.Comment:
    """Add a comment and notify the post author."""
    content = payload.content.strip()
    if not content:
        raise ValidationError("Comment cannot be empty")

    comment = models.Comment(post_id=post.id, author_id=author.id, content=content)
    db.add(comment)
    db.flush()

    NotificationService.create(
        db, post.author_id, author, models.NOTIFICATION_COMMENT, post.id
    )

    db.commit()
    db.refresh(comment)
    return comment


def can_delete_comment(comment: models.Comment, user: models.User) -> bool:
    """Comment author, post author or admin."""
    return (
        user.id == comment.author_id
        or user.id == comment.post.author_id
        or user.is_admin
    )


def delete_comment(db: Session, comment: models.Comment) -> None:
    comment_id = comment.id
    delete_comments(db, [comment_id])
    db.commit()
    logger.info(f"Deleted comment {comment_id}")


def to_comment_views(
    db: Session, comments: list[models.Comment], viewer: models.User | None
) -> list[schemas.Comment]:
    if not comments:
        return []
    comment_ids = [c.id for c in comments]

    like_counts = dict(
        db.query(models.CommentLike.comment_id, func.count())
        .filter(models.CommentLike.comment_id.in_(comment_ids))
        .group_by(models.CommentLike.comment_id)
        .all()
    )
    liked: set[int] = set()
    if viewer is not None:
        liked = {
            cid
            for (cid,) in db.query(models.CommentLike.comment_id).filter(
                models.CommentLike.comment_id.in_(comment_ids),
                models.CommentLike.user_id == viewer.id,
            )
        }

    now = datetime.now(timezone.utc)
    return [
        schemas.Comment(
            id=c.id,
            post_id=c.post_id,
            user=accounts.to_summary(c.author),
            content=c.content,
            time=time_ago(c.created_at, now),
            likes=like_counts.get(c.id, 0),
            is_liked=c.id in liked,
            can_delete=viewer is not None and can_delete_comment(c, viewer),
            created_at=c.created_at,
        )
        for c in comments
    ]
