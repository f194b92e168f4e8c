"""User accounts: credentials, profile rules, views and deletion."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ConflictError, NotFoundError, ValidationError
from ..settings import MAX_BIO_LENGTH, MAX_MEDIA_URL_LENGTH
from . import social_graph
from .notifications import NotificationService

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

NAME_RE = re.compile(schemas.NAME_PATTERN)
EMAIL_RE = re.compile(schemas.EMAIL_PATTERN)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ============================================================================
# VALIDATION
# ============================================================================


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store them trimmed and lower-cased."""
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Email is required")
    if not EMAIL_RE.match(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def clean_name(value: str, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field_name} is required")
    if not NAME_RE.match(cleaned):
        raise ValidationError(f"{field_name} must contain only letters and be 2-50 characters")
    return cleaned


def clean_bio(value: str) -> str | None:
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_BIO_LENGTH:
        raise ValidationError(f"Bio must be less than {MAX_BIO_LENGTH} characters")
    return cleaned


def is_allowed_media_url(value: str) -> bool:
    """http(s) URLs and base64 image/video data URLs are accepted."""
    lowered = value.lower()
    if lowered.startswith("data:image/") or lowered.startswith("data:video/"):
        return True
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


def clean_media_url(value: str, field_name: str) -> str | None:
    """Blank clears the field; anything else must be an allowed media URL."""
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_MEDIA_URL_LENGTH:
        raise ValidationError(
            f"{field_name} URL must be less than {MAX_MEDIA_URL_LENGTH} characters"
        )
    if not is_allowed_media_url(cleaned):
        raise ValidationError(
            f"{field_name} URL must be an http(s) URL or base64 image/video data URL"
        )
    return cleaned


# ============================================================================
# LOOKUPS
# ============================================================================


def get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


# ============================================================================
# REGISTRATION / LOGIN
# ============================================================================


def register_user(db: Session, payload: schemas.RegisterRequest) -> models.User:
    """Create a USER account. Duplicate emails answer 409."""
    email = validate_email(payload.email)
    firstname = clean_name(payload.firstname, "First name")
    lastname = clean_name(payload.lastname, "Last name")

    if get_user_by_email(db, email):
        raise ConflictError("Invalid email use a different email")

    user = models.User(
        firstname=firstname,
        lastname=lastname,
        email=email,
        password_hash=hash_password(payload.password),
        role=models.ROLE_USER,
        banned=False,
        subscribed=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return user


def authenticate_user(db: Session, email: str, password: str) -> models.User | None:
    """
    Return the user for valid credentials, None otherwise.

    The ban check is the caller's, after the credentials have been verified.
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def ensure_admin_account(db: Session, email: str, password: str) -> models.User:
    """Create the bootstrap admin, or promote the existing account with that email."""
    email = validate_email(email)
    user = get_user_by_email(db, email)
    if user:
        if not user.is_admin:
            user.role = models.ROLE_ADMIN
            db.commit()
            logger.info(f"Promoted user {user.id} to admin")
        return user

    user = models.User(
        firstname="Admin",
        lastname="User",
        email=email,
        password_hash=hash_password(password),
        role=models.ROLE_ADMIN,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created bootstrap admin user {user.id}")
    return user


# ============================================================================
# PROFILE
# ============================================================================


def apply_profile_update(user: models.User, payload: schemas.ProfileFields) -> None:
    """Copy the provided fields onto the user, validating each one."""
    if payload.firstname is not None:
        user.firstname = clean_name(payload.firstname, "First name")
    if payload.lastname is not None:
        user.lastname = clean_name(payload.lastname, "Last name")
    if payload.bio is not None:
        user.bio = clean_bio(payload.bio)
    if payload.avatar is not None:
        user.avatar = clean_media_url(payload.avatar, "Avatar")
    if payload.cover is not None:
        user.cover = clean_media_url(payload.cover, "Cover")
    if isinstance(payload, schemas.ProfileUpdate) and payload.subscribed is not None:
        user.subscribed = payload.subscribed
    if isinstance(payload, schemas.AdminUserUpdate) and payload.role is not None:
        user.role = payload.role


def to_summary(user: models.User) -> schemas.UserSummary:
    return schemas.UserSummary(
        id=user.id,
        name=user.full_name,
        handle=f"@{user.username}",
        avatar=user.avatar,
        role=user.role,
        banned=bool(user.banned),
    )


def to_profiles(
    db: Session, users: list[models.User], viewer: models.User | None
) -> list[schemas.UserProfile]:
    """Build profiles for many users with one count query per relation."""
    if not users:
        return []
    user_ids = [u.id for u in users]

    followers = dict(
        db.query(models.Follow.following_id, func.count(models.Follow.id))
        .filter(models.Follow.following_id.in_(user_ids))
        .group_by(models.Follow.following_id)
        .all()
    )
    following = dict(
        db.query(models.Follow.follower_id, func.count(models.Follow.id))
        .filter(models.Follow.follower_id.in_(user_ids))
        .group_by(models.Follow.follower_id)
        .all()
    )
    post_counts = dict(
        db.query(models.Post.author_id, func.count(models.Post.id))
        .filter(models.Post.author_id.in_(user_ids))
        .group_by(models.Post.author_id)
        .all()
    )
    followed_by_viewer = social_graph.viewer_following_set(
        db, viewer.id if viewer else None, user_ids
    )

    return [
        schemas.UserProfile(
            id=u.id,
            firstname=u.firstname,
            lastname=u.lastname,
            name=u.full_name,
            handle=f"@{u.username}",
            username=u.username,
            email=u.email,
            role=u.role,
            avatar=u.avatar,
            cover=u.cover,
            bio=u.bio,
            created_at=u.created_at,
            subscribed=bool(u.subscribed),
            banned=bool(u.banned),
            is_following=u.id in followed_by_viewer,
            followers_count=followers.get(u.id, 0),
            following_count=following.get(u.id, 0),
            post_count=post_counts.get(u.id, 0),
        )
        for u in users
    ]


def to_profile(db: Session, user: models.User, viewer: models.User | None) -> schemas.UserProfile:
    return to_profiles(db, [user], viewer)[0]


# ============================================================================
# DELETION
# ============================================================================


def delete_user(db: Session, user: models.User) -> None:
    """
    Delete a user and everything that references them, then commit.

    Order: follow edges, the user's likes, notifications (as recipient and
    actor), reports by/against the user or their posts, their comments on
    other posts, their posts with all post-owned rows, and finally the user.
    """
    from .posts import delete_comments, delete_posts

    user_id = user.id

    social_graph.delete_edges_for_user(db, user_id)

    db.query(models.PostLike).filter(models.PostLike.user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(models.CommentLike).filter(models.CommentLike.user_id == user_id).delete(
        synchronize_session=False
    )

    NotificationService.delete_for_user(db, user_id)

    post_ids = [
        pid for (pid,) in db.query(models.Post.id).filter(models.Post.author_id == user_id)
    ]
    report_filter = (models.Report.reporter_id == user_id) | (
        models.Report.reported_user_id == user_id
    )
    if post_ids:
        report_filter = report_filter | models.Report.reported_post_id.in_(post_ids)
    db.query(models.Report).filter(report_filter).delete(synchronize_session=False)

    comment_ids = [
        cid for (cid,) in db.query(models.Comment.id).filter(models.Comment.author_id == user_id)
    ]
    delete_comments(db, comment_ids)
    delete_posts(db, post_ids)

    db.query(models.User).filter(models.User.id == user_id).delete(synchronize_session=False)
    db.commit()

    logger.info(
        f"Deleted user {user_id} with {len(post_ids)} post(s) and {len(comment_ids)} comment(s)"
    )
