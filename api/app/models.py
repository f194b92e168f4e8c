from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Role / status / type values are stored as plain strings.
ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"

REPORT_PENDING = "PENDING"
REPORT_UNDER_REVIEW = "UNDER_REVIEW"
REPORT_RESOLVED = "RESOLVED"
REPORT_DISMISSED = "DISMISSED"

NOTIFICATION_LIKE = "LIKE"
NOTIFICATION_COMMENT = "COMMENT"
NOTIFICATION_FOLLOW = "FOLLOW"
NOTIFICATION_NEW_POST = "NEW_POST"
NOTIFICATION_SYSTEM = "SYSTEM"

# Notification types whose entity_id is a post id
POST_NOTIFICATION_TYPES = (NOTIFICATION_LIKE, NOTIFICATION_COMMENT, NOTIFICATION_NEW_POST)


# ============================================================================
# IDENTITY
# ============================================================================


class User(Base):
    """User account with credentials, role and profile information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    firstname = Column(String(50), nullable=False)
    lastname = Column(String(50), nullable=False)
    email = Column(
        String(255), unique=True, nullable=False, index=True
    )  # Stored trimmed and lower-cased
    password_hash = Column(String(255), nullable=False)

    bio = Column(Text, nullable=True)
    avatar = Column(Text, nullable=True)  # http(s) or data: URL
    cover = Column(Text, nullable=True)

    role = Column(String(20), nullable=False, default=ROLE_USER, index=True)
    banned = Column(Boolean, nullable=False, default=False, index=True)
    subscribed = Column(
        Boolean, nullable=False, default=False
    )  # Followers get NEW_POST notifications only when set

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    posts = relationship("Post", back_populates="author", foreign_keys="Post.author_id")
    comments = relationship(
        "Comment", back_populates="author", foreign_keys="Comment.author_id"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()

    @property
    def username(self) -> str:
        return self.email.split("@")[0] if self.email else ""


# ============================================================================
# CONTENT
# ============================================================================


class Post(Base):
    """Blog post written by a user."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Content
    title = Column(String(150), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    read_time = Column(String(50), nullable=True)  # Display label, e.g. "5 min read"
    images = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    # Visibility
    hidden = Column(Boolean, nullable=False, default=False, index=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=True, default=utcnow, onupdate=utcnow
    )

    # Relationships
    author = relationship("User", back_populates="posts", foreign_keys=[author_id])
    comments = relationship(
        "Comment", back_populates="post", order_by="Comment.created_at.desc()"
    )

    __table_args__ = (
        Index("ix_posts_author_created", author_id, created_at.desc()),
        Index("ix_posts_hidden_created", hidden, created_at.desc()),
    )


class Comment(Base):
    """Comment on a post."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    # Relationships
    post = relationship("Post", back_populates="comments")
    author = relationship("User", back_populates="comments", foreign_keys=[author_id])

    __table_args__ = (Index("ix_comments_post_created", post_id, created_at.desc()),)


# ============================================================================
# SOCIAL FEATURES
# ============================================================================


class PostLike(Base):
    """A user's like on a post. One row per (post, user)."""

    __tablename__ = "post_likes"

    post_id = Column(Integer, ForeignKey("posts.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class CommentLike(Base):
    """A user's like on a comment. One row per (comment, user)."""

    __tablename__ = "comment_likes"

    comment_id = Column(Integer, ForeignKey("comments.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class Follow(Base):
    """User following relationship (one row per directed edge)."""

    __tablename__ = "follows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    following_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    __table_args__ = (
        UniqueConstraint(
            "follower_id", "following_id", name="uq_follow_follower_following"
        ),
        CheckConstraint("follower_id <> following_id", name="ck_follow_not_self"),
        Index("ix_follows_following_created", following_id, created_at.desc()),
    )


class Notification(Base):
    """Feed event delivered to a recipient as a side effect of another user's action."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    entity_id = Column(Integer, nullable=True)  # Post id, or actor id for FOLLOW
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    # Relationships
    recipient = relationship("User", foreign_keys=[recipient_id])
    actor = relationship("User", foreign_keys=[actor_id])

    __table_args__ = (
        Index("ix_notifications_recipient_created", recipient_id, created_at.desc()),
        Index("ix_notifications_type_entity", type, entity_id),
    )


# ============================================================================
# MODERATION
# ============================================================================


class Report(Base):
    """User-submitted report against another user or a post."""

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    reason = Column(Text, nullable=False)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reported_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    reported_post_id = Column(Integer, ForeignKey("posts.id"), nullable=True, index=True)

    status = Column(String(20), nullable=False, default=REPORT_PENDING, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    # Relationships
    reporter = relationship("User", foreign_keys=[reporter_id])
    reported_user = relationship("User", foreign_keys=[reported_user_id])
    reported_post = relationship("Post", foreign_keys=[reported_post_id])

    __table_args__ = (
        UniqueConstraint(
            "reporter_id", "reported_user_id", name="uq_reports_reporter_reported_user"
        ),
        UniqueConstraint(
            "reporter_id", "reported_post_id", name="uq_reports_reporter_reported_post"
        ),
        Index("ix_reports_status_created", status, created_at.desc()),
    )
