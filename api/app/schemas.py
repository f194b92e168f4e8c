from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .settings import MAX_POST_IMAGES


# ============================================================================
# BASE SCHEMAS
# ============================================================================


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Generic paginated response."""

    items: list[T]
    next_cursor: str | None = None


RoleName = Literal["USER", "ADMIN"]
ReportStatus = Literal["PENDING", "UNDER_REVIEW", "RESOLVED", "DISMISSED"]
NotificationType = Literal["LIKE", "COMMENT", "FOLLOW", "NEW_POST", "SYSTEM"]


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# USER SCHEMAS
# ============================================================================


NAME_PATTERN = r"^[A-Za-z\-']{2,50}$"
EMAIL_PATTERN = r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$"


class UserSummary(BaseModel):
    """Compact author block embedded in posts, comments and reports."""

    id: int
    name: str
    handle: str
    avatar: str | None = None
    role: RoleName
    banned: bool = False


class UserProfile(BaseModel):
    """Public profile with follow state relative to the viewer."""

    id: int
    firstname: str
    lastname: str
    name: str
    handle: str
    username: str
    email: str
    role: RoleName
    avatar: str | None = None
    cover: str | None = None
    bio: str | None = None
    created_at: datetime
    subscribed: bool = False
    banned: bool = False
    is_following: bool = False
    followers_count: int = 0
    following_count: int = 0
    post_count: int = 0


class ProfileFields(BaseModel):
    """Editable profile fields. Omitted fields are left unchanged."""

    firstname: str | None = None
    lastname: str | None = None
    bio: str | None = None
    avatar: str | None = None
    cover: str | None = None


class ProfileUpdate(ProfileFields):
    """Update own profile, including the new-post subscription."""

    subscribed: bool | None = None


class AdminUserUpdate(ProfileFields):
    """Admin edit of any user's profile and role. Subscription stays the user's choice."""

    role: RoleName | None = None


# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    """Self-registration request. The role is always USER."""

    firstname: str = Field(..., pattern=NAME_PATTERN)
    lastname: str = Field(..., pattern=NAME_PATTERN)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """User login request - email and password."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class AuthResponse(BaseModel):
    """Access token issued on register/login (also set as the auth cookie)."""

    token: str
    token_type: Literal["bearer"] = "bearer"
    user: UserProfile


# ============================================================================
# POST SCHEMAS
# ============================================================================


class PostCreate(BaseModel):
    """Create or replace post request."""

    title: str = Field(..., min_length=3, max_length=150)
    content: str = Field(..., min_length=3, max_length=10000)
    category: str | None = Field(None, max_length=100)
    read_time: str | None = Field(None, max_length=50)
    images: list[str] = Field(default_factory=list, max_length=MAX_POST_IMAGES)
    tags: list[str] = Field(default_factory=list, max_length=20)


class Post(BaseModel):
    """Post as seen by a particular viewer."""

    id: int
    user: UserSummary
    time: str  # Relative label: "Just now", "5m ago", ...
    read_time: str | None = None
    title: str
    content: str
    images: list[str] = []
    category: str | None = None
    tags: list[str] = []
    likes: int = 0
    comments: int = 0
    is_liked: bool = False
    can_edit: bool = False
    can_delete: bool = False
    reports_count: int = 0
    hidden: bool = False
    created_at: datetime
    updated_at: datetime | None = None


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class CommentCreate(BaseModel):
    """Create comment request."""

    content: str = Field(..., min_length=1, max_length=1000)


class Comment(BaseModel):
    """Comment on a post."""

    id: int
    post_id: int
    user: UserSummary
    content: str
    time: str
    likes: int = 0
    is_liked: bool = False
    can_delete: bool = False
    created_at: datetime


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================


class Notification(BaseModel):
    """Feed item for the recipient."""

    id: int
    type: NotificationType
    entity_id: int | None = None
    actor_id: int
    actor_name: str
    actor_avatar: str | None = None
    message: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationUnreadCount(BaseModel):
    """Unread notification count."""

    unread_count: int


# ============================================================================
# REPORT SCHEMAS
# ============================================================================


class ReportCreate(BaseModel):
    """Create report request. Exactly one target must be given."""

    reason: str = Field(..., min_length=10, max_length=500)
    reported_user_id: int | None = None
    reported_post_id: int | None = None


class ReportStatusUpdate(BaseModel):
    """Update report status request (admin only)."""

    status: ReportStatus


class Report(BaseModel):
    """Content moderation report."""

    id: int
    reason: str
    reporter: UserSummary
    reported_user: UserSummary | None = None
    reported_post_id: int | None = None
    reported_post_title: str | None = None
    reported_post_image: str | None = None
    reported_post_author: UserSummary | None = None
    status: ReportStatus
    created_at: datetime


# ============================================================================
# ADMIN DASHBOARD SCHEMAS
# ============================================================================


class PlatformActivity(BaseModel):
    """Number of posts created on one day."""

    date: str
    count: int


class ReportedUser(BaseModel):
    """User ranked by the number of reports against them."""

    id: int
    name: str
    username: str
    avatar: str | None = None
    report_count: int
    status: Literal["Active", "Banned"]


class DashboardStats(BaseModel):
    """Admin dashboard statistics."""

    total_users: int
    total_posts: int
    total_reports: int
    banned_users: int
    pending_reports: int
    activity: list[PlatformActivity] = []
    most_reported_users: list[ReportedUser] = []


# ============================================================================
# SEARCH SCHEMAS
# ============================================================================


class SearchResults(BaseModel):
    """Search results. A list is omitted when its type was not searched."""

    posts: list[Post] | None = None
    users: list[UserProfile] | None = None
