"""Admin dashboard statistics."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..settings import DASHBOARD_ACTIVITY_DAYS, DASHBOARD_TOP_REPORTED_USERS


def post_activity(db: Session, days: int = DASHBOARD_ACTIVITY_DAYS) -> list[schemas.PlatformActivity]:
    """Number of posts per calendar day (UTC) over the last ``days`` days, oldest first."""
    since = models.utcnow() - timedelta(days=days)
    day = func.date(models.Post.created_at)
    rows = (
        db.query(day, func.count(models.Post.id))
        .filter(models.Post.created_at >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [schemas.PlatformActivity(date=str(d), count=count) for d, count in rows]


def most_reported_users(
    db: Session, limit: int = DASHBOARD_TOP_REPORTED_USERS
) -> list[schemas.ReportedUser]:
    report_count = func.count(models.Report.id)
    rows = (
        db.query(models.User, report_count)
        .join(models.Report, models.Report.reported_user_id == models.User.id)
        .group_by(models.User.id)
        .order_by(report_count.desc(), models.User.id)
        .limit(limit)
        .all()
    )
    return [
        schemas.ReportedUser(
            id=user.id,
            name=user.full_name,
            username=user.username,
            avatar=user.avatar,
            report_count=count,
            status="Banned" if user.banned else "Active",
        )
        for user, count in rows
    ]


def get_dashboard_stats(db: Session) -> schemas.DashboardStats:
    def count(column, *criteria) -> int:
        return db.query(func.count(column)).filter(*criteria).scalar() or 0

    return schemas.DashboardStats(
        total_users=count(models.User.id),
        total_posts=count(models.Post.id),
        total_reports=count(models.Report.id),
        banned_users=count(models.User.id, models.User.banned.is_(True)),
        pending_reports=count(models.Report.id, models.Report.status == models.REPORT_PENDING),
        activity=post_activity(db),
        most_reported_users=most_reported_users(db),
    )
