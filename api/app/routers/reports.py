"""Report management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..auth import ensure_not_banned, get_current_user, require_admin
from ..deps import get_db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import accounts
from ..services import posts as post_service

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = logging.getLogger(__name__)

DUPLICATE_REPORT = "You have already reported this"


def _to_schema(report: models.Report) -> schemas.Report:
    post = report.reported_post
    return schemas.Report(
        id=report.id,
        reason=report.reason,
        reporter=accounts.to_summary(report.reporter),
        reported_user=accounts.to_summary(report.reported_user) if report.reported_user else None,
        reported_post_id=post.id if post else None,
        reported_post_title=post.title if post else None,
        reported_post_image=post.images[0] if post and post.images else None,
        reported_post_author=accounts.to_summary(post.author) if post else None,
        status=report.status,
        created_at=report.created_at,
    )


@router.post(
    "",
    response_model=schemas.Report,
    status_code=status.HTTP_201_CREATED,
)
def create_report(
    payload: schemas.ReportCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Report:
    """
    Report a user or a post.

    Exactly one target must be given. Reporting yourself or your own post is
    rejected, and each reporter may report a given user or post only once.
    """
    ensure_not_banned(current_user, "submit reports")

    if (payload.reported_user_id is None) == (payload.reported_post_id is None):
        raise ValidationError("Report exactly one user or one post")

    reason = payload.reason.strip()
    if len(reason) < 10:
        raise ValidationError("Reason must be between 10 and 500 characters")

    report = models.Report(
        reason=reason,
        reporter_id=current_user.id,
        status=models.REPORT_PENDING,
    )

    if payload.reported_user_id is not None:
        target = accounts.get_user_or_404(db, payload.reported_user_id)
        if target.id == current_user.id:
            raise ValidationError("You cannot report yourself")
        duplicate = models.Report.reported_user_id == target.id
        report.reported_user_id = target.id
    else:
        post = post_service.get_visible_post_or_404(db, payload.reported_post_id, current_user)
        if post.author_id == current_user.id:
            raise ValidationError("You cannot report your own post")
        duplicate = models.Report.reported_post_id == post.id
        report.reported_post_id = post.id

    exists = (
        db.query(models.Report.id)
        .filter(models.Report.reporter_id == current_user.id, duplicate)
        .first()
    )
    if exists:
        raise ConflictError(DUPLICATE_REPORT)

    db.add(report)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent identical report
        db.rollback()
        raise ConflictError(DUPLICATE_REPORT)
    db.refresh(report)

    logger.info(f"User {current_user.id} filed report {report.id}")
    return _to_schema(report)


@router.get("", response_model=list[schemas.Report], tags=["Reports", "Admin"])
def list_reports(
    status_filter: schemas.ReportStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
) -> list[schemas.Report]:
    """List reports, newest first (admin only)."""
    query = db.query(models.Report).options(
        joinedload(models.Report.reporter),
        joinedload(models.Report.reported_user),
        joinedload(models.Report.reported_post).joinedload(models.Post.author),
    )

    if status_filter:
        query = query.filter(models.Report.status == status_filter)

    reports = query.order_by(models.Report.created_at.desc(), models.Report.id.desc()).all()
    return [_to_schema(r) for r in reports]


@router.put("/{report_id}/status", response_model=schemas.Report, tags=["Reports", "Admin"])
def update_report_status(
    report_id: int,
    payload: schemas.ReportStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.Report:
    """Change a report's status (admin only)."""
    report = db.query(models.Report).filter(models.Report.id == report_id).first()
    if not report:
        raise NotFoundError("Report not found")

    report.status = payload.status
    db.commit()
    db.refresh(report)

    logger.info(f"Admin {admin.id} set report {report.id} to {report.status}")
    return _to_schema(report)
