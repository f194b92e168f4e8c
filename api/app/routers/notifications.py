"""Notification feed endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=schemas.Page[schemas.Notification])
def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Cursor from the previous page"),
    unread_only: bool = Query(False, description="Only return unread notifications"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Page[schemas.Notification]:
    """
    List notifications for the current user.

    Returns notifications in reverse chronological order with cursor-based pagination.
    """
    notifications, next_cursor = NotificationService.list_notifications(
        db=db,
        user_id=current_user.id,
        limit=limit,
        cursor=cursor,
        unread_only=unread_only,
    )

    return schemas.Page(
        items=[NotificationService.to_schema(n) for n in notifications],
        next_cursor=next_cursor,
    )


@router.get("/unread-count", response_model=schemas.NotificationUnreadCount)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.NotificationUnreadCount:
    """Get unread notification count for the current user."""
    count = NotificationService.get_unread_count(db, current_user.id)
    return schemas.NotificationUnreadCount(unread_count=count)


@router.put("/read-all", status_code=status.HTTP_204_NO_CONTENT)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    """Mark all notifications as read for the current user."""
    NotificationService.mark_all_as_read(db, current_user.id)


@router.put("/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Notification:
    """
    Mark a notification as read.

    Returns 404 if the notification doesn't exist or doesn't belong to the user.
    """
    notification = NotificationService.mark_as_read(db, notification_id, current_user.id)
    return NotificationService.to_schema(notification)
