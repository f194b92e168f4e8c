"""
Notification Service.

Creates, retracts and reads the per-user notification feed. Notifications are
written in the caller's session and committed together with the interaction
that produced them, so the triggering request never returns before its
notification exists.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import event, func
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..cache import cache_delete, cache_get_int, cache_set_int
from ..errors import NotFoundError
from ..pagination import apply_time_cursor, encode_cursor

logger = logging.getLogger(__name__)

# Cache key patterns
UNREAD_COUNT_KEY = "notif:unread:{user_id}"
UNREAD_COUNT_TTL = 300

# Session.info slot holding user ids whose counter is stale after commit
_PENDING_UNREAD_KEY = "notifications.unread_stale"

MESSAGES = {
    models.NOTIFICATION_LIKE: "liked your post.",
    models.NOTIFICATION_COMMENT: "commented on your post.",
    models.NOTIFICATION_FOLLOW: "started following you.",
    models.NOTIFICATION_NEW_POST: "published a new post.",
    models.NOTIFICATION_SYSTEM: "sent a system alert.",
}


class NotificationService:
    """Service for managing notifications."""

    @staticmethod
    def create(
        db: Session,
        recipient_id: int,
        actor: models.User,
        notification_type: str,
        entity_id: int | None = None,
    ) -> models.Notification | None:
        """
        Add a notification to the session.

        Returns:
            Created notification, or None if skipped (self-action)
        """
        # Don't notify users about their own actions
        if actor.id == recipient_id:
            logger.debug(f"Skipping self-notification for user {recipient_id}")
            return None

        notification = models.Notification(
            recipient_id=recipient_id,
            actor_id=actor.id,
            type=notification_type,
            entity_id=entity_id,
            is_read=False,
        )
        db.add(notification)
        db.flush()

        logger.info(
            f"Created {notification_type} notification {notification.id} for user {recipient_id}"
        )
        NotificationService._invalidate_unread_count(db, recipient_id)
        return notification

    @staticmethod
    def fan_out(
        db: Session,
        recipient_ids: Iterable[int],
        actor: models.User,
        notification_type: str,
        entity_id: int | None = None,
    ) -> int:
        """
        Notify many recipients of the same event with one bulk insert.

        Returns:
            Number of notifications created
        """
        recipients = sorted({rid for rid in recipient_ids if rid != actor.id})
        if not recipients:
            return 0

        now = models.utcnow()
        db.bulk_insert_mappings(
            models.Notification,
            [
                {
                    "recipient_id": rid,
                    "actor_id": actor.id,
                    "type": notification_type,
                    "entity_id": entity_id,
                    "is_read": False,
                    "created_at": now,
                }
                for rid in recipients
            ],
        )

        logger.info(
            f"Fanned out {notification_type} notification from user {actor.id} "
            f"to {len(recipients)} recipient(s)"
        )
        NotificationService._invalidate_unread_count(db, *recipients)
        return len(recipients)

    @staticmethod
    def retract(
        db: Session,
        recipient_id: int,
        actor_id: int,
        notification_type: str,
        entity_id: int | None,
    ) -> int:
        """
        Delete the notifications matching recipient, actor, type and entity exactly.

        Returns:
            Number of notifications removed
        """
        count = (
            db.query(models.Notification)
            .filter(
                models.Notification.recipient_id == recipient_id,
                models.Notification.actor_id == actor_id,
                models.Notification.type == notification_type,
                models.Notification.entity_id == entity_id,
            )
            .delete(synchronize_session=False)
        )

        if count:
            logger.info(
                f"Retracted {count} {notification_type} notification(s) from user {actor_id} "
                f"to user {recipient_id}"
            )
            NotificationService._invalidate_unread_count(db, recipient_id)
        return count

    @staticmethod
    def list_notifications(
        db: Session,
        user_id: int,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> tuple[list[models.Notification], str | None]:
        """
        List notifications for a user, newest first, with cursor-based pagination.

        Returns:
            Tuple of (notifications, next_cursor)
        """
        query = (
            db.query(models.Notification)
            .options(joinedload(models.Notification.actor))
            .filter(models.Notification.recipient_id == user_id)
        )

        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))

        query = apply_time_cursor(
            query, models.Notification.created_at, models.Notification.id, cursor
        )
        query = query.order_by(
            models.Notification.created_at.desc(), models.Notification.id.desc()
        )

        # Fetch limit + 1 to determine if there are more results
        notifications = query.limit(limit + 1).all()

        has_more = len(notifications) > limit
        items = notifications[:limit]

        next_cursor = None
        if has_more and items:
            next_cursor = encode_cursor(items[-1].id, items[-1].created_at)

        return items, next_cursor

    @staticmethod
    def mark_as_read(db: Session, notification_id: int, user_id: int) -> models.Notification:
        """
        Mark one of the user's notifications as read.

        Raises 404 when the notification does not exist or belongs to someone else.
        """
        notification = (
            db.query(models.Notification)
            .filter(
                models.Notification.id == notification_id,
                models.Notification.recipient_id == user_id,
            )
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found")

        if not notification.is_read:
            notification.is_read = True
            NotificationService._invalidate_unread_count(db, user_id)
            db.commit()
            db.refresh(notification)

        return notification

    @staticmethod
    def mark_all_as_read(db: Session, user_id: int) -> int:
        """
        Mark all notifications as read for a user.

        Returns:
            Number of notifications updated
        """
        count = (
            db.query(models.Notification)
            .filter(
                models.Notification.recipient_id == user_id,
                models.Notification.is_read.is_(False),
            )
            .update({"is_read": True}, synchronize_session=False)
        )
        db.commit()

        # Reset cached counter to 0
        cache_set_int(UNREAD_COUNT_KEY.format(user_id=user_id), 0, UNREAD_COUNT_TTL)
        return count

    @staticmethod
    def get_unread_count(db: Session, user_id: int) -> int:
        """
        Get unread notification count for a user.

        Uses Redis cache with database fallback.
        """
        cache_key = UNREAD_COUNT_KEY.format(user_id=user_id)
        cached = cache_get_int(cache_key)
        if cached is not None:
            return cached

        count = (
            db.query(func.count(models.Notification.id))
            .filter(
                models.Notification.recipient_id == user_id,
                models.Notification.is_read.is_(False),
            )
            .scalar()
            or 0
        )

        cache_set_int(cache_key, count, UNREAD_COUNT_TTL)
        return count

    @staticmethod
    def delete_for_post(db: Session, post_id: int) -> int:
        """Remove the LIKE, COMMENT and NEW_POST notifications pointing at a post."""
        recipients = [
            rid
            for (rid,) in db.query(models.Notification.recipient_id)
            .filter(
                models.Notification.type.in_(models.POST_NOTIFICATION_TYPES),
                models.Notification.entity_id == post_id,
            )
            .distinct()
        ]
        if not recipients:
            return 0

        count = (
            db.query(models.Notification)
            .filter(
                models.Notification.type.in_(models.POST_NOTIFICATION_TYPES),
                models.Notification.entity_id == post_id,
            )
            .delete(synchronize_session=False)
        )
        NotificationService._invalidate_unread_count(db, *recipients)
        return count

    @staticmethod
    def delete_for_user(db: Session, user_id: int) -> int:
        """Remove every notification the user received or caused."""
        recipients = [
            rid
            for (rid,) in db.query(models.Notification.recipient_id)
            .filter(models.Notification.actor_id == user_id)
            .distinct()
        ]

        count = (
            db.query(models.Notification)
            .filter(
                (models.Notification.recipient_id == user_id)
                | (models.Notification.actor_id == user_id)
            )
            .delete(synchronize_session=False)
        )
        NotificationService._invalidate_unread_count(db, user_id, *recipients)
        return count

    @staticmethod
    def to_schema(notification: models.Notification) -> schemas.Notification:
        actor = notification.actor
        return schemas.Notification(
            id=notification.id,
            type=notification.type,
            entity_id=notification.entity_id,
            actor_id=notification.actor_id,
            actor_name=actor.full_name if actor else "Unknown",
            actor_avatar=actor.avatar if actor else None,
            message=MESSAGES.get(notification.type, ""),
            is_read=notification.is_read,
            created_at=notification.created_at,
        )

    # =========================================================================
    # Private helper methods
    # =========================================================================

    @staticmethod
    def _invalidate_unread_count(db: Session, *user_ids: int) -> None:
        """Queue the counters for deletion once the session commits."""
        db.info.setdefault(_PENDING_UNREAD_KEY, set()).update(user_ids)


# Counters are dropped only once the transaction has committed.
@event.listens_for(Session, "after_commit")
def _drop_unread_counts_after_commit(session: Session) -> None:
    user_ids = session.info.pop(_PENDING_UNREAD_KEY, None)
    if user_ids:
        cache_delete(*(UNREAD_COUNT_KEY.format(user_id=uid) for uid in sorted(user_ids)))


@event.listens_for(Session, "after_rollback")
def _discard_unread_counts_after_rollback(session: Session) -> None:
    session.info.pop(_PENDING_UNREAD_KEY, None)
