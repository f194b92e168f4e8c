"""Test the notification feed, read state and unread counter."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.orm import Session

from app import models
from app.services.notifications import NotificationService


def _seed(db: Session, recipient: models.User, actor: models.User, count: int) -> list[int]:
    """Insert notifications with distinct, increasing timestamps."""
    base = models.utcnow() - timedelta(hours=1)
    ids = []
    for i in range(count):
        notification = models.Notification(
            recipient_id=recipient.id,
            actor_id=actor.id,
            type=models.NOTIFICATION_LIKE,
            entity_id=i + 1,
            is_read=False,
            created_at=base + timedelta(minutes=i),
        )
        db.add(notification)
        db.flush()
        ids.append(notification.id)
    db.commit()
    return ids


def test_notifications_require_auth(client):
    assert client.get("/notifications").status_code == 401
    assert client.get("/notifications/unread-count").status_code == 401


def test_list_newest_first_with_cursor(client, db: Session, user, other_user, auth_headers):
    ids = _seed(db, user, other_user, 5)
    headers = auth_headers(user)

    first = client.get("/notifications", params={"limit": 2}, headers=headers).json()
    assert [n["id"] for n in first["items"]] == ids[::-1][:2]
    assert first["next_cursor"]

    second = client.get(
        "/notifications", params={"limit": 2, "cursor": first["next_cursor"]}, headers=headers
    ).json()
    assert [n["id"] for n in second["items"]] == ids[::-1][2:4]

    third = client.get(
        "/notifications", params={"limit": 2, "cursor": second["next_cursor"]}, headers=headers
    ).json()
    assert [n["id"] for n in third["items"]] == ids[:1]
    assert third["next_cursor"] is None


def test_notification_payload(client, user, other_user, auth_headers, create_post):
    post = create_post(user)
    client.post(f"/posts/{post['id']}/like", headers=auth_headers(other_user))

    items = client.get("/notifications", headers=auth_headers(user)).json()["items"]
    assert len(items) == 1
    item = items[0]
    assert item["type"] == "LIKE"
    assert item["entity_id"] == post["id"]
    assert item["actor_id"] == other_user.id
    assert item["actor_name"] == "Bob Reader"
    assert item["message"] == "liked your post."
    assert item["is_read"] is False


def test_invalid_cursor_rejected(client, user, auth_headers):
    response = client.get(
        "/notifications", params={"cursor": "garbage!"}, headers=auth_headers(user)
    )
    assert response.status_code == 400


def test_mark_one_read(client, db: Session, user, other_user, auth_headers):
    ids = _seed(db, user, other_user, 2)
    headers = auth_headers(user)

    response = client.put(f"/notifications/{ids[0]}/read", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    # Marking again is a no-op
    assert client.put(f"/notifications/{ids[0]}/read", headers=headers).status_code == 200

    assert client.get("/notifications/unread-count", headers=headers).json() == {"unread_count": 1}

    unread = client.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert [n["id"] for n in unread["items"]] == [ids[1]]


def test_cannot_mark_someone_elses_notification(client, db: Session, user, other_user, auth_headers):
    ids = _seed(db, user, other_user, 1)

    response = client.put(f"/notifications/{ids[0]}/read", headers=auth_headers(other_user))
    assert response.status_code == 404

    assert client.put("/notifications/999999/read", headers=auth_headers(user)).status_code == 404


def test_mark_all_read(client, db: Session, user, other_user, auth_headers):
    _seed(db, user, other_user, 3)
    _seed(db, other_user, user, 2)

    response = client.put("/notifications/read-all", headers=auth_headers(user))
    assert response.status_code == 204

    assert client.get("/notifications/unread-count", headers=auth_headers(user)).json()[
        "unread_count"
    ] == 0
    # Other users' notifications are untouched
    assert client.get("/notifications/unread-count", headers=auth_headers(other_user)).json()[
        "unread_count"
    ] == 2


def test_unread_count_tracks_new_events(client, user, other_user, auth_headers, create_post):
    headers = auth_headers(user)
    assert client.get("/notifications/unread-count", headers=headers).json()["unread_count"] == 0

    post = create_post(user)
    client.post(f"/posts/{post['id']}/like", headers=auth_headers(other_user))
    client.post(f"/users/{user.id}/follow", headers=auth_headers(other_user))

    assert client.get("/notifications/unread-count", headers=headers).json()["unread_count"] == 2


def test_new_post_notifies_subscribed_followers(
    client, db: Session, make_user, user, auth_headers, create_post
):
    subscribed = make_user(firstname="Sub", lastname="Scriber", subscribed=True)
    unsubscribed = make_user(firstname="Not", lastname="Subscribed")
    for follower in (subscribed, unsubscribed):
        client.post(f"/users/{user.id}/follow", headers=auth_headers(follower))

    post = create_post(user)

    items = client.get("/notifications", headers=auth_headers(subscribed)).json()["items"]
    assert [(n["type"], n["entity_id"], n["actor_id"]) for n in items] == [
        ("NEW_POST", post["id"], user.id)
    ]
    assert client.get("/notifications", headers=auth_headers(unsubscribed)).json()["items"] == []


def test_subscribe_toggle(client, user, auth_headers):
    response = client.put("/users/me/subscribe", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["subscribed"] is True

    response = client.put("/users/me/subscribe", headers=auth_headers(user))
    assert response.json()["subscribed"] is False


def test_retract_matches_exactly(db: Session, user, other_user):
    NotificationService.create(db, user.id, other_user, models.NOTIFICATION_FOLLOW, other_user.id)
    NotificationService.create(db, user.id, other_user, models.NOTIFICATION_LIKE, other_user.id)
    db.commit()

    removed = NotificationService.retract(
        db, user.id, other_user.id, models.NOTIFICATION_FOLLOW, other_user.id
    )
    db.commit()

    assert removed == 1
    remaining = db.query(models.Notification).filter_by(recipient_id=user.id).all()
    assert [n.type for n in remaining] == [models.NOTIFICATION_LIKE]


def test_self_notification_skipped(db: Session, user):
    assert NotificationService.create(db, user.id, user, models.NOTIFICATION_LIKE, 1) is None
    assert NotificationService.fan_out(db, [user.id], user, models.NOTIFICATION_NEW_POST, 1) == 0
