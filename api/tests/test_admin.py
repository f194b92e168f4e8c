"""Test moderation: bans, user deletion, role edits and the dashboard."""

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app import models
from app.seed import ensure_seed_data


def test_admin_endpoints_require_admin(client, user, other_user, auth_headers):
    headers = auth_headers(user)
    assert client.put(f"/admin/users/{other_user.id}/ban", headers=headers).status_code == 403
    assert client.delete(f"/admin/users/{other_user.id}", headers=headers).status_code == 403
    assert client.get("/admin/dashboard", headers=headers).status_code == 403
    assert client.get("/admin/dashboard").status_code == 401


def test_ban_toggle(client, user, admin_user, auth_headers):
    admin = auth_headers(admin_user)

    response = client.put(f"/admin/users/{user.id}/ban", headers=admin)
    assert response.status_code == 200
    assert response.json()["banned"] is True

    response = client.put(f"/admin/users/{user.id}/ban", headers=admin)
    assert response.json()["banned"] is False


def test_banned_user_mutations_rejected(client, user, other_user, admin_user, auth_headers):
    post = client.post(
        "/posts", headers=auth_headers(user), json={"title": "Before ban", "content": "Content"}
    ).json()
    other_post = client.post(
        "/posts", headers=auth_headers(other_user), json={"title": "Other post", "content": "Content"}
    ).json()
    client.put(f"/admin/users/{user.id}/ban", headers=auth_headers(admin_user))

    headers = auth_headers(user)
    attempts = [
        client.post("/posts", headers=headers, json={"title": "After ban", "content": "Content"}),
        client.put(
            f"/posts/{post['id']}", headers=headers, json={"title": "Edited", "content": "Edit"}
        ),
        client.put(f"/posts/{post['id']}/hide", headers=headers),
        client.delete(f"/posts/{post['id']}", headers=headers),
        client.post(f"/posts/{other_post['id']}/like", headers=headers),
        client.post(
            f"/posts/{other_post['id']}/comments", headers=headers, json={"content": "Hey"}
        ),
        client.post(f"/users/{other_user.id}/follow", headers=headers),
        client.put("/users/me/subscribe", headers=headers),
    ]
    assert [r.status_code for r in attempts] == [403] * len(attempts)

    # Reading still works
    assert client.get(f"/posts/{post['id']}", headers=headers).status_code == 200
    assert client.get("/users/me", headers=headers).status_code == 200


def test_admin_cannot_target_self(client, admin_user, auth_headers):
    admin = auth_headers(admin_user)

    response = client.put(f"/admin/users/{admin_user.id}/ban", headers=admin)
    assert response.status_code == 400

    response = client.delete(f"/admin/users/{admin_user.id}", headers=admin)
    assert response.status_code == 400


def test_admin_actions_on_missing_user(client, admin_user, auth_headers):
    admin = auth_headers(admin_user)
    assert client.put("/admin/users/999999/ban", headers=admin).status_code == 404
    assert client.delete("/admin/users/999999", headers=admin).status_code == 404


def test_admin_edits_role(client, user, admin_user, auth_headers):
    response = client.put(
        f"/admin/users/{user.id}",
        headers=auth_headers(admin_user),
        json={"role": "ADMIN", "bio": "Promoted"},
    )
    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"
    assert response.json()["bio"] == "Promoted"

    # The promoted user can now reach admin endpoints
    assert client.get("/admin/dashboard", headers=auth_headers(user)).status_code == 200


def test_delete_user_cascades(
    client, db: Session, make_user, user, other_user, admin_user, auth_headers
):
    carl = make_user(firstname="Carl", lastname="Third")
    victim = auth_headers(user)

    own_post = client.post(
        "/posts", headers=victim, json={"title": "Doomed post", "content": "Content"}
    ).json()
    other_post = client.post(
        "/posts", headers=auth_headers(other_user), json={"title": "Survivor", "content": "Text"}
    ).json()

    # Activity by the user on someone else's post
    client.post(f"/posts/{other_post['id']}/like", headers=victim)
    remark = client.post(
        f"/posts/{other_post['id']}/comments", headers=victim, json={"content": "Mine"}
    ).json()
    client.post(f"/posts/comments/{remark['id']}/like", headers=auth_headers(other_user))
    client.post(f"/users/{other_user.id}/follow", headers=victim)
    client.post(f"/users/{user.id}/follow", headers=auth_headers(carl))
    client.post(
        "/reports",
        headers=victim,
        json={"reason": "Reporting someone else", "reported_user_id": other_user.id},
    )

    # Activity by others on the user's content
    client.post(f"/posts/{own_post['id']}/like", headers=auth_headers(carl))
    client.post(
        f"/posts/{own_post['id']}/comments", headers=auth_headers(carl), json={"content": "Hi"}
    )
    client.post(
        "/reports",
        headers=auth_headers(carl),
        json={"reason": "Reporting this post", "reported_post_id": own_post["id"]},
    )
    client.post(
        "/reports",
        headers=auth_headers(other_user),
        json={"reason": "Reporting this user", "reported_user_id": user.id},
    )

    response = client.delete(f"/admin/users/{user.id}", headers=auth_headers(admin_user))
    assert response.status_code == 204

    uid = user.id
    db.expire_all()
    assert db.query(models.User).filter_by(id=uid).count() == 0
    assert db.query(models.Post).filter_by(author_id=uid).count() == 0
    assert db.query(models.Comment).filter_by(author_id=uid).count() == 0
    assert db.query(models.Comment).filter_by(post_id=own_post["id"]).count() == 0
    assert db.query(models.PostLike).filter_by(user_id=uid).count() == 0
    assert db.query(models.PostLike).filter_by(post_id=own_post["id"]).count() == 0
    assert db.query(models.CommentLike).filter_by(comment_id=remark["id"]).count() == 0
    assert (
        db.query(models.Follow)
        .filter(or_(models.Follow.follower_id == uid, models.Follow.following_id == uid))
        .count()
        == 0
    )
    assert (
        db.query(models.Notification)
        .filter(or_(models.Notification.recipient_id == uid, models.Notification.actor_id == uid))
        .count()
        == 0
    )
    assert (
        db.query(models.Report)
        .filter(
            or_(
                models.Report.reporter_id == uid,
                models.Report.reported_user_id == uid,
                models.Report.reported_post_id == own_post["id"],
            )
        )
        .count()
        == 0
    )

    # Everyone else's content survives
    assert client.get(f"/posts/{other_post['id']}").status_code == 200
    assert client.get(f"/users/{other_user.id}").json()["followers_count"] == 0


def test_dashboard_stats(client, make_user, user, other_user, admin_user, auth_headers):
    make_user(firstname="Bad", lastname="Actor", banned=True)
    client.post("/posts", headers=auth_headers(user), json={"title": "One", "content": "Text"})
    client.post("/posts", headers=auth_headers(user), json={"title": "Two", "content": "Text"})
    client.post(
        "/reports",
        headers=auth_headers(user),
        json={"reason": "Reporting this user", "reported_user_id": other_user.id},
    )

    response = client.get("/admin/dashboard", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 4
    assert data["total_posts"] == 2
    assert data["total_reports"] == 1
    assert data["banned_users"] == 1
    assert data["pending_reports"] == 1
    assert sum(day["count"] for day in data["activity"]) == 2
    assert [u["id"] for u in data["most_reported_users"]] == [other_user.id]
    assert data["most_reported_users"][0]["report_count"] == 1
    assert data["most_reported_users"][0]["status"] == "Active"


def test_seed_creates_and_promotes_admin(monkeypatch, db: Session, make_user):
    monkeypatch.setenv("ADMIN_EMAIL", "Root@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "bootstrap-secret")
    ensure_seed_data()

    admin = db.query(models.User).filter_by(email="root@example.com").one()
    assert admin.role == models.ROLE_ADMIN

    existing = make_user(email="owner@example.com")
    monkeypatch.setenv("ADMIN_EMAIL", "owner@example.com")
    ensure_seed_data()

    db.refresh(existing)
    assert existing.role == models.ROLE_ADMIN


def test_admin_edit_leaves_subscription_alone(client, make_user, admin_user, auth_headers):
    reader = make_user(firstname="Sue", lastname="Scriber", subscribed=True)

    response = client.put(
        f"/admin/users/{reader.id}",
        headers=auth_headers(admin_user),
        json={"subscribed": False, "bio": "Edited by admin"},
    )
    assert response.status_code == 200
    assert response.json()["subscribed"] is True
    assert response.json()["bio"] == "Edited by admin"
