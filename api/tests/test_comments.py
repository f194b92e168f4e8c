from __future__ import annotations

from sqlalchemy.orm import Session

from app import models


def _comment(client, post_id, author_headers, content="Great post!"):
    return client.post(
        f"/posts/{post_id}/comments", headers=author_headers, json={"content": content}
    )


def test_add_comment_notifies_post_author(
    client, db: Session, user, other_user, auth_headers, create_post
):
    post = create_post(user)

    response = _comment(client, post["id"], auth_headers(other_user))
    assert response.status_code == 201
    data = response.json()
    assert data["post_id"] == post["id"]
    assert data["user"]["id"] == other_user.id
    assert data["content"] == "Great post!"
    assert data["can_delete"] is True

    notifications = db.query(models.Notification).filter_by(recipient_id=user.id).all()
    assert len(notifications) == 1
    assert notifications[0].type == models.NOTIFICATION_COMMENT
    assert notifications[0].entity_id == post["id"]
    assert notifications[0].actor_id == other_user.id


def test_comment_on_own_post_does_not_notify(client, db: Session, user, auth_headers, create_post):
    post = create_post(user)

    assert _comment(client, post["id"], auth_headers(user)).status_code == 201
    assert db.query(models.Notification).count() == 0


def test_blank_comment_rejected(client, user, auth_headers, create_post):
    post = create_post(user)

    response = _comment(client, post["id"], auth_headers(user), content="   ")
    assert response.status_code == 400

    response = _comment(client, post["id"], auth_headers(user), content="")
    assert response.status_code == 422


def test_comment_on_missing_post(client, user, auth_headers):
    response = _comment(client, 999999, auth_headers(user))
    assert response.status_code == 404


def test_list_comments_newest_first(client, user, other_user, auth_headers, create_post):
    post = create_post(user)
    first = _comment(client, post["id"], auth_headers(other_user), "First comment").json()
    second = _comment(client, post["id"], auth_headers(user), "Second comment").json()

    response = client.get(f"/posts/{post['id']}/comments")
    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [second["id"], first["id"]]


def test_delete_comment_permissions(
    client, make_user, user, other_user, admin_user, auth_headers, create_post
):
    stranger = make_user(firstname="Carl", lastname="Stranger")
    post = create_post(user)

    by_other = _comment(client, post["id"], auth_headers(other_user)).json()
    by_other_again = _comment(client, post["id"], auth_headers(other_user)).json()
    by_other_third = _comment(client, post["id"], auth_headers(other_user)).json()

    # A third party may not delete
    response = client.delete(f"/posts/comments/{by_other['id']}", headers=auth_headers(stranger))
    assert response.status_code == 403

    # Comment author, post author and admin may
    assert (
        client.delete(f"/posts/comments/{by_other['id']}", headers=auth_headers(other_user))
        .status_code
        == 204
    )
    assert (
        client.delete(f"/posts/comments/{by_other_again['id']}", headers=auth_headers(user))
        .status_code
        == 204
    )
    assert (
        client.delete(f"/posts/comments/{by_other_third['id']}", headers=auth_headers(admin_user))
        .status_code
        == 204
    )

    assert client.get(f"/posts/{post['id']}/comments").json() == []


def test_delete_comment_removes_its_likes(
    client, db: Session, user, other_user, auth_headers, create_post
):
    post = create_post(user)
    comment = _comment(client, post["id"], auth_headers(other_user)).json()
    client.post(f"/posts/comments/{comment['id']}/like", headers=auth_headers(user))

    response = client.delete(f"/posts/comments/{comment['id']}", headers=auth_headers(other_user))
    assert response.status_code == 204

    db.expire_all()
    assert db.query(models.CommentLike).filter_by(comment_id=comment["id"]).count() == 0


def test_delete_missing_comment(client, user, auth_headers):
    response = client.delete("/posts/comments/999999", headers=auth_headers(user))
    assert response.status_code == 404


def test_comment_count_in_post_view(client, user, other_user, auth_headers, create_post):
    post = create_post(user)
    _comment(client, post["id"], auth_headers(other_user))
    _comment(client, post["id"], auth_headers(other_user))

    data = client.get(f"/posts/{post['id']}").json()
    assert data["comments"] == 2
