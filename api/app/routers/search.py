"""Search endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user_optional
from ..deps import get_db
from ..services import accounts
from ..services import posts as post_service

router = APIRouter(prefix="", tags=["Search"])


def _search_people(db: Session, term: str, limit: int) -> list[models.User]:
    pattern = post_service.contains_pattern(term)
    escape = post_service.LIKE_ESCAPE
    return (
        db.query(models.User)
        .filter(
            or_(
                models.User.firstname.ilike(pattern, escape=escape),
                models.User.lastname.ilike(pattern, escape=escape),
                models.User.email.ilike(pattern, escape=escape),
            )
        )
        .order_by(models.User.id)
        .limit(limit)
        .all()
    )


@router.get("/search", response_model=schemas.SearchResults, response_model_exclude_none=True)
def search(
    q: str = "",
    filter: Literal["all", "posts", "people"] = "all",
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.SearchResults:
    """
    Search posts by title or category and people by name or email.

    Hidden posts only show up for their owner and for admins. A blank query
    returns empty lists.
    """
    term = q.strip()
    want_posts = filter in ("all", "posts")
    want_people = filter in ("all", "people")

    results = schemas.SearchResults(
        posts=[] if want_posts else None,
        users=[] if want_people else None,
    )
    if not term:
        return results

    if want_posts:
        found = post_service.search_posts(db, term, current_user, limit)
        results.posts = post_service.to_views(db, found, current_user)
    if want_people:
        results.users = accounts.to_profiles(db, _search_people(db, term, limit), current_user)

    return results
