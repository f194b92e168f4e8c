from __future__ import annotations

import logging
import os

from .db import SessionLocal
from .services.accounts import ensure_admin_account

logger = logging.getLogger(__name__)


def ensure_seed_data() -> None:
    """
    Create the bootstrap admin account.

    Runs only when ADMIN_EMAIL and ADMIN_PASSWORD are both set; an existing
    account with that email is promoted instead of recreated.
    """
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        logger.info("ensure_seed_data: ADMIN_EMAIL/ADMIN_PASSWORD not set, no admin to create.")
        return

    db = SessionLocal()
    try:
        ensure_admin_account(db, email, password)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level="INFO")
    ensure_seed_data()
