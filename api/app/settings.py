"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Per-IP request budget for the rate limiter middleware.
# Configured via .env: RATE_LIMIT_PER_MINUTE=60
RATE_LIMIT_PER_MINUTE: int = _int_env("RATE_LIMIT_PER_MINUTE", 60)
RATE_LIMIT_WINDOW_SECONDS: int = _int_env("RATE_LIMIT_WINDOW_SECONDS", 60)

# Auth cookie ("auth_token") must be sent over HTTPS only when enabled.
AUTH_COOKIE_SECURE: bool = _bool_env("AUTH_COOKIE_SECURE", False)
AUTH_COOKIE_NAME = "auth_token"

# Content limits
MAX_POST_IMAGES = 8
MAX_MEDIA_URL_LENGTH = 2048
MAX_BIO_LENGTH = 500

# Dashboard
DASHBOARD_ACTIVITY_DAYS = 30
DASHBOARD_TOP_REPORTED_USERS = 5
