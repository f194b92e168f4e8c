"""Redis cache utility functions.

The cache is optional: with no ``REDIS_URL`` configured, or when the server is
unreachable, every helper degrades to a miss and callers fall back to the
database.
"""

from __future__ import annotations

import logging
import os

import redis

logger = logging.getLogger(__name__)

# Redis connection
_redis_client: redis.Redis | None = None
_redis_disabled = False


def get_redis_client() -> redis.Redis | None:
    """
    Get or create Redis client instance.

    Returns None if Redis is not configured or the connection fails. A failed
    connection is not retried for the lifetime of the process.
    """
    global _redis_client, _redis_disabled

    if _redis_client is not None:
        return _redis_client

    if _redis_disabled:
        return None

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        _redis_disabled = True
        return None

    try:
        client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=2)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis cache unavailable: {e}. Continuing without cache.")
        _redis_disabled = True
        return None

    logger.info("Redis cache connected successfully")
    _redis_client = client
    return _redis_client


def cache_get_int(key: str) -> int | None:
    """
    Retrieve a cached integer by key.

    Returns:
        Cached value if found and numeric, None otherwise
    """
    client = get_redis_client()
    if not client:
        return None

    try:
        value = client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache get error for key '{key}': {e}")
        return None

    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def cache_set_int(key: str, value: int, ttl: int = 300) -> bool:
    """
    Set a cached integer with TTL (seconds).

    Returns:
        True if successful, False otherwise
    """
    client = get_redis_client()
    if not client:
        return False

    try:
        client.setex(key, ttl, str(value))
        return True
    except redis.RedisError as e:
        logger.warning(f"Cache set error for key '{key}': {e}")
        return False


def cache_delete(*keys: str) -> int:
    """
    Delete cache keys.

    Returns:
        Number of keys deleted
    """
    client = get_redis_client()
    if not client or not keys:
        return 0

    try:
        return int(client.delete(*keys))
    except redis.RedisError as e:
        logger.warning(f"Cache delete error for keys {keys}: {e}")
        return 0
