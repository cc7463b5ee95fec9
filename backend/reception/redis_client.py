# backend/reception/redis_client.py
"""
Shared Redis connection.

Redis is optional: without REDIS_URL the day-count cache falls back to the
database and booking events are not published.
"""

from redis import Redis

from .config import settings


redis_client: Redis | None = (
    Redis.from_url(settings.redis_url, decode_responses=True)
    if settings.redis_url
    else None
)


def get_redis() -> Redis | None:
    """FastAPI dependency returning the shared client (or None)."""
    return redis_client
