# backend/reception/services/slots/invalidator.py
"""
Cache invalidation for per-day availability counts.

Triggers:
✓ Slots generated from a template or created for a single day
✓ Slot booked / cancelled / withdrawn / restored
✓ Slots purged, template deleted
"""

import logging
from datetime import date
from redis import Redis
from redis.exceptions import RedisError

from .redis_store import DayCountsRedisStore

logger = logging.getLogger(__name__)


def invalidate_manager_days(
    redis: Redis | None,
    manager_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached day counts for a manager.

    Args:
        redis: Redis client, None when caching is disabled
        manager_id: Manager ID
        dates: Specific dates to invalidate, or None for all cached dates

    Returns:
        Number of deleted cache entries
    """
    if redis is None:
        return 0

    # The database write already succeeded; a stale count must not fail the request
    try:
        return DayCountsRedisStore(redis).delete_counts(manager_id, dates)
    except RedisError as e:
        logger.error(f"Failed to invalidate day counts for manager={manager_id}: {e}")
        return 0
