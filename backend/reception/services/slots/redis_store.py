# backend/reception/services/slots/redis_store.py
"""
Redis cache of per-day available slot counts.

Key format: reception:days:{manager_id}
Value: Hash where field = "YYYY-MM-DD", value = number of bookable slots.

A missing field is a cache miss; "0" means "calculated, no free slots".
Any write to a manager's slots drops the affected fields (see invalidator).
"""

from datetime import date
from redis import Redis

from .config import ReceptionConfig, get_reception_config


class DayCountsRedisStore:
    """Redis storage wrapper for per-day availability counts."""

    KEY_PREFIX = "reception:days"

    def __init__(self, redis: Redis, config: ReceptionConfig | None = None):
        self.redis = redis
        self.config = config or get_reception_config()

    def _key(self, manager_id: int) -> str:
        return f"{self.KEY_PREFIX}:{manager_id}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_counts(self, manager_id: int, counts: dict[date, int]) -> None:
        """Store counts for several days and refresh the key TTL."""
        if not counts:
            return

        key = self._key(manager_id)
        pipe = self.redis.pipeline()
        pipe.hset(key, mapping={dt.isoformat(): count for dt, count in counts.items()})
        pipe.expire(key, self.config.day_cache_ttl_seconds)
        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_counts(self, manager_id: int, dates: list[date]) -> dict[date, int | None]:
        """
        Batch get counts.

        Returns:
            Dict mapping date → count (or None on cache miss).
        """
        if not dates:
            return {}

        raw = self.redis.hmget(self._key(manager_id), [dt.isoformat() for dt in dates])
        result: dict[date, int | None] = {}
        for dt, value in zip(dates, raw):
            if value is None:
                result[dt] = None
            else:
                result[dt] = int(value.decode() if isinstance(value, bytes) else value)
        return result

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_counts(self, manager_id: int, dates: list[date] | None = None) -> int:
        """
        Drop cached counts.

        Args:
            manager_id: Manager ID
            dates: Specific dates, or None to drop the whole manager key.

        Returns:
            Number of deleted fields (or keys when dates is None).
        """
        key = self._key(manager_id)
        if dates:
            return self.redis.hdel(key, *sorted({dt.isoformat() for dt in dates}))
        return self.redis.delete(key)
