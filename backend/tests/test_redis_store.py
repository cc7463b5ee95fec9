from datetime import date
from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from reception.services.slots.config import ReceptionConfig
from reception.services.slots.invalidator import invalidate_manager_days
from reception.services.slots.redis_store import DayCountsRedisStore


def _store(redis=None) -> DayCountsRedisStore:
    return DayCountsRedisStore(redis or MagicMock(), ReceptionConfig(day_cache_ttl_seconds=3600))


def test_store_counts_sets_hash_and_ttl():
    store = _store()

    store.store_counts(5, {date(2026, 8, 3): 3, date(2026, 8, 4): 0})

    pipe = store.redis.pipeline.return_value
    pipe.hset.assert_called_once_with(
        "reception:days:5", mapping={"2026-08-03": 3, "2026-08-04": 0}
    )
    pipe.expire.assert_called_once_with("reception:days:5", 3600)
    pipe.execute.assert_called_once()


def test_store_counts_ignores_empty_mapping():
    store = _store()

    store.store_counts(5, {})

    store.redis.pipeline.assert_not_called()


def test_get_counts_maps_misses_to_none():
    store = _store()
    store.redis.hmget.return_value = [b"2", None, "0"]
    dates = [date(2026, 8, 3), date(2026, 8, 4), date(2026, 8, 5)]

    counts = store.get_counts(5, dates)

    store.redis.hmget.assert_called_once_with(
        "reception:days:5", ["2026-08-03", "2026-08-04", "2026-08-05"]
    )
    assert counts == {date(2026, 8, 3): 2, date(2026, 8, 4): None, date(2026, 8, 5): 0}


def test_delete_counts_for_dates_and_whole_key():
    store = _store()

    store.delete_counts(5, [date(2026, 8, 4), date(2026, 8, 3), date(2026, 8, 3)])
    store.redis.hdel.assert_called_once_with("reception:days:5", "2026-08-03", "2026-08-04")

    store.delete_counts(5)
    store.redis.delete.assert_called_once_with("reception:days:5")


def test_invalidate_without_redis_is_noop():
    assert invalidate_manager_days(None, 5, [date(2026, 8, 3)]) == 0


def test_invalidate_swallows_redis_errors():
    redis = MagicMock()
    redis.hdel.side_effect = RedisConnectionError("connection refused")

    assert invalidate_manager_days(redis, 5, [date(2026, 8, 3)]) == 0
