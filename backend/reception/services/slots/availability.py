# backend/reception/services/slots/availability.py
"""
Read-side queries over reception slots.

Only reflects what the generator has materialized: a month with an active
template but no generated slots legitimately shows nothing.

Ordering is always (date, start_time, id) ascending.
"""

import logging
from datetime import date

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ...models.reception import ReceptionSlots
from .config import ReceptionConfig, get_reception_config
from .errors import ValidationError
from .lookups import require_manager
from .redis_store import DayCountsRedisStore

logger = logging.getLogger(__name__)


def list_available_slots(
    db: Session,
    manager_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ReceptionSlots]:
    """Public view: bookable slots only (available and not booked)."""
    require_manager(db, manager_id, active_only=True)

    query = db.query(ReceptionSlots).filter(
        ReceptionSlots.manager_id == manager_id,
        ReceptionSlots.is_available.is_(True),
        ReceptionSlots.is_booked.is_(False),
    )
    return _ordered(_in_range(query, start_date, end_date)).all()


def list_manager_slots(
    db: Session,
    manager_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    booked_only: bool = False,
) -> list[ReceptionSlots]:
    """Administrative view: every slot of the manager, with booking details."""
    require_manager(db, manager_id)

    query = db.query(ReceptionSlots).filter(ReceptionSlots.manager_id == manager_id)
    if booked_only:
        query = query.filter(ReceptionSlots.is_booked.is_(True))
    return _ordered(_in_range(query, start_date, end_date)).all()


def list_all_booked_slots(
    db: Session,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ReceptionSlots]:
    """Administrative view: booked slots across all managers."""
    query = db.query(ReceptionSlots).filter(ReceptionSlots.is_booked.is_(True))
    return _ordered(_in_range(query, start_date, end_date)).all()


def group_by_day(slots: list[ReceptionSlots]) -> list[dict]:
    """Group ordered slots into [{"date": ..., "slots": [...]}, ...] for calendars."""
    days: list[dict] = []
    for slot in slots:
        if not days or days[-1]["date"] != slot.date:
            days.append({"date": slot.date, "slots": []})
        days[-1]["slots"].append(slot)
    return days


def count_available_by_day(
    db: Session,
    manager_id: int,
    dates: list[date],
    redis: Redis | None = None,
    config: ReceptionConfig | None = None,
) -> dict[date, int]:
    """
    Number of bookable slots per date, using the Redis cache when available.

    Returns:
        Dict date → count for every requested date (0 when nothing is open).
    """
    require_manager(db, manager_id, active_only=True)
    config = config or get_reception_config()

    store = DayCountsRedisStore(redis, config) if redis is not None else None
    cached: dict[date, int | None] = {}
    if store is not None:
        try:
            cached = store.get_counts(manager_id, dates)
        except RedisError as e:
            logger.error(f"Day counts cache read failed for manager={manager_id}: {e}")
            store = None

    missing = [dt for dt in dates if cached.get(dt) is None]
    calculated: dict[date, int] = {}
    if missing:
        rows = (
            db.query(ReceptionSlots.date, func.count(ReceptionSlots.id))
            .filter(
                ReceptionSlots.manager_id == manager_id,
                ReceptionSlots.is_available.is_(True),
                ReceptionSlots.is_booked.is_(False),
                ReceptionSlots.date.in_(missing),
            )
            .group_by(ReceptionSlots.date)
            .all()
        )
        found = {day: count for day, count in rows}
        calculated = {dt: found.get(dt, 0) for dt in missing}

        if store is not None:
            try:
                store.store_counts(manager_id, calculated)
            except RedisError as e:
                logger.error(f"Day counts cache write failed for manager={manager_id}: {e}")

    return {dt: cached[dt] if cached.get(dt) is not None else calculated[dt] for dt in dates}


# ── Query helpers ────────────────────────────────────────────────────────


def _in_range(query: Query, start_date: date | None, end_date: date | None) -> Query:
    if start_date and end_date and end_date < start_date:
        raise ValidationError("endDate must not be earlier than startDate")
    if start_date:
        query = query.filter(ReceptionSlots.date >= start_date)
    if end_date:
        query = query.filter(ReceptionSlots.date <= end_date)
    return query


def _ordered(query: Query) -> Query:
    return query.order_by(
        ReceptionSlots.date.asc(),
        ReceptionSlots.start_time.asc(),
        ReceptionSlots.id.asc(),
    )
