# backend/reception/services/slots/booking.py
"""
Booking state machine for reception slots.

States:
  Available  is_available=1, is_booked=0
  Booked     is_available=0, is_booked=1
  Withdrawn  is_available=0, is_booked=0

Every transition is one conditional UPDATE guarded by the expected source
state, so concurrent requests for the same slot are ordered by the database:
exactly one wins, the rest match zero rows and fail without writing.
"""

import logging
from datetime import date, datetime, time

from redis import Redis
from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session

from ...models.reception import ReceptionSlots
from ..events import emit_event
from .config import time_str_to_minutes
from .errors import NotBooked, SlotUnavailable, ValidationError
from .invalidator import invalidate_manager_days
from .lookups import require_manager, require_slot

logger = logging.getLogger(__name__)

_AVAILABLE = (ReceptionSlots.is_available.is_(True), ReceptionSlots.is_booked.is_(False))
_BOOKED = (ReceptionSlots.is_booked.is_(True),)
_WITHDRAWN = (ReceptionSlots.is_available.is_(False), ReceptionSlots.is_booked.is_(False))


def _transition(db: Session, slot_id: int, guard: tuple, values: dict) -> bool:
    """Apply `values` iff the slot is still in the `guard` state. Commits on success."""
    stmt = (
        update(ReceptionSlots)
        .where(ReceptionSlots.id == slot_id, *guard)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount == 1:
        db.commit()
        return True
    db.rollback()
    return False


def book_slot(
    db: Session,
    slot_id: int,
    full_name: str,
    email: str,
    notes: str | None = None,
    redis: Redis | None = None,
) -> ReceptionSlots:
    """
    Reserve an available slot for a visitor.

    Raises:
        NotFound: slot does not exist
        SlotUnavailable: slot is booked, withdrawn, or another request won
    """
    booked = _transition(db, slot_id, _AVAILABLE, {
        "is_booked": True,
        "is_available": False,
        "booked_by": full_name,
        "booked_email": email,
        "notes": notes or None,
        "booked_at": datetime.now(),
    })
    if not booked:
        slot = require_slot(db, slot_id)
        logger.warning(
            f"Booking rejected: slot={slot_id} manager={slot.manager_id} "
            f"booked={slot.is_booked} available={slot.is_available}"
        )
        raise SlotUnavailable("This slot is no longer available")

    slot = require_slot(db, slot_id)
    invalidate_manager_days(redis, slot.manager_id, [slot.date])

    logger.info(f"Slot booked: slot={slot_id} manager={slot.manager_id} start={slot.start_time}")
    emit_event("reception_slot_booked", {
        "slot_id": slot.id,
        "manager_id": slot.manager_id,
        "start_time": slot.start_time.isoformat(),
        "email": slot.booked_email,
        "full_name": slot.booked_by,
    })
    return slot


def cancel_booking(
    db: Session,
    slot_id: int,
    redis: Redis | None = None,
) -> ReceptionSlots:
    """
    Return a booked slot to the pool as a fresh available slot.

    Raises:
        NotFound: slot does not exist
        NotBooked: slot holds no booking
    """
    # Captured before clearing: the event carries the cancelled contact
    slot = require_slot(db, slot_id)
    email = slot.booked_email

    cancelled = _transition(db, slot_id, _BOOKED, {
        "is_booked": False,
        "is_available": True,
        "booked_by": None,
        "booked_email": None,
        "notes": None,
        "booked_at": None,
    })
    if not cancelled:
        raise NotBooked(f"Slot {slot_id} is not booked")

    slot = require_slot(db, slot_id)
    invalidate_manager_days(redis, slot.manager_id, [slot.date])

    logger.info(f"Booking cancelled: slot={slot_id} manager={slot.manager_id}")
    emit_event("reception_booking_cancelled", {
        "slot_id": slot.id,
        "manager_id": slot.manager_id,
        "start_time": slot.start_time.isoformat(),
        "email": email,
    })
    return slot


def withdraw_slot(
    db: Session,
    slot_id: int,
    redis: Redis | None = None,
) -> ReceptionSlots:
    """Take an available slot out of the public pool (administrative action)."""
    if not _transition(db, slot_id, _AVAILABLE, {"is_available": False}):
        require_slot(db, slot_id)
        raise SlotUnavailable(f"Slot {slot_id} is booked or already withdrawn")

    slot = require_slot(db, slot_id)
    invalidate_manager_days(redis, slot.manager_id, [slot.date])
    logger.info(f"Slot withdrawn: slot={slot_id} manager={slot.manager_id}")
    return slot


def restore_slot(
    db: Session,
    slot_id: int,
    redis: Redis | None = None,
) -> ReceptionSlots:
    """Put a withdrawn slot back into the public pool."""
    if not _transition(db, slot_id, _WITHDRAWN, {"is_available": True}):
        require_slot(db, slot_id)
        raise SlotUnavailable(f"Slot {slot_id} is not withdrawn")

    slot = require_slot(db, slot_id)
    invalidate_manager_days(redis, slot.manager_id, [slot.date])
    logger.info(f"Slot restored: slot={slot_id} manager={slot.manager_id}")
    return slot


def purge_slots(
    db: Session,
    manager_id: int,
    day: date,
    start_time: str | None = None,
    end_time: str | None = None,
    redis: Redis | None = None,
) -> dict:
    """
    Delete a manager's unbooked slots on `day`, optionally only those
    starting within [start_time, end_time). Booked slots are kept.

    Returns:
        {"deleted": int, "kept_booked": int}
    """
    require_manager(db, manager_id)

    filters = [ReceptionSlots.manager_id == manager_id, ReceptionSlots.date == day]
    if start_time or end_time:
        if not (start_time and end_time):
            raise ValidationError("start_time and end_time must be given together")
        try:
            start_min = time_str_to_minutes(start_time)
            end_min = time_str_to_minutes(end_time)
        except ValueError as e:
            raise ValidationError(str(e)) from None
        if start_min >= end_min:
            raise ValidationError("End time must be later than start time")
        midnight = datetime.combine(day, time.min)
        filters.append(ReceptionSlots.start_time >= midnight.replace(hour=start_min // 60, minute=start_min % 60))
        filters.append(ReceptionSlots.start_time < midnight.replace(hour=end_min // 60, minute=end_min % 60))

    deleted = db.execute(
        delete(ReceptionSlots)
        .where(*filters, ReceptionSlots.is_booked.is_(False))
        .execution_options(synchronize_session=False)
    ).rowcount
    kept_booked = (
        db.query(func.count(ReceptionSlots.id))
        .filter(*filters, ReceptionSlots.is_booked.is_(True))
        .scalar()
    )
    db.commit()

    if deleted:
        invalidate_manager_days(redis, manager_id, [day])

    logger.info(
        f"Purged {deleted} slots for manager={manager_id} on {day} "
        f"(kept {kept_booked} booked)"
    )
    return {"deleted": deleted, "kept_booked": kept_booked}
