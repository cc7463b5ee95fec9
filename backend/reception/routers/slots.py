# backend/reception/routers/slots.py
"""
Reception slots API endpoints.

Public:
  GET  /managers/{id}/slots          - bookable slots of a manager
  GET  /managers/{id}/slots/days     - open slot counts per day
  POST /slots/{id}/book              - reserve a slot

Admin (X-Admin-Token):
  GET    /managers/{id}/slots/booked   - booked slots grouped by day
  GET    /managers/{id}/slots/calendar - every slot grouped by day
  GET    /slots/booked                 - booked slots of all managers
  POST   /slots/{id}/cancel|withdraw|restore
  POST   /managers/{id}/slots          - one-off reception window
  DELETE /managers/{id}/slots          - purge unbooked slots of a day
"""

from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..redis_client import get_redis
from ..schemas.slots import (
    BookSlotRequest,
    CreateSlotsRequest,
    CreateSlotsResponse,
    DayAvailability,
    DayAvailabilityResponse,
    DeleteSlotsRequest,
    DeleteSlotsResponse,
    GenerationSummary,
    SlotActionResponse,
    SlotAdminRead,
    SlotRead,
    SlotsCalendarResponse,
    SlotsDay,
)
from ..services.slots import (
    ValidationError,
    book_slot,
    cancel_booking,
    count_available_by_day,
    create_day_slots,
    get_reception_config,
    group_by_day,
    list_all_booked_slots,
    list_available_slots,
    list_manager_slots,
    purge_slots,
    restore_slot,
    withdraw_slot,
)


router = APIRouter(tags=["slots"])

MAX_CALENDAR_DAYS = 366


# ── Public ───────────────────────────────────────────────────────────────


@router.get("/managers/{manager_id}/slots", response_model=list[SlotRead])
def get_available_slots(
    manager_id: int,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Bookable slots of a manager, ordered by date and time."""
    return list_available_slots(db, manager_id, start_date, end_date)


@router.get("/managers/{manager_id}/slots/days", response_model=DayAvailabilityResponse)
def get_available_days(
    manager_id: int,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Open slot counts per day (visitor calendar)."""
    config = get_reception_config()

    if start_date is None:
        start_date = date.today()
    if end_date is None:
        end_date = start_date + timedelta(days=31 * config.default_months_ahead)
    if end_date < start_date:
        raise ValidationError("endDate must not be earlier than startDate")
    if (end_date - start_date).days >= MAX_CALENDAR_DAYS:
        raise ValidationError(f"Date range must not exceed {MAX_CALENDAR_DAYS} days")

    dates = []
    current = start_date
    while current <= end_date:
        dates.append(current)
        current += timedelta(days=1)

    counts = count_available_by_day(db, manager_id, dates, redis, config)

    return DayAvailabilityResponse(
        manager_id=manager_id,
        start_date=start_date,
        end_date=end_date,
        days=[
            DayAvailability(date=dt, has_slots=counts[dt] > 0, open_slots_count=counts[dt])
            for dt in dates
        ],
    )


@router.post("/slots/{slot_id}/book", response_model=SlotActionResponse)
def book(
    slot_id: int,
    data: BookSlotRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Reserve a slot. 409 if it is no longer available."""
    slot = book_slot(db, slot_id, data.full_name, data.email, data.notes, redis)
    return SlotActionResponse(
        message="Slot booked successfully",
        slot=SlotAdminRead.model_validate(slot),
    )


# ── Admin: views ─────────────────────────────────────────────────────────


def _calendar(manager_id: int, start_date, end_date, slots) -> SlotsCalendarResponse:
    return SlotsCalendarResponse(
        manager_id=manager_id,
        start_date=start_date,
        end_date=end_date,
        days=[
            SlotsDay(
                date=day["date"],
                slots=[SlotAdminRead.model_validate(s) for s in day["slots"]],
            )
            for day in group_by_day(slots)
        ],
        total_slots=len(slots),
    )


@router.get(
    "/managers/{manager_id}/slots/booked",
    response_model=SlotsCalendarResponse,
    dependencies=[Depends(require_admin)],
)
def get_booked_slots(
    manager_id: int,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Booked slots with visitor contacts, grouped by day."""
    slots = list_manager_slots(db, manager_id, start_date, end_date, booked_only=True)
    return _calendar(manager_id, start_date, end_date, slots)


@router.get(
    "/managers/{manager_id}/slots/calendar",
    response_model=SlotsCalendarResponse,
    dependencies=[Depends(require_admin)],
)
def get_slots_calendar(
    manager_id: int,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Every slot (available, booked, withdrawn), grouped by day."""
    slots = list_manager_slots(db, manager_id, start_date, end_date)
    return _calendar(manager_id, start_date, end_date, slots)


@router.get(
    "/slots/booked",
    response_model=list[SlotAdminRead],
    dependencies=[Depends(require_admin)],
)
def get_all_booked_slots(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Booked slots across all managers."""
    return list_all_booked_slots(db, start_date, end_date)


# ── Admin: state changes ─────────────────────────────────────────────────


@router.post(
    "/slots/{slot_id}/cancel",
    response_model=SlotActionResponse,
    dependencies=[Depends(require_admin)],
)
def cancel(
    slot_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Cancel a booking; the slot becomes available again. 409 if not booked."""
    slot = cancel_booking(db, slot_id, redis)
    return SlotActionResponse(
        message="Booking cancelled",
        slot=SlotAdminRead.model_validate(slot),
    )


@router.post(
    "/slots/{slot_id}/withdraw",
    response_model=SlotActionResponse,
    dependencies=[Depends(require_admin)],
)
def withdraw(
    slot_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Take an available slot out of the public pool. 409 if booked or withdrawn."""
    slot = withdraw_slot(db, slot_id, redis)
    return SlotActionResponse(
        message="Slot withdrawn",
        slot=SlotAdminRead.model_validate(slot),
    )


@router.post(
    "/slots/{slot_id}/restore",
    response_model=SlotActionResponse,
    dependencies=[Depends(require_admin)],
)
def restore(
    slot_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Return a withdrawn slot to the public pool. 409 if it is not withdrawn."""
    slot = restore_slot(db, slot_id, redis)
    return SlotActionResponse(
        message="Slot restored",
        slot=SlotAdminRead.model_validate(slot),
    )


@router.post(
    "/managers/{manager_id}/slots",
    response_model=CreateSlotsResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_slots(
    manager_id: int,
    data: CreateSlotsRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Create slots for a one-off reception window on one date."""
    result = create_day_slots(
        db, manager_id, data.date, data.start_time, data.end_time,
        data.slot_duration, redis=redis,
    )
    return CreateSlotsResponse(
        message=f"Created {result.created} slots",
        slots=GenerationSummary(
            count=result.created,
            skipped=result.skipped,
            conflicts=result.conflicts,
            dates=result.dates,
        ),
    )


@router.delete(
    "/managers/{manager_id}/slots",
    response_model=DeleteSlotsResponse,
    dependencies=[Depends(require_admin)],
)
def delete_slots(
    manager_id: int,
    data: DeleteSlotsRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Purge unbooked slots of a day (optionally within a time range)."""
    outcome = purge_slots(db, manager_id, data.date, data.start_time, data.end_time, redis)
    return DeleteSlotsResponse(
        message=f"Deleted {outcome['deleted']} slots",
        deleted_count=outcome["deleted"],
        kept_booked=outcome["kept_booked"],
    )
