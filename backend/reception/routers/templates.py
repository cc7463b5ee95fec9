# backend/reception/routers/templates.py
# All endpoints are administrative (X-Admin-Token)

from datetime import date
from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models.reception import RecurringTemplates
from ..redis_client import get_redis
from ..schemas.slots import GenerationSummary
from ..schemas.templates import (
    ParsedScheduleRead,
    RecurringScheduleCreate,
    RecurringScheduleResponse,
    RecurringTemplateDeleteResponse,
    RecurringTemplateRead,
    RecurringTemplateUpdate,
    RecurringTemplateUpdateResponse,
    ScheduleParseRequest,
)
from ..services.slots import Cadence, GenerationResult
from ..services.slots.recurrence import describe, parse_schedule
from ..services.slots.templates import (
    create_recurring_schedule,
    delete_template,
    describe_template,
    list_templates,
    regenerate_template,
    update_template,
)

router = APIRouter(tags=["recurring_templates"], dependencies=[Depends(require_admin)])


def _read(template: RecurringTemplates) -> RecurringTemplateRead:
    data = RecurringTemplateRead.model_validate(template)
    data.description = describe_template(template)
    return data


def _summary(result: GenerationResult) -> GenerationSummary:
    return GenerationSummary(
        count=result.created,
        skipped=result.skipped,
        conflicts=result.conflicts,
        dates=result.dates,
    )


@router.post(
    "/managers/{manager_id}/recurring-schedule",
    response_model=RecurringScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule(
    manager_id: int,
    data: RecurringScheduleCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Create a recurring template from a picked date and generate its slots."""
    template, result = create_recurring_schedule(
        db,
        manager_id,
        selected_date=data.selected_date,
        start_time=data.start_time,
        end_time=data.end_time,
        slot_duration=data.slot_duration,
        months_ahead=data.months_ahead,
        cadence=data.cadence,
        today=date.today(),
        redis=redis,
    )
    read = _read(template)
    return RecurringScheduleResponse(
        message=f"Recurring schedule created: {read.description}",
        template=read,
        slots=_summary(result),
    )


@router.get(
    "/managers/{manager_id}/recurring-templates",
    response_model=list[RecurringTemplateRead],
)
def get_templates(
    manager_id: int,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    return [_read(t) for t in list_templates(db, manager_id, include_inactive)]


@router.put("/recurring-templates/{template_id}", response_model=RecurringTemplateUpdateResponse)
def put_template(
    template_id: int,
    data: RecurringTemplateUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Update a template; re-activation generates its slots."""
    changes = data.model_dump(exclude_none=True)
    template, result = update_template(db, template_id, changes, redis=redis)
    return RecurringTemplateUpdateResponse(
        message="Template updated",
        template=_read(template),
        slots=_summary(result) if result is not None else None,
    )


@router.delete("/recurring-templates/{template_id}", response_model=RecurringTemplateDeleteResponse)
def remove_template(
    template_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Delete a template with its unbooked slots."""
    outcome = delete_template(db, template_id, redis)
    return RecurringTemplateDeleteResponse(
        message="Recurring template deleted",
        deleted_slots=outcome["deleted_slots"],
        detached_booked=outcome["detached_booked"],
    )


@router.post("/recurring-templates/{template_id}/generate", response_model=GenerationSummary)
def generate(
    template_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Extend the template horizon from today (idempotent)."""
    return _summary(regenerate_template(db, template_id, redis=redis))


@router.post("/recurring-schedule/parse", response_model=ParsedScheduleRead)
def parse_schedule_text(data: ScheduleParseRequest):
    """Recognise a free-text reception schedule; unknown text comes back as custom."""
    rule = parse_schedule(data.text)
    return ParsedScheduleRead(
        cadence=rule.cadence,
        weekday=rule.weekday,
        week_number=rule.week_number,
        start_time=rule.start_time,
        end_time=rule.end_time,
        slot_duration_minutes=rule.slot_duration_minutes,
        months_ahead=rule.months_ahead,
        is_bookable=rule.cadence != Cadence.CUSTOM,
        description=describe(rule),
    )
