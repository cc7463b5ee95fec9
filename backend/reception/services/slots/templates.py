# backend/reception/services/slots/templates.py
"""
Recurring reception templates: creation from a picked calendar date,
listing, updates and removal.

Deactivating a template stops new slots but keeps the generated ones;
deleting it removes its unbooked slots and detaches the booked ones.
"""

import logging
from datetime import date

from redis import Redis
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.reception import RecurringTemplates, ReceptionSlots
from .config import ReceptionConfig, get_reception_config
from .errors import ValidationError
from .generator import GenerationResult, expand_rule, generate_slots, persist_windows
from .invalidator import invalidate_manager_days
from .lookups import require_manager, require_template
from .recurrence import Cadence, RecurrenceRule, describe, week_number_in_month

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("start_time", "end_time", "slot_duration_minutes", "months_ahead", "is_active")


def template_from_date(
    manager_id: int,
    selected_date: date,
    start_time: str,
    end_time: str,
    slot_duration: int | None = None,
    months_ahead: int | None = None,
    cadence: Cadence = Cadence.NTH_WEEKDAY_OF_MONTH,
    config: ReceptionConfig | None = None,
) -> RecurringTemplates:
    """
    Build (unsaved) template whose pattern is taken from `selected_date`.

    E.g. Monday 2026-08-03 → "first Monday of the month" for
    nth_weekday_of_month, "every Monday" for weekly.
    """
    config = config or get_reception_config()
    cadence = Cadence(cadence)

    weekday = selected_date.weekday() if cadence != Cadence.DAILY else None
    week_number = (
        week_number_in_month(selected_date)
        if cadence == Cadence.NTH_WEEKDAY_OF_MONTH
        else None
    )

    return RecurringTemplates(
        manager_id=manager_id,
        cadence=cadence.value,
        weekday=weekday,
        week_number=week_number,
        start_time=start_time,
        end_time=end_time,
        slot_duration_minutes=slot_duration or config.default_slot_duration_minutes,
        months_ahead=months_ahead or config.default_months_ahead,
        is_active=True,
    )


def create_recurring_schedule(
    db: Session,
    manager_id: int,
    selected_date: date,
    start_time: str,
    end_time: str,
    slot_duration: int | None = None,
    months_ahead: int | None = None,
    cadence: Cadence = Cadence.NTH_WEEKDAY_OF_MONTH,
    today: date | None = None,
    config: ReceptionConfig | None = None,
    redis: Redis | None = None,
) -> tuple[RecurringTemplates, GenerationResult]:
    """
    Save a template derived from `selected_date` and generate its slots,
    starting from max(today, selected_date). Template and slots are written
    in one transaction.

    A custom template is stored as given and generates nothing.
    """
    config = config or get_reception_config()
    require_manager(db, manager_id)

    template = template_from_date(
        manager_id, selected_date, start_time, end_time,
        slot_duration, months_ahead, cadence, config,
    )
    rule = RecurrenceRule.from_template(template)
    if rule.cadence == Cadence.CUSTOM:
        rule.check_fields(config)
        windows = {}
    else:
        rule.validate(config)
        start = max(today or date.today(), selected_date)
        windows = expand_rule(rule, start)

    try:
        db.add(template)
        db.flush()
        result = persist_windows(db, manager_id, template.id, windows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Recurring schedule creation failed for manager={manager_id}")
        raise

    db.refresh(template)
    if result.created:
        invalidate_manager_days(redis, manager_id, result.dates)

    logger.info(
        f"Recurring schedule created: template={template.id} manager={manager_id} "
        f"({describe(rule)}), slots created={result.created}"
    )
    return template, result


def list_templates(
    db: Session,
    manager_id: int,
    include_inactive: bool = False,
) -> list[RecurringTemplates]:
    """Templates of a manager, newest first."""
    require_manager(db, manager_id)

    query = db.query(RecurringTemplates).filter(RecurringTemplates.manager_id == manager_id)
    if not include_inactive:
        query = query.filter(RecurringTemplates.is_active.is_(True))
    return query.order_by(RecurringTemplates.created_at.desc(), RecurringTemplates.id.desc()).all()


def update_template(
    db: Session,
    template_id: int,
    changes: dict,
    today: date | None = None,
    config: ReceptionConfig | None = None,
    redis: Redis | None = None,
) -> tuple[RecurringTemplates, GenerationResult | None]:
    """
    Apply field changes. Re-activating an inactive template generates its slots.

    A template that ends up active must be expandable (custom ones only need
    well-formed fields). An inactive one is only checked when fields other
    than is_active change, so any template can be switched off.

    Already generated slots are never altered by an update.
    """
    config = config or get_reception_config()
    template = require_template(db, template_id)
    was_active = bool(template.is_active)

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    for name, value in changes.items():
        if value is not None:
            setattr(template, name, value)

    try:
        rule = RecurrenceRule.from_template(template)
        if template.is_active and rule.cadence != Cadence.CUSTOM:
            rule.validate(config)
        elif template.is_active or set(changes) - {"is_active"}:
            rule.check_fields(config)
    except ValidationError:
        db.rollback()
        raise

    db.commit()
    db.refresh(template)
    logger.info(f"Template updated: template={template_id} fields={sorted(changes)}")

    result = None
    if template.is_active and not was_active and rule.cadence != Cadence.CUSTOM:
        result = generate_slots(db, template, start=today, config=config, redis=redis)
    return template, result


def delete_template(
    db: Session,
    template_id: int,
    redis: Redis | None = None,
) -> dict:
    """
    Delete a template with its unbooked slots; booked slots stay, detached.

    Returns:
        {"deleted_slots": int, "detached_booked": int}
    """
    template = require_template(db, template_id)
    manager_id = template.manager_id

    deleted = db.execute(
        delete(ReceptionSlots)
        .where(
            ReceptionSlots.template_id == template_id,
            ReceptionSlots.is_booked.is_(False),
        )
        .execution_options(synchronize_session=False)
    ).rowcount
    detached = db.execute(
        update(ReceptionSlots)
        .where(ReceptionSlots.template_id == template_id)
        .values(template_id=None)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.delete(template)
    db.commit()

    if deleted:
        invalidate_manager_days(redis, manager_id)

    logger.info(
        f"Template deleted: template={template_id} manager={manager_id} "
        f"deleted_slots={deleted} detached_booked={detached}"
    )
    return {"deleted_slots": deleted, "detached_booked": detached}


def regenerate_template(
    db: Session,
    template_id: int,
    today: date | None = None,
    redis: Redis | None = None,
) -> GenerationResult:
    """Extend a template's horizon on demand (idempotent)."""
    template = require_template(db, template_id)
    return generate_slots(db, template, start=today, redis=redis)


def describe_template(template: RecurringTemplates) -> str:
    try:
        return describe(RecurrenceRule.from_template(template))
    except ValidationError:
        return f"Unknown schedule, {template.start_time}-{template.end_time}"
