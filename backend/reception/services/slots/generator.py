# backend/reception/services/slots/generator.py
"""
Slot generation: expands recurrence templates into concrete reception slots.

Guarantees:
✓ Each template invocation is all-or-nothing (one transaction)
✓ Re-running is idempotent: natural key (manager_id, date, start_time)
  is skipped if present, also under concurrent invocation (ON CONFLICT DO NOTHING)
✓ New slots never overlap an existing slot of the same manager; runs for
  one manager are serialized by a lock taken before the overlap check

Does NOT:
✗ Delete or alter existing slots (booked or not)
✗ Expand inactive or custom templates
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from redis import Redis
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.reception import Managers, RecurringTemplates, ReceptionSlots
from .config import ReceptionConfig, get_reception_config
from .errors import ReceptionError, ValidationError
from .invalidator import invalidate_manager_days
from .lookups import require_manager
from .recurrence import Cadence, RecurrenceRule, find_recurring_dates, split_window

logger = logging.getLogger(__name__)

Window = tuple[datetime, datetime]


@dataclass
class GenerationResult:
    """Outcome of one generation call."""
    created: int = 0
    skipped: int = 0  # natural key already present
    conflicts: int = 0  # would overlap an existing slot
    dates: list[date] = field(default_factory=list)
    template_id: int | None = None


def expand_rule(rule: RecurrenceRule, start: date) -> dict[date, list[Window]]:
    """Map each matching date to its slot windows. The rule must be validated."""
    return {
        day: split_window(day, rule.start_time, rule.end_time, rule.slot_duration_minutes)
        for day in find_recurring_dates(rule, start)
    }


def generate_slots(
    db: Session,
    template: RecurringTemplates,
    start: date | None = None,
    config: ReceptionConfig | None = None,
    redis: Redis | None = None,
) -> GenerationResult:
    """
    Materialize slots for an active template from `start` (default today).

    Raises:
        ValidationError: template is inactive or malformed; nothing is written.
    """
    config = config or get_reception_config()
    if not template.is_active:
        raise ValidationError(f"Template {template.id} is inactive")

    rule = RecurrenceRule.from_template(template)
    rule.validate(config)

    manager_id = template.manager_id
    template_id = template.id
    windows = expand_rule(rule, start or date.today())

    try:
        result = persist_windows(db, manager_id, template_id, windows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Slot generation failed for template={template_id}")
        raise

    if result.created:
        invalidate_manager_days(redis, manager_id, result.dates)

    logger.info(
        f"Generated slots for template={template_id} manager={manager_id}: "
        f"created={result.created} skipped={result.skipped} "
        f"conflicts={result.conflicts} dates={len(result.dates)}"
    )
    return result


def create_day_slots(
    db: Session,
    manager_id: int,
    day: date,
    start_time: str,
    end_time: str,
    slot_duration: int | None = None,
    config: ReceptionConfig | None = None,
    redis: Redis | None = None,
) -> GenerationResult:
    """Create slots for a single one-off reception window."""
    config = config or get_reception_config()
    require_manager(db, manager_id)

    duration = slot_duration or config.default_slot_duration_minutes
    windows = split_window(day, start_time, end_time, duration)
    if not windows:
        raise ValidationError(
            f"Slot duration {duration} min does not fit into {start_time}-{end_time}"
        )

    try:
        result = persist_windows(db, manager_id, None, {day: windows})
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Slot creation failed for manager={manager_id} date={day}")
        raise

    if result.created:
        invalidate_manager_days(redis, manager_id, [day])

    logger.info(
        f"Created {result.created} slots for manager={manager_id} on {day} "
        f"(skipped={result.skipped}, conflicts={result.conflicts})"
    )
    return result


def generate_all_active(
    db: Session,
    start: date | None = None,
    redis: Redis | None = None,
) -> list[GenerationResult]:
    """
    Re-run every active template (horizon extension). Custom templates
    have nothing to expand and are left out.

    A failing template is logged and skipped; the others still run.
    """
    templates = (
        db.query(RecurringTemplates)
        .filter(
            RecurringTemplates.is_active.is_(True),
            RecurringTemplates.cadence != Cadence.CUSTOM.value,
        )
        .order_by(RecurringTemplates.id)
        .all()
    )

    results = []
    for template in templates:
        template_id = template.id
        try:
            results.append(generate_slots(db, template, start=start, redis=redis))
        except (ReceptionError, SQLAlchemyError) as e:
            logger.error(f"Skipping template={template_id} during horizon extension: {e}")
    return results


# ── Persistence ──────────────────────────────────────────────────────────


def persist_windows(
    db: Session,
    manager_id: int,
    template_id: int | None,
    windows_by_date: dict[date, list[Window]],
) -> GenerationResult:
    """
    Insert windows as available slots inside the caller's transaction.

    Does not commit.
    """
    dates = sorted(windows_by_date)
    result = GenerationResult(dates=dates, template_id=template_id)
    if not dates:
        return result

    _lock_manager(db, manager_id)
    taken = _existing_windows(db, manager_id, dates[0], dates[-1])
    insert = _dialect_insert(db)

    for day in dates:
        day_taken = taken.setdefault(day, [])
        for start, end in windows_by_date[day]:
            if any(s == start for s, _ in day_taken):
                result.skipped += 1
                continue
            if any(s < end and start < e for s, e in day_taken):
                result.conflicts += 1
                continue

            stmt = (
                insert(ReceptionSlots)
                .values(
                    manager_id=manager_id,
                    template_id=template_id,
                    date=day,
                    start_time=start,
                    end_time=end,
                    is_available=True,
                    is_booked=False,
                )
                .on_conflict_do_nothing(index_elements=["manager_id", "date", "start_time"])
            )
            if db.execute(stmt).rowcount:
                result.created += 1
                day_taken.append((start, end))
            else:
                # Inserted concurrently by another generator run
                result.skipped += 1

    return result


def _existing_windows(
    db: Session,
    manager_id: int,
    first: date,
    last: date,
) -> dict[date, list[Window]]:
    rows = (
        db.query(ReceptionSlots.date, ReceptionSlots.start_time, ReceptionSlots.end_time)
        .filter(
            ReceptionSlots.manager_id == manager_id,
            ReceptionSlots.date >= first,
            ReceptionSlots.date <= last,
        )
        .all()
    )
    taken: dict[date, list[Window]] = {}
    for day, start, end in rows:
        taken.setdefault(day, []).append((start, end))
    return taken


def _lock_manager(db: Session, manager_id: int) -> None:
    """
    Serialize generation per manager until the transaction ends.

    PostgreSQL: FOR NO KEY UPDATE on the manager row, which does not conflict
    with the key-share lock a template INSERT holds on it. SQLite: the no-op
    UPDATE takes the database write lock before the overlap check reads; a
    concurrent run waits on the busy timeout.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(select(Managers.id).where(Managers.id == manager_id).with_for_update(key_share=True))
        return
    db.execute(
        update(Managers)
        .where(Managers.id == manager_id)
        .values(is_active=Managers.is_active)
        .execution_options(synchronize_session=False)
    )


def _dialect_insert(db: Session):
    """INSERT construct supporting ON CONFLICT DO NOTHING for the bound dialect."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert
