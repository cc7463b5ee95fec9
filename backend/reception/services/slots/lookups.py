# backend/reception/services/slots/lookups.py
"""Entity lookups that raise NotFound instead of returning None."""

from sqlalchemy.orm import Session

from ...models.reception import Managers, RecurringTemplates, ReceptionSlots
from .errors import NotFound


def require_manager(db: Session, manager_id: int, active_only: bool = False) -> Managers:
    manager = db.get(Managers, manager_id)
    if manager is None or (active_only and not manager.is_active):
        raise NotFound(f"Manager {manager_id} not found")
    return manager


def require_template(db: Session, template_id: int) -> RecurringTemplates:
    template = db.get(RecurringTemplates, template_id)
    if template is None:
        raise NotFound(f"Template {template_id} not found")
    return template


def require_slot(db: Session, slot_id: int) -> ReceptionSlots:
    slot = db.get(ReceptionSlots, slot_id)
    if slot is None:
        raise NotFound(f"Slot {slot_id} not found")
    return slot
