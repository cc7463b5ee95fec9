# backend/reception/services/slots/__init__.py
"""
Reception slots module.

Generation:   recurrence templates → concrete slots (generator, templates)
Booking:      atomic state transitions on a slot (booking)
Availability: read-side queries and the per-day counts cache (availability)
"""

from .config import ReceptionConfig, get_reception_config
from .errors import NotBooked, NotFound, ReceptionError, SlotUnavailable, ValidationError
from .recurrence import Cadence, RecurrenceRule
from .generator import GenerationResult, create_day_slots, generate_all_active, generate_slots
from .booking import book_slot, cancel_booking, purge_slots, restore_slot, withdraw_slot
from .availability import (
    count_available_by_day,
    group_by_day,
    list_all_booked_slots,
    list_available_slots,
    list_manager_slots,
)
from .redis_store import DayCountsRedisStore
from .invalidator import invalidate_manager_days

__all__ = [
    "ReceptionConfig",
    "get_reception_config",
    "ReceptionError",
    "ValidationError",
    "NotFound",
    "SlotUnavailable",
    "NotBooked",
    "Cadence",
    "RecurrenceRule",
    "GenerationResult",
    "generate_slots",
    "generate_all_active",
    "create_day_slots",
    "book_slot",
    "cancel_booking",
    "withdraw_slot",
    "restore_slot",
    "purge_slots",
    "list_available_slots",
    "list_manager_slots",
    "list_all_booked_slots",
    "group_by_day",
    "count_available_by_day",
    "DayCountsRedisStore",
    "invalidate_manager_days",
]
