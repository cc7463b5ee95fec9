# backend/reception/services/slots/errors.py
"""
Domain errors raised by the slots services.

Each error carries the HTTP status the API layer answers with.
"""


class ReceptionError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ReceptionError):
    """Malformed template or booking payload; nothing was written."""
    status_code = 422


class NotFound(ReceptionError):
    """Unknown slot, manager or template."""
    status_code = 404


class SlotUnavailable(ReceptionError):
    """Slot is already booked or withdrawn (or the booking race was lost)."""
    status_code = 409


class NotBooked(ReceptionError):
    """Cancellation requested for a slot that holds no booking."""
    status_code = 409
