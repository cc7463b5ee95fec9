# backend/reception/schemas/slots.py
"""
Pydantic schemas for reception slots API.

Request bodies accept the camelCase keys used by the web client
(fullName, startTime, ...) as well as snake_case.
"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is not None and not TIME_RE.match(v):
        raise ValueError("Time must be in HH:MM format")
    return v


class SlotRead(BaseModel):
    """Slot as shown to visitors."""
    id: int
    manager_id: int
    date: date
    start_time: datetime
    end_time: datetime
    is_available: bool
    is_booked: bool

    model_config = {"from_attributes": True}


class SlotAdminRead(SlotRead):
    """Slot with booking details (administrative views)."""
    template_id: Optional[int] = None
    booked_by: Optional[str] = None
    booked_email: Optional[str] = None
    notes: Optional[str] = None
    booked_at: Optional[datetime] = None


class SlotsDay(BaseModel):
    date: date
    slots: list[SlotAdminRead]

    model_config = {"from_attributes": True}


class SlotsCalendarResponse(BaseModel):
    """Manager slots grouped by day for the admin calendar."""
    manager_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: list[SlotsDay]
    total_slots: int


class DayAvailability(BaseModel):
    date: date
    has_slots: bool
    open_slots_count: int = 0


class DayAvailabilityResponse(BaseModel):
    """Per-day open slot counts for the visitor calendar."""
    manager_id: int
    start_date: date
    end_date: date
    days: list[DayAvailability]


class BookSlotRequest(BaseModel):
    email: EmailStr
    full_name: str = Field(alias="fullName", min_length=1, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = {"populate_by_name": True}

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        return v


class SlotActionResponse(BaseModel):
    message: str
    slot: SlotAdminRead


class CreateSlotsRequest(BaseModel):
    """One-off reception window on a single date."""
    date: date
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    slot_duration: Optional[int] = Field(None, alias="slotDuration", gt=0)

    model_config = {"populate_by_name": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)


class GenerationSummary(BaseModel):
    count: int
    skipped: int = 0
    conflicts: int = 0
    dates: list[date]


class CreateSlotsResponse(BaseModel):
    message: str
    slots: GenerationSummary


class DeleteSlotsRequest(BaseModel):
    date: date
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")

    model_config = {"populate_by_name": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)


class DeleteSlotsResponse(BaseModel):
    message: str
    deleted_count: int
    kept_booked: int
