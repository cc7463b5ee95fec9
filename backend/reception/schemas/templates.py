# backend/reception/schemas/templates.py

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..services.slots.recurrence import Cadence
from .slots import GenerationSummary

TIME_RE = re.compile(r"^\d{2}:\d{2}$")


class RecurringScheduleCreate(BaseModel):
    selected_date: date = Field(alias="selectedDate")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    slot_duration: Optional[int] = Field(None, alias="slotDuration", gt=0)
    months_ahead: Optional[int] = Field(None, alias="monthsAhead", gt=0)
    cadence: Cadence = Cadence.NTH_WEEKDAY_OF_MONTH

    model_config = {"populate_by_name": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class RecurringTemplateUpdate(BaseModel):
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    slot_duration_minutes: Optional[int] = Field(None, alias="slotDuration", gt=0)
    months_ahead: Optional[int] = Field(None, alias="monthsAhead", gt=0)
    is_active: Optional[bool] = Field(None, alias="isActive")

    model_config = {"populate_by_name": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class RecurringTemplateRead(BaseModel):
    id: int
    manager_id: int
    cadence: Cadence
    weekday: Optional[int] = None
    week_number: Optional[int] = None
    start_time: str
    end_time: str
    slot_duration_minutes: int
    months_ahead: int
    is_active: bool
    created_at: Optional[datetime] = None
    description: str = ""

    model_config = {"from_attributes": True}


class RecurringScheduleResponse(BaseModel):
    message: str
    template: RecurringTemplateRead
    slots: GenerationSummary


class RecurringTemplateUpdateResponse(BaseModel):
    message: str
    template: RecurringTemplateRead
    slots: Optional[GenerationSummary] = None


class RecurringTemplateDeleteResponse(BaseModel):
    message: str
    deleted_slots: int
    detached_booked: int


class ScheduleParseRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)


class ParsedScheduleRead(BaseModel):
    """Template fields recognised in a free-text schedule."""
    cadence: Cadence
    weekday: Optional[int] = None
    week_number: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slot_duration_minutes: int
    months_ahead: int
    is_bookable: bool
    description: str
