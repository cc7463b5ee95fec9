# backend/reception/schemas/managers.py

from typing import Optional
from pydantic import BaseModel, Field


class ManagerCreate(BaseModel):
    full_name: str = Field(alias="fullName", min_length=1)
    position: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")

    model_config = {"populate_by_name": True}


class ManagerRead(BaseModel):
    id: int
    full_name: str
    position: Optional[str] = None
    is_active: bool

    model_config = {"from_attributes": True}
