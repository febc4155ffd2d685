"""Shift definition schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from staff_roster.schemas.base import TIME_PATTERN, CamelModel


class ShiftDefinitionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    display_order: Optional[int] = Field(default=None, ge=0)


class ShiftDefinitionUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    display_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class ShiftDefinitionResponse(CamelModel):
    id: int
    store_id: int
    name: str
    shift_type: Optional[str] = None
    start_time: str
    end_time: str
    duration_hours: float
    is_active: bool
    display_order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReorderRequest(CamelModel):
    shift_ids: List[int] = Field(..., min_length=1)
