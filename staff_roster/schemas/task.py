"""Task schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from staff_roster.models.user import ExperienceLevel
from staff_roster.schemas.base import CamelModel


class TaskCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(default="operations", min_length=1, max_length=100)
    required_experience: Optional[ExperienceLevel] = None
    estimated_duration: Optional[int] = Field(default=None, ge=0, le=24 * 60)


class TaskUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    required_experience: Optional[ExperienceLevel] = None
    estimated_duration: Optional[int] = Field(default=None, ge=0, le=24 * 60)
    is_active: Optional[bool] = None


class TaskResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    required_experience: Optional[str] = None
    estimated_duration: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
