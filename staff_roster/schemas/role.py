"""Role schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from staff_roster.core.rbac_policy import Permission, RoleKind
from staff_roster.models.user import ExperienceLevel, PPType
from staff_roster.schemas.base import CamelModel


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    kind: RoleKind = RoleKind.CUSTOM
    permissions: List[Permission] = Field(default_factory=list)
    default_task_preferences: Optional[List[int]] = None
    default_experience_level: Optional[ExperienceLevel] = None
    default_pp_type: Optional[PPType] = None
    is_editable: bool = True


class RoleUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    kind: Optional[RoleKind] = None
    permissions: Optional[List[Permission]] = None
    default_task_preferences: Optional[List[int]] = None
    default_experience_level: Optional[ExperienceLevel] = None
    default_pp_type: Optional[PPType] = None


class RoleSummary(CamelModel):
    id: int
    name: str
    kind: RoleKind


class RoleResponse(RoleSummary):
    description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    default_task_preferences: Optional[List[int]] = None
    default_experience_level: Optional[str] = None
    default_pp_type: Optional[str] = None
    is_editable: bool
    is_system_role: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
