"""User schemas."""

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import EmailStr, Field, field_validator

from staff_roster.models.user import ExperienceLevel, PPType
from staff_roster.schemas.base import CamelModel
from staff_roster.schemas.role import RoleSummary


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class UserCreate(CamelModel):
    """Schema for creating a staff member."""

    employee_id: str = Field(..., min_length=1, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(default="", max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    role_id: int
    experience_level: ExperienceLevel
    pp_type: Optional[PPType] = None
    week_offs_count: int = Field(default=0, ge=0, le=7)
    default_shift_preference: Optional[str] = Field(default=None, max_length=255)
    store_id: Optional[int] = None

    @field_validator("email", "phone", "default_shift_preference", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("employee_id", "first_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class UserUpdate(CamelModel):
    """Schema for updating a staff member. Only sent fields are applied."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    role_id: Optional[int] = None
    experience_level: Optional[ExperienceLevel] = None
    pp_type: Optional[PPType] = None
    week_offs_count: Optional[int] = Field(default=None, ge=0, le=7)
    # Range and count are checked by the service so the error carries a reason
    week_off_days: Optional[List[int]] = None
    default_shift_preference: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None

    @field_validator("email", "phone", "default_shift_preference", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class UserDeleteRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class UserSummary(CamelModel):
    id: int
    employee_id: str
    first_name: str
    last_name: str
    role: Optional[RoleSummary] = None


class UserResponse(UserSummary):
    """Schema for staff member response."""

    store_id: int
    email: Optional[str] = None
    phone: Optional[str] = None
    role_id: int
    experience_level: str
    pp_type: Optional[str] = None
    week_offs_count: int = 0
    week_off_days: List[int] = Field(default_factory=list)
    default_shift_preference: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class UserCreateResult(CamelModel):
    user: UserResponse
    # Only returned when the account was provisioned without a password
    temporary_password: Optional[str] = None


class ImpactedSlot(CamelModel):
    roster_id: int
    slot_id: int
    date: date
    shift_name: str


class UserDeleteResult(CamelModel):
    user: UserResponse
    impacted_slots: List[ImpactedSlot] = Field(default_factory=list)
    can_reassign: bool = False


# ============== Bulk operations ==============

class BulkImportRow(CamelModel):
    """One row of a bulk import; validated row by row by the service."""

    employee_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role_id: Optional[int] = None
    experience_level: Optional[str] = None
    pp_type: Optional[str] = None
    week_offs_count: Optional[Any] = None
    default_shift_preference: Optional[str] = None


class BulkImportRequest(CamelModel):
    users: List[BulkImportRow] = Field(..., min_length=1, max_length=1000)
    skip_duplicates: bool = False


class BulkImportError(CamelModel):
    row: int
    employee_id: Optional[str] = None
    error: str


class BulkImportResult(CamelModel):
    created: int = 0
    skipped: int = 0
    errors: List[BulkImportError] = Field(default_factory=list)
    users: List[UserResponse] = Field(default_factory=list)


class AutoDeactivateRequest(CamelModel):
    user_ids: List[int] = Field(..., min_length=1)
    reason: Optional[str] = None


class DeactivationError(CamelModel):
    user_id: int
    error: str


class AutoDeactivateResult(CamelModel):
    deactivated: List[int] = Field(default_factory=list)
    errors: List[DeactivationError] = Field(default_factory=list)
