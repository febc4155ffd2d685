"""Store settings schemas."""

from typing import List, Optional

from pydantic import Field, model_validator

from staff_roster.core.rbac_policy import Permission
from staff_roster.schemas.base import CamelModel


class StoreSettings(CamelModel):
    """Per-store roster policy, including Shift In Charge delegation."""

    min_staff_per_shift: int = Field(default=3, ge=0, le=500)
    max_staff_per_shift: int = Field(default=20, ge=1, le=500)
    require_coverage_validation: bool = False
    allow_overlap: bool = False
    default_shift_duration: float = Field(default=9, gt=0, le=10)
    week_start_day: int = Field(default=1, ge=0, le=6)
    enable_audit_log: bool = True
    si_permissions: List[Permission] = Field(default_factory=list)
    si_can_delete_staff: bool = False
    si_can_modify_sm: bool = False
    si_can_publish_roster: bool = False

    @model_validator(mode="after")
    def check_staff_bounds(self) -> "StoreSettings":
        if self.max_staff_per_shift < self.min_staff_per_shift:
            raise ValueError("maxStaffPerShift cannot be lower than minStaffPerShift")
        return self


class StoreSettingsUpdate(CamelModel):
    """Partial settings update; omitted fields keep their current value."""

    min_staff_per_shift: Optional[int] = Field(default=None, ge=0, le=500)
    max_staff_per_shift: Optional[int] = Field(default=None, ge=1, le=500)
    require_coverage_validation: Optional[bool] = None
    allow_overlap: Optional[bool] = None
    default_shift_duration: Optional[float] = Field(default=None, gt=0, le=10)
    week_start_day: Optional[int] = Field(default=None, ge=0, le=6)
    enable_audit_log: Optional[bool] = None
    si_permissions: Optional[List[Permission]] = None
    si_can_delete_staff: Optional[bool] = None
    si_can_modify_sm: Optional[bool] = None
    si_can_publish_roster: Optional[bool] = None
