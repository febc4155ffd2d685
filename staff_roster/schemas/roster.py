"""Roster, slot and actuals schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import Field, model_validator

from staff_roster.models.roster import AttendanceStatus, RosterStatus, SlotStatus
from staff_roster.schemas.base import TIME_PATTERN, CamelModel
from staff_roster.schemas.user import UserSummary


# ============== Coverage ==============

class CoverageMetrics(CamelModel):
    total_slots: int = 0
    filled_slots: int = 0
    vacant_slots: int = 0
    coverage_percentage: float = 0.0
    min_required_staff: int = 0
    actual_staff: int = 0
    warnings: List[str] = Field(default_factory=list)


# ============== Roster upsert ==============

class SlotInput(CamelModel):
    """A planned slot as submitted by the roster editor.

    Start/end default to the matching shift definition when omitted.
    """

    user_id: Optional[int] = None
    assigned_tasks: List[int] = Field(default_factory=list)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    status: SlotStatus = SlotStatus.DRAFT
    notes: Optional[str] = Field(default=None, max_length=2000)


class RosterUpsert(CamelModel):
    """Create-or-replace body for ``POST /rosters``.

    Older clients send ``shiftType`` (morning/evening) instead of a shift
    name; that is mapped onto the matching default shift name.
    """

    date: dt.date
    shift_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    shift_type: Optional[str] = Field(default=None, max_length=20)
    store_id: Optional[int] = None
    status: Optional[RosterStatus] = None
    template_id: Optional[int] = None
    slots: List[SlotInput] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def require_shift(self) -> "RosterUpsert":
        if self.shift_name:
            self.shift_name = self.shift_name.strip()
        if not self.shift_name:
            if not self.shift_type:
                raise ValueError("shiftName is required")
            self.shift_name = f"{self.shift_type.strip().capitalize()} Shift"
        return self


# ============== Read models ==============

class SlotResponse(CamelModel):
    id: int
    roster_id: int
    user_id: Optional[int] = None
    user: Optional[UserSummary] = None
    shift_name: str
    date: dt.date
    assigned_tasks: List[int] = Field(default_factory=list)
    start_time: str
    end_time: str
    status: str
    notes: Optional[str] = None

    actual_user_id: Optional[int] = None
    actual_user: Optional[UserSummary] = None
    actual_start_time: Optional[str] = None
    actual_end_time: Optional[str] = None
    actual_tasks_completed: List[int] = Field(default_factory=list)
    attendance_status: Optional[str] = None
    substitution_reason: Optional[str] = None
    actual_notes: Optional[str] = None
    checked_in_at: Optional[dt.datetime] = None
    checked_in_by: Optional[int] = None
    checked_out_at: Optional[dt.datetime] = None
    checked_out_by: Optional[int] = None


class RosterResponse(CamelModel):
    id: int
    store_id: int
    date: dt.date
    shift_name: str
    shift_type: Optional[str] = None
    status: str
    coverage: Optional[CoverageMetrics] = None
    slots: List[SlotResponse] = Field(default_factory=list)
    published_at: Optional[dt.datetime] = None
    published_by: Optional[int] = None
    template_id: Optional[int] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class RosterDeleteResult(CamelModel):
    roster_id: int
    deleted: bool = True
    already_deleted: bool = False


# ============== Actuals ==============

class ActualsUpdate(CamelModel):
    """Manager edit of a slot's actuals. Only fields that are sent are applied."""

    actual_user_id: Optional[int] = None
    actual_start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    actual_end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    actual_tasks_completed: Optional[List[int]] = None
    attendance_status: Optional[AttendanceStatus] = None
    substitution_reason: Optional[str] = Field(default=None, max_length=2000)
    actual_notes: Optional[str] = Field(default=None, max_length=2000)


class SlotActualsItem(ActualsUpdate):
    slot_id: int


class RecordActualsRequest(ActualsUpdate):
    """Body of ``PATCH /rosters/{id}/actuals``: one slot, or ``actuals`` for many."""

    slot_id: Optional[int] = None
    actuals: Optional[List[SlotActualsItem]] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def require_target(self) -> "RecordActualsRequest":
        if self.actuals is None and self.slot_id is None:
            raise ValueError("Either slotId or actuals is required")
        return self


class BulkActualsError(CamelModel):
    slot_id: int
    error: str


class BulkActualsResult(CamelModel):
    slots_updated: int = 0
    total_requested: int = 0
    slots: List[SlotResponse] = Field(default_factory=list)
    errors: List[BulkActualsError] = Field(default_factory=list)


class CheckInRequest(CamelModel):
    slot_id: Optional[int] = None
    actual_start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=2000)


class CheckOutRequest(CamelModel):
    slot_id: Optional[int] = None
    actual_end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=2000)


# ============== Availability ==============

class StaffAvailability(CamelModel):
    date: dt.date
    shift_name: str
    roster_id: Optional[int] = None
    total_staff: int = 0
    engaged_count: int = 0
    available_count: int = 0
    engagement_percentage: float = 0.0
    engaged: List[UserSummary] = Field(default_factory=list)
    available: List[UserSummary] = Field(default_factory=list)
