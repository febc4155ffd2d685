"""SQLAlchemy models."""

from staff_roster.models.store import Store
from staff_roster.models.role import Role
from staff_roster.models.user import User, ExperienceLevel, PPType
from staff_roster.models.task import Task
from staff_roster.models.shift_definition import ShiftDefinition, ShiftType
from staff_roster.models.roster import (
    Roster,
    RosterSlot,
    RosterDeletion,
    RosterStatus,
    SlotStatus,
    AttendanceStatus,
)
from staff_roster.models.audit import AuditLogEntry

__all__ = [
    "Store",
    "Role",
    "User",
    "ExperienceLevel",
    "PPType",
    "Task",
    "ShiftDefinition",
    "ShiftType",
    "Roster",
    "RosterSlot",
    "RosterDeletion",
    "RosterStatus",
    "SlotStatus",
    "AttendanceStatus",
    "AuditLogEntry",
]
