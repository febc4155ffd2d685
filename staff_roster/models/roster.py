"""Roster, slot and actuals models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from staff_roster.db.base import AuthorshipMixin, Base, TimestampMixin
from staff_roster.models.validators import one_of, time_of_day, validate_dict, validate_list


class RosterStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SlotStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEFT_EARLY = "left_early"
    SUBSTITUTED = "substituted"


class Roster(Base, TimestampMixin, AuthorshipMixin):
    """One roster per (store, date, shift)."""

    __tablename__ = "rosters"
    __table_args__ = (
        UniqueConstraint("store_id", "date", "shift_name", name="uq_rosters_store_date_shift"),
        # Roster ids must never be reused; delete claims are keyed on them
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    shift_name: Mapped[str] = mapped_column(String(100), nullable=False)
    shift_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # legacy
    status: Mapped[str] = mapped_column(String(20), default=RosterStatus.DRAFT.value, nullable=False)
    coverage: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    template_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    slots = relationship(
        "RosterSlot",
        back_populates="roster",
        cascade="all, delete-orphan",
        order_by="RosterSlot.id",
    )

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, (s.value for s in RosterStatus))

    @validates("coverage")
    def _validate_coverage(self, key, value):
        return validate_dict(key, value)


class RosterSlot(Base, TimestampMixin):
    """A planned assignment within a roster plus its actuals overlay."""

    __tablename__ = "roster_slots"

    id: Mapped[int] = mapped_column(primary_key=True)
    roster_id: Mapped[int] = mapped_column(ForeignKey("rosters.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    shift_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    assigned_tasks: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=SlotStatus.DRAFT.value, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Actuals
    actual_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actual_start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    actual_end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    actual_tasks_completed: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    attendance_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    substitution_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actual_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    checked_in_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    checked_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    checked_out_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    roster = relationship("Roster", back_populates="slots")
    user = relationship("User", foreign_keys=[user_id])
    actual_user = relationship("User", foreign_keys=[actual_user_id])

    @validates("start_time", "end_time", "actual_start_time", "actual_end_time")
    def _validate_time(self, key, value):
        return time_of_day(key, value)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, (s.value for s in SlotStatus))

    @validates("attendance_status")
    def _validate_attendance_status(self, key, value):
        return one_of(key, value, (s.value for s in AttendanceStatus))

    @validates("assigned_tasks", "actual_tasks_completed")
    def _validate_task_lists(self, key, value):
        return validate_list(key, value)

    def clear_actuals(self) -> None:
        """Reset every actuals field to null / empty."""
        self.actual_user_id = None
        self.actual_start_time = None
        self.actual_end_time = None
        self.actual_tasks_completed = []
        self.attendance_status = None
        self.substitution_reason = None
        self.actual_notes = None
        self.checked_in_at = None
        self.checked_in_by = None
        self.checked_out_at = None
        self.checked_out_by = None


class RosterDeletion(Base):
    """Durable claim on a roster delete; the unique roster_id serializes racing deletes."""

    __tablename__ = "roster_deletions"

    id: Mapped[int] = mapped_column(primary_key=True)
    roster_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    deleted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
