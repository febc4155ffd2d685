"""Shift definition model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from staff_roster.db.base import Base, TimestampMixin
from staff_roster.models.validators import in_range, non_negative, one_of, time_of_day

MAX_SHIFT_DURATION_HOURS = 10


class ShiftType(str, Enum):
    """Legacy enumerated shift type, kept while free-text names roll out."""
    MORNING = "morning"
    EVENING = "evening"


class ShiftDefinition(Base, TimestampMixin):
    """Store-scoped shift template such as "Morning Shift" 08:00-17:00."""

    __tablename__ = "shift_definitions"
    __table_args__ = (
        UniqueConstraint("store_id", "name", name="uq_shift_definitions_store_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    shift_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_hours: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @validates("start_time", "end_time")
    def _validate_time(self, key, value):
        return time_of_day(key, value)

    @validates("duration_hours")
    def _validate_duration(self, key, value):
        non_negative(key, value)
        return in_range(key, value, 0, MAX_SHIFT_DURATION_HOURS)

    @validates("shift_type")
    def _validate_shift_type(self, key, value):
        return one_of(key, value, (s.value for s in ShiftType))
