"""Task model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from staff_roster.db.base import Base, TimestampMixin
from staff_roster.models.user import ExperienceLevel
from staff_roster.models.validators import non_negative, one_of


class Task(Base, TimestampMixin):
    """Work item that can be assigned to roster slots."""

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), default="operations", nullable=False)
    required_experience: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    estimated_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @validates("required_experience")
    def _validate_required_experience(self, key, value):
        return one_of(key, value, (e.value for e in ExperienceLevel))

    @validates("estimated_duration")
    def _validate_estimated_duration(self, key, value):
        return non_negative(key, value)
