"""User model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from staff_roster.core.rbac_policy import RoleKind
from staff_roster.db.base import AuthorshipMixin, Base, SoftDeleteMixin, TimestampMixin
from staff_roster.models.validators import day_indices, in_range, one_of

MAX_WEEK_OFF_DAYS = 1


class ExperienceLevel(str, Enum):
    EXPERIENCED = "experienced"
    FRESHER = "fresher"


class PPType(str, Enum):
    """Picker packer subtype."""
    WAREHOUSE = "warehouse"
    AD_HOC = "adHoc"


class User(Base, TimestampMixin, AuthorshipMixin, SoftDeleteMixin):
    """Store staff member and login account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False, index=True)
    experience_level: Mapped[str] = mapped_column(String(20), default=ExperienceLevel.FRESHER.value, nullable=False)
    pp_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    week_offs_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    week_off_days: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    default_shift_preference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    role = relationship("Role", back_populates="users", lazy="joined")
    store = relationship("Store")

    @validates("experience_level")
    def _validate_experience(self, key, value):
        return one_of(key, value, (e.value for e in ExperienceLevel))

    @validates("pp_type")
    def _validate_pp_type(self, key, value):
        return one_of(key, value, (p.value for p in PPType))

    @validates("week_offs_count")
    def _validate_week_offs_count(self, key, value):
        return in_range(key, value, 0, 7)

    @validates("week_off_days")
    def _validate_week_off_days(self, key, value):
        return day_indices(key, value, max_items=MAX_WEEK_OFF_DAYS)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_kind(self) -> Optional[RoleKind]:
        if self.role is None:
            return None
        return RoleKind(self.role.kind)

    @property
    def is_store_manager(self) -> bool:
        return self.role_kind == RoleKind.STORE_MANAGER
