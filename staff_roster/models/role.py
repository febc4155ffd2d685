"""Role model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from staff_roster.core.rbac_policy import Permission, RoleKind
from staff_roster.db.base import AuthorshipMixin, Base, TimestampMixin
from staff_roster.models.validators import each_one_of, one_of, validate_list


class Role(Base, TimestampMixin, AuthorshipMixin):
    """A named permission set.

    ``kind`` is the stable identifier used by the permission lattice; ``name``
    is display text only.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    kind: Mapped[str] = mapped_column(String(50), default=RoleKind.CUSTOM.value, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permissions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    default_task_preferences: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    default_experience_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    default_pp_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_editable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    users = relationship("User", back_populates="role")

    @validates("kind")
    def _validate_kind(self, key, value):
        return one_of(key, value, (k.value for k in RoleKind))

    @validates("permissions")
    def _validate_permissions(self, key, value):
        validate_list(key, value)
        return each_one_of(key, value, (p.value for p in Permission))

    @validates("default_task_preferences")
    def _validate_task_preferences(self, key, value):
        return validate_list(key, value)
