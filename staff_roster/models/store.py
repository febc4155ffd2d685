"""Store model."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from staff_roster.db.base import Base, TimestampMixin
from staff_roster.models.validators import validate_dict


class Store(Base, TimestampMixin):
    """A location that scopes users, rosters, shifts and settings."""

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    timezone: Mapped[str] = mapped_column(String(100), default="UTC", nullable=False)
    # Raw StoreSettings document; read it through store_service.get_store_settings()
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    @validates("settings")
    def _validate_settings(self, key, value):
        return validate_dict(key, value)
