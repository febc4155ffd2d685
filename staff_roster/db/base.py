"""SQLAlchemy declarative base and common utilities."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class AuthorshipMixin:
    """Who created / last updated the row (user ids, not foreign keys)."""

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class SoftDeleteMixin:
    """Soft-delete support via ``deleted_at``.

    Rows are never physically removed while rosters may still reference
    them. Call ``soft_delete()`` to stamp ``deleted_at`` plus who did it and
    why, and use ``not_deleted()`` as a query filter.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True,
    )
    deleted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deletion_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def soft_delete(self, deleted_by: Optional[int] = None, reason: Optional[str] = None) -> None:
        """Mark this row as deleted."""
        self.deleted_at = utcnow()
        self.deleted_by = deleted_by
        self.deletion_reason = reason

    @classmethod
    def not_deleted(cls):
        """SQLAlchemy filter expression: ``WHERE deleted_at IS NULL``."""
        return cls.deleted_at.is_(None)
