"""Audit log model."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from staff_roster.db.base import Base


class AuditLogEntry(Base):
    """Append-only audit log entry."""
    __tablename__ = "audit_log_entries"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, nullable=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    user_name = Column(String(200), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(String(50), nullable=True, index=True)
    entity_name = Column(String(255), nullable=True)
    changes = Column(JSON, nullable=True)  # field -> {"old": ..., "new": ...}
    details = Column(JSON, nullable=True)  # free-form metadata
    ip_address = Column(String(50), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
