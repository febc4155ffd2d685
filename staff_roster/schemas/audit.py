"""Activity log schemas."""

from datetime import datetime
from typing import Any, Optional

from staff_roster.schemas.base import CamelModel


class AuditLogResponse(CamelModel):
    id: int
    store_id: Optional[int] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    changes: Optional[dict[str, Any]] = None
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
