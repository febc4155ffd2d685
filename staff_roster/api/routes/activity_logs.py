"""Activity log routes."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from staff_roster.core.rbac import require_permission
from staff_roster.core.rbac_policy import Permission
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.models.audit import AuditLogEntry
from staff_roster.schemas.audit import AuditLogResponse
from staff_roster.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse, paginate_query
from staff_roster.services.audit_service import AuditContext

router = APIRouter()


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


@router.get("")
def get_activity_logs(
    db: DbSession,
    ctx: AuditContext = Depends(require_permission(Permission.VIEW_AUDIT_LOG)),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    user_id: Optional[int] = Query(None, alias="userId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
):
    """Audit entries for the caller's store, newest first."""
    query = db.query(AuditLogEntry).filter(AuditLogEntry.store_id == ctx.store_id)

    if action:
        query = query.filter(AuditLogEntry.action == action.upper())
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLogEntry.entity_id == entity_id)
    if user_id is not None:
        query = query.filter(AuditLogEntry.user_id == user_id)
    if start_date:
        query = query.filter(AuditLogEntry.created_at >= _day_start(start_date))
    if end_date:
        # endDate is inclusive
        query = query.filter(AuditLogEntry.created_at < _day_start(end_date + timedelta(days=1)))

    query = query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
    items, total = paginate_query(query, page, page_size)
    return success_response(PaginatedResponse[AuditLogResponse].create(
        items=[AuditLogResponse.model_validate(e) for e in items],
        total=total,
        page=page,
        page_size=page_size,
    ))
