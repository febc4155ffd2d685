"""Store settings routes."""

from fastapi import APIRouter, Depends

from staff_roster.core.rbac import Actor, require_permission
from staff_roster.core.rbac_policy import Permission
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.store import StoreSettingsUpdate
from staff_roster.services.store_service import StoreService

router = APIRouter()


@router.get("", dependencies=[Depends(require_permission(Permission.VIEW_ROSTER))])
def get_store_settings(db: DbSession, ctx: Actor):
    return success_response(StoreService(db).get_settings(ctx.store_id))


@router.put("")
def update_store_settings(data: StoreSettingsUpdate, db: DbSession, ctx: Actor):
    """Merge a partial update into the caller's store settings."""
    return success_response(StoreService(db).update_settings(ctx, data))
