"""Role routes."""

from fastapi import APIRouter, status

from staff_roster.core.rbac import Actor, CurrentUser
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.role import RoleCreate, RoleResponse, RoleUpdate
from staff_roster.services.role_service import RoleService

router = APIRouter()


@router.get("")
def list_roles(db: DbSession, current_user: CurrentUser):
    """List all roles, system roles first."""
    roles = RoleService(db).list_roles()
    return success_response([RoleResponse.model_validate(r) for r in roles])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_role(data: RoleCreate, db: DbSession, ctx: Actor):
    role = RoleService(db).create_role(ctx, data)
    return success_response(RoleResponse.model_validate(role))


@router.get("/{role_id}")
def get_role(role_id: int, db: DbSession, current_user: CurrentUser):
    return success_response(RoleResponse.model_validate(RoleService(db).get_role(role_id)))


@router.put("/{role_id}")
def update_role(role_id: int, data: RoleUpdate, db: DbSession, ctx: Actor):
    role = RoleService(db).update_role(ctx, role_id, data)
    return success_response(RoleResponse.model_validate(role))


@router.delete("/{role_id}")
def delete_role(role_id: int, db: DbSession, ctx: Actor):
    RoleService(db).delete_role(ctx, role_id)
    return success_response({"id": role_id, "deleted": True})
