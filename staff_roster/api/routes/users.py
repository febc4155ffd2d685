"""Staff user routes."""

from typing import Optional

from fastapi import APIRouter, Body, Query, Request, status

from staff_roster.core.rate_limit import user_limiter
from staff_roster.core.rbac import Actor, CurrentUser
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from staff_roster.schemas.user import (
    AutoDeactivateRequest,
    BulkImportRequest,
    UserCreate,
    UserCreateResult,
    UserDeleteRequest,
    UserDeleteResult,
    UserResponse,
    UserUpdate,
)
from staff_roster.services.user_service import UserService

router = APIRouter()


@router.get("")
def list_users(
    db: DbSession,
    current_user: CurrentUser,
    include_inactive: bool = Query(False, alias="includeInactive"),
    role_id: Optional[int] = Query(None, alias="roleId"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
):
    """List the store's staff, active only unless ``includeInactive``."""
    items, total = UserService(db).list_users(
        current_user.store_id,
        include_inactive=include_inactive,
        role_id=role_id,
        search=search,
        page=page,
        page_size=page_size,
    )
    return success_response(PaginatedResponse[UserResponse].create(
        items=[UserResponse.model_validate(u) for u in items],
        total=total,
        page=page,
        page_size=page_size,
    ))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(data: UserCreate, db: DbSession, ctx: Actor):
    """Create a staff user. A temporary password is returned when none was given."""
    user, temporary_password = UserService(db).create_user(ctx, data)
    return success_response(UserCreateResult(
        user=UserResponse.model_validate(user),
        temporary_password=temporary_password,
    ))


@router.post("/bulk-import")
@user_limiter.limit("10/minute")
def bulk_import_users(request: Request, data: BulkImportRequest, db: DbSession, ctx: Actor):
    """Create many users at once; each row succeeds or fails on its own."""
    return success_response(UserService(db).bulk_import(ctx, data))


@router.post("/auto-deactivate")
def auto_deactivate_users(data: AutoDeactivateRequest, db: DbSession, ctx: Actor):
    return success_response(UserService(db).auto_deactivate(ctx, data))


@router.get("/{user_id}")
def get_user(user_id: int, db: DbSession, current_user: CurrentUser):
    user = UserService(db).get_user(current_user.store_id, user_id)
    return success_response(UserResponse.model_validate(user))


@router.put("/{user_id}")
def update_user(user_id: int, data: UserUpdate, db: DbSession, ctx: Actor):
    user = UserService(db).update_user(ctx, user_id, data)
    return success_response(UserResponse.model_validate(user))


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: DbSession,
    ctx: Actor,
    data: Optional[UserDeleteRequest] = Body(None),
):
    """Soft-delete a user.

    The response lists the upcoming roster slots that still name the user so
    the caller can reassign them.
    """
    user, impacted = UserService(db).delete_user(ctx, user_id, reason=data.reason if data else None)
    return success_response(UserDeleteResult(
        user=UserResponse.model_validate(user),
        impacted_slots=impacted,
        can_reassign=bool(impacted),
    ))
