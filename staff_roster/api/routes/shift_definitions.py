"""Shift definition routes."""

from fastapi import APIRouter, Query, status

from staff_roster.core.rbac import Actor, CurrentUser
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.shift_definition import (
    ReorderRequest,
    ShiftDefinitionCreate,
    ShiftDefinitionResponse,
    ShiftDefinitionUpdate,
)
from staff_roster.services.shift_definition_service import ShiftDefinitionService

router = APIRouter()


def _dump_all(shifts) -> list:
    return [ShiftDefinitionResponse.model_validate(s) for s in shifts]


@router.get("")
def list_shift_definitions(
    db: DbSession,
    current_user: CurrentUser,
    include_inactive: bool = Query(False, alias="includeInactive"),
):
    """Store shift definitions in display order."""
    shifts = ShiftDefinitionService(db).list_definitions(current_user.store_id, include_inactive=include_inactive)
    return success_response(_dump_all(shifts))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_shift_definition(data: ShiftDefinitionCreate, db: DbSession, ctx: Actor):
    shift = ShiftDefinitionService(db).create_definition(ctx, data)
    return success_response(ShiftDefinitionResponse.model_validate(shift))


# Fixed paths are declared before /{shift_id}
@router.post("/reorder")
def reorder_shift_definitions(data: ReorderRequest, db: DbSession, ctx: Actor):
    shifts = ShiftDefinitionService(db).reorder(ctx, data.shift_ids)
    return success_response(_dump_all(shifts))


@router.post("/initialize")
def initialize_shift_definitions(db: DbSession, ctx: Actor):
    """Create the default Morning and Evening shifts if they are missing."""
    created = ShiftDefinitionService(db).initialize_defaults(ctx, ctx.store_id)
    return success_response({"created": _dump_all(created), "count": len(created)})


@router.get("/{shift_id}")
def get_shift_definition(shift_id: int, db: DbSession, current_user: CurrentUser):
    shift = ShiftDefinitionService(db).get_definition(current_user.store_id, shift_id)
    return success_response(ShiftDefinitionResponse.model_validate(shift))


@router.put("/{shift_id}")
def update_shift_definition(shift_id: int, data: ShiftDefinitionUpdate, db: DbSession, ctx: Actor):
    shift = ShiftDefinitionService(db).update_definition(ctx, shift_id, data)
    return success_response(ShiftDefinitionResponse.model_validate(shift))


@router.delete("/{shift_id}")
def delete_shift_definition(shift_id: int, db: DbSession, ctx: Actor):
    shift = ShiftDefinitionService(db).delete_definition(ctx, shift_id)
    return success_response(ShiftDefinitionResponse.model_validate(shift))
