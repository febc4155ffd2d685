"""Roster routes: planning, publishing, deletion, attendance and actuals."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, Response, status

from staff_roster.core.errors import PermissionDeniedError
from staff_roster.core.rate_limit import DEFAULT_LIMIT, user_limiter
from staff_roster.core.rbac import Actor, CurrentUser
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.roster import (
    ActualsUpdate,
    CheckInRequest,
    CheckOutRequest,
    RecordActualsRequest,
    RosterResponse,
    RosterUpsert,
    SlotResponse,
)
from staff_roster.services.actuals_service import ActualsService
from staff_roster.services.roster_service import RosterService

router = APIRouter()


@router.get("")
def list_rosters(
    db: DbSession,
    current_user: CurrentUser,
    roster_date: Optional[date] = Query(None, alias="date"),
    shift_name: Optional[str] = Query(None, alias="shiftName"),
    shift_type: Optional[str] = Query(None, alias="shiftType"),
    roster_status: Optional[str] = Query(None, alias="status"),
    store_id: Optional[int] = Query(None, alias="storeId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    """List rosters of the caller's store.

    ``shiftType`` is the legacy morning/evening filter and matches loosely
    on the shift name as well.
    """
    if store_id is not None and store_id != current_user.store_id:
        raise PermissionDeniedError("Cannot view rosters of another store")

    rosters = RosterService(db).list_rosters(
        current_user.store_id,
        roster_date=roster_date,
        shift_name=shift_name,
        shift_type=shift_type,
        status=roster_status,
        start_date=start_date,
        end_date=end_date,
    )
    return success_response([RosterResponse.model_validate(r) for r in rosters])


@router.post("")
@user_limiter.limit(DEFAULT_LIMIT)
def upsert_roster(request: Request, response: Response, data: RosterUpsert, db: DbSession, ctx: Actor):
    """Create the roster for a date and shift, or replace its slots."""
    roster, created = RosterService(db).upsert_roster(ctx, data)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return success_response(RosterResponse.model_validate(roster))


# Declared before /{roster_id} so "availability" is not parsed as an id
@router.get("/availability")
def get_staff_availability(
    db: DbSession,
    ctx: Actor,
    roster_date: date = Query(..., alias="date"),
    shift_name: str = Query(..., alias="shiftName", min_length=1),
):
    return success_response(RosterService(db).staff_availability(ctx, roster_date, shift_name))


@router.get("/{roster_id}")
def get_roster(roster_id: int, db: DbSession, current_user: CurrentUser):
    roster = RosterService(db).get_roster(current_user.store_id, roster_id)
    return success_response(RosterResponse.model_validate(roster))


@router.delete("/{roster_id}")
def delete_roster(roster_id: int, db: DbSession, ctx: Actor):
    """Delete a roster and its slots. Repeating the call is harmless."""
    return success_response(RosterService(db).delete_roster(ctx, roster_id))


@router.post("/{roster_id}/publish")
def publish_roster(roster_id: int, db: DbSession, ctx: Actor):
    roster = RosterService(db).publish_roster(ctx, roster_id)
    return success_response(RosterResponse.model_validate(roster))


# ============== Attendance ==============

@router.post("/{roster_id}/check-in")
def check_in(roster_id: int, db: DbSession, ctx: Actor, data: Optional[CheckInRequest] = None):
    """Check the caller in to their own slot on this roster."""
    slot = ActualsService(db).check_in(ctx, roster_id, data or CheckInRequest())
    return success_response(SlotResponse.model_validate(slot))


@router.post("/{roster_id}/check-out")
def check_out(roster_id: int, db: DbSession, ctx: Actor, data: Optional[CheckOutRequest] = None):
    slot = ActualsService(db).check_out(ctx, roster_id, data or CheckOutRequest())
    return success_response(SlotResponse.model_validate(slot))


# ============== Actuals ==============

@router.patch("/{roster_id}/actuals")
def record_actuals(roster_id: int, data: RecordActualsRequest, db: DbSession, ctx: Actor):
    """Record actuals for one slot (``slotId``) or many (``actuals``)."""
    service = ActualsService(db)
    if data.actuals is not None:
        return success_response(service.record_bulk_actuals(ctx, roster_id, data.actuals))
    slot = service.record_actuals(ctx, roster_id, data.slot_id, data)
    return success_response(SlotResponse.model_validate(slot))


@router.patch("/{roster_id}/actuals/{slot_id}")
def record_slot_actuals(roster_id: int, slot_id: int, data: ActualsUpdate, db: DbSession, ctx: Actor):
    slot = ActualsService(db).record_actuals(ctx, roster_id, slot_id, data)
    return success_response(SlotResponse.model_validate(slot))


@router.delete("/{roster_id}/actuals/{slot_id}")
def clear_slot_actuals(roster_id: int, slot_id: int, db: DbSession, ctx: Actor):
    slot = ActualsService(db).clear_actuals(ctx, roster_id, slot_id)
    return success_response(SlotResponse.model_validate(slot))
