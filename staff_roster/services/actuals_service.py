"""Actuals service: what really happened on a roster slot.

Managers record or clear actuals for any slot; staff check themselves in
and out of their own slot. Check-in/out timestamps are stamped once and
never overwritten, so repeating either call only corrects the times and
notes.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from staff_roster.core.config import settings as app_settings
from staff_roster.core.errors import AppError, NotFoundError, ValidationFailedError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.db.base import utcnow
from staff_roster.models.roster import AttendanceStatus, Roster, RosterSlot
from staff_roster.models.user import User
from staff_roster.schemas.roster import (
    ActualsUpdate,
    BulkActualsError,
    BulkActualsResult,
    CheckInRequest,
    CheckOutRequest,
    SlotActualsItem,
    SlotResponse,
)
from staff_roster.services.attendance import derive_check_in_status, derive_check_out_status, now_hhmm
from staff_roster.services.audit_service import AuditContext, log_action
from staff_roster.services.store_service import StoreService

logger = logging.getLogger(__name__)

_ACTUALS_FIELDS = (
    "actual_user_id",
    "actual_start_time",
    "actual_end_time",
    "actual_tasks_completed",
    "attendance_status",
    "substitution_reason",
    "actual_notes",
)

# Statuses check-in/out derive on their own; manager-only ones are left alone
_DERIVED_STATUSES = (
    None,
    AttendanceStatus.PRESENT.value,
    AttendanceStatus.LATE.value,
    AttendanceStatus.LEFT_EARLY.value,
)


def _actuals_snapshot(slot: RosterSlot) -> dict:
    return {name: getattr(slot, name) for name in _ACTUALS_FIELDS}


def _roster_label(roster: Roster) -> str:
    return f"{roster.date.isoformat()} - {roster.shift_name}"


def _rederive_status(slot: RosterSlot) -> str:
    """Status implied by the slot's recorded times alone."""
    status = AttendanceStatus.PRESENT.value
    if slot.actual_start_time:
        status = derive_check_in_status(
            slot.start_time, slot.actual_start_time, status,
            grace_minutes=app_settings.check_in_grace_minutes,
        )
    if slot.checked_out_at is not None and slot.actual_end_time:
        status = derive_check_out_status(
            slot.end_time, slot.actual_end_time, status,
            grace_minutes=app_settings.check_out_grace_minutes,
        )
    return status


class ActualsService:

    def __init__(self, db: Session):
        self.db = db

    def _get_roster(self, store_id: int, roster_id: int) -> Roster:
        roster = (
            self.db.query(Roster)
            .filter(Roster.id == roster_id, Roster.store_id == store_id)
            .first()
        )
        if roster is None:
            raise NotFoundError("Roster not found", details={"rosterId": roster_id})
        return roster

    def _get_slot(self, roster_id: int, slot_id: int) -> RosterSlot:
        slot = (
            self.db.query(RosterSlot)
            .filter(RosterSlot.id == slot_id, RosterSlot.roster_id == roster_id)
            .first()
        )
        if slot is None:
            raise NotFoundError("Slot not found", details={"slotId": slot_id}, reason="SLOT_NOT_FOUND")
        return slot

    def _apply(self, ctx: AuditContext, slot: RosterSlot, update: ActualsUpdate) -> dict:
        """Apply the fields present in ``update``; returns the changes map."""
        sent = update.provided()
        before = _actuals_snapshot(slot)

        if "actual_user_id" in sent and update.actual_user_id is not None:
            substitute = (
                self.db.query(User.id)
                .filter(User.id == update.actual_user_id, User.store_id == ctx.store_id)
                .first()
            )
            if substitute is None:
                raise ValidationFailedError("Actual user not found", details={"actualUserId": update.actual_user_id})

        for name in _ACTUALS_FIELDS:
            if name not in sent:
                continue
            value = getattr(update, name)
            if name == "attendance_status" and value is not None:
                value = value.value
            if name == "actual_tasks_completed":
                value = list(value or [])
            setattr(slot, name, value)

        if "actual_start_time" in sent and update.actual_start_time:
            if slot.checked_in_at is None:
                slot.checked_in_at = utcnow()
                slot.checked_in_by = ctx.user_id
            if "attendance_status" not in sent:
                slot.attendance_status = derive_check_in_status(
                    slot.start_time, update.actual_start_time, slot.attendance_status,
                    grace_minutes=app_settings.check_in_grace_minutes,
                )
        if "actual_end_time" in sent and update.actual_end_time:
            if slot.checked_out_at is None:
                slot.checked_out_at = utcnow()
                slot.checked_out_by = ctx.user_id
            if "attendance_status" not in sent:
                slot.attendance_status = derive_check_out_status(
                    slot.end_time, update.actual_end_time, slot.attendance_status,
                    grace_minutes=app_settings.check_out_grace_minutes,
                )

        after = _actuals_snapshot(slot)
        return {
            name: {"old": before[name], "new": after[name]}
            for name in _ACTUALS_FIELDS
            if before[name] != after[name]
        }

    # ------------------------------------------------------------------
    # Manager operations
    # ------------------------------------------------------------------

    def record_actuals(self, ctx: AuditContext, roster_id: int, slot_id: int, update: ActualsUpdate) -> RosterSlot:
        store_settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.MODIFY_ROSTER, store_settings=store_settings)
        roster = self._get_roster(ctx.store_id, roster_id)
        slot = self._get_slot(roster.id, slot_id)

        changes = self._apply(ctx, slot, update)
        log_action(
            self.db, ctx, "RECORD_ACTUALS",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"Actuals recorded for {_roster_label(roster)}",
            changes=changes,
            details={"slotId": slot.id},
            enabled=store_settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(slot)
        return slot

    def record_bulk_actuals(self, ctx: AuditContext, roster_id: int, items: List[SlotActualsItem]) -> BulkActualsResult:
        """Record actuals for many slots; a failing slot does not stop the rest."""
        store_settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.MODIFY_ROSTER, store_settings=store_settings)
        roster = self._get_roster(ctx.store_id, roster_id)

        result = BulkActualsResult(total_requested=len(items))
        updated: List[RosterSlot] = []
        for item in items:
            try:
                with self.db.begin_nested():
                    slot = self._get_slot(roster.id, item.slot_id)
                    self._apply(ctx, slot, item)
            except AppError as e:
                result.errors.append(BulkActualsError(slot_id=item.slot_id, error=e.message))
                continue
            except ValueError as e:
                # Model validators reject malformed values
                result.errors.append(BulkActualsError(slot_id=item.slot_id, error=str(e)))
                continue
            updated.append(slot)

        log_action(
            self.db, ctx, "RECORD_ACTUALS",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"Bulk actuals update for {_roster_label(roster)}",
            details={
                "slotsUpdated": len(updated),
                "totalRequested": len(items),
                "failedSlots": [e.slot_id for e in result.errors],
            },
            enabled=store_settings.enable_audit_log,
        )
        self.db.commit()

        for slot in updated:
            self.db.refresh(slot)
        result.slots_updated = len(updated)
        result.slots = [SlotResponse.model_validate(s) for s in updated]
        return result

    def clear_actuals(self, ctx: AuditContext, roster_id: int, slot_id: int) -> RosterSlot:
        store_settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.MODIFY_ROSTER, store_settings=store_settings)
        roster = self._get_roster(ctx.store_id, roster_id)
        slot = self._get_slot(roster.id, slot_id)

        before = _actuals_snapshot(slot)
        slot.clear_actuals()
        log_action(
            self.db, ctx, "CLEAR_ACTUALS",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"Actuals cleared for {_roster_label(roster)}",
            details={"slotId": slot.id, "previous": before},
            enabled=store_settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(slot)
        return slot

    # ------------------------------------------------------------------
    # Self-service check-in / check-out
    # ------------------------------------------------------------------

    def _own_slot(self, ctx: AuditContext, roster: Roster, slot_id: Optional[int]) -> RosterSlot:
        query = self.db.query(RosterSlot).filter(
            RosterSlot.roster_id == roster.id,
            or_(RosterSlot.user_id == ctx.user_id, RosterSlot.actual_user_id == ctx.user_id),
        )
        if slot_id is not None:
            query = query.filter(RosterSlot.id == slot_id)
        slot = query.order_by(RosterSlot.id).first()
        if slot is None:
            raise NotFoundError("No slot found for this user in this roster", reason="SLOT_NOT_FOUND")
        return slot

    def check_in(self, ctx: AuditContext, roster_id: int, request: CheckInRequest) -> RosterSlot:
        roster = self._get_roster(ctx.store_id, roster_id)
        slot = self._own_slot(ctx, roster, request.slot_id)
        store_settings = StoreService(self.db).get_settings(ctx.store_id)

        actual_start = request.actual_start_time or now_hhmm()
        first_check_in = slot.checked_in_at is None

        slot.actual_start_time = actual_start
        if not first_check_in and slot.attendance_status in _DERIVED_STATUSES:
            # A corrected time replaces whatever the earlier times implied
            slot.attendance_status = _rederive_status(slot)
        else:
            slot.attendance_status = derive_check_in_status(
                slot.start_time, actual_start, slot.attendance_status,
                grace_minutes=app_settings.check_in_grace_minutes,
            )
        if slot.actual_user_id is None:
            slot.actual_user_id = ctx.user_id
        if request.notes is not None:
            slot.actual_notes = request.notes
        if first_check_in:
            slot.checked_in_at = utcnow()
            slot.checked_in_by = ctx.user_id

        log_action(
            self.db, ctx, "CHECK_IN",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"Check-in for {_roster_label(roster)}",
            details={
                "slotId": slot.id,
                "plannedStartTime": slot.start_time,
                "actualStartTime": actual_start,
                "attendanceStatus": slot.attendance_status,
                "repeat": not first_check_in,
            },
            enabled=store_settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(slot)
        return slot

    def check_out(self, ctx: AuditContext, roster_id: int, request: CheckOutRequest) -> RosterSlot:
        roster = self._get_roster(ctx.store_id, roster_id)
        slot = self._own_slot(ctx, roster, request.slot_id)
        if slot.checked_in_at is None:
            raise ValidationFailedError("You must check in before checking out", reason="NOT_CHECKED_IN")
        store_settings = StoreService(self.db).get_settings(ctx.store_id)

        actual_end = request.actual_end_time or now_hhmm()
        first_check_out = slot.checked_out_at is None

        slot.actual_end_time = actual_end
        if not first_check_out and slot.attendance_status in _DERIVED_STATUSES:
            slot.attendance_status = _rederive_status(slot)
        else:
            slot.attendance_status = derive_check_out_status(
                slot.end_time, actual_end, slot.attendance_status,
                grace_minutes=app_settings.check_out_grace_minutes,
            )
        if request.notes:
            note = f"[Check-out]: {request.notes}"
            slot.actual_notes = f"{slot.actual_notes}\n{note}" if slot.actual_notes else note
        if first_check_out:
            slot.checked_out_at = utcnow()
            slot.checked_out_by = ctx.user_id

        log_action(
            self.db, ctx, "CHECK_OUT",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"Check-out for {_roster_label(roster)}",
            details={
                "slotId": slot.id,
                "plannedEndTime": slot.end_time,
                "actualEndTime": actual_end,
                "attendanceStatus": slot.attendance_status,
                "repeat": not first_check_out,
            },
            enabled=store_settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(slot)
        return slot
