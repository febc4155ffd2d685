"""Roster service: listing, create-or-replace, publish, delete and availability."""

import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from staff_roster.core.errors import (
    InternalError,
    NotFoundError,
    OperationInProgressError,
    PermissionDeniedError,
    ValidationFailedError,
)
from staff_roster.core.rbac_policy import Permission, RoleKind, authorize
from staff_roster.db.base import utcnow
from staff_roster.models.audit import AuditLogEntry
from staff_roster.models.role import Role
from staff_roster.models.roster import Roster, RosterDeletion, RosterSlot, RosterStatus, SlotStatus
from staff_roster.models.user import User
from staff_roster.schemas.roster import RosterDeleteResult, RosterUpsert, StaffAvailability
from staff_roster.schemas.user import UserSummary
from staff_roster.services.audit_service import AuditContext, log_action
from staff_roster.services.coverage import compute_coverage, validate_roster_assignments
from staff_roster.services.shift_definition_service import ShiftDefinitionService
from staff_roster.services.shift_names import infer_shift_type, shift_names_match
from staff_roster.services.store_service import StoreService

logger = logging.getLogger(__name__)


def _sunday_based_weekday(day: date) -> int:
    """0 = Sunday .. 6 = Saturday, matching ``User.week_off_days``."""
    return (day.weekday() + 1) % 7


class RosterService:
    """Roster orchestration; each write runs in a single transaction."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _query(self):
        return self.db.query(Roster).options(
            selectinload(Roster.slots).joinedload(RosterSlot.user),
            selectinload(Roster.slots).joinedload(RosterSlot.actual_user),
        )

    def list_rosters(
        self,
        store_id: int,
        roster_date: Optional[date] = None,
        shift_name: Optional[str] = None,
        shift_type: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Roster]:
        query = self._query().filter(Roster.store_id == store_id)
        if roster_date is not None:
            query = query.filter(Roster.date == roster_date)
        if start_date is not None:
            query = query.filter(Roster.date >= start_date)
        if end_date is not None:
            query = query.filter(Roster.date <= end_date)
        if shift_name:
            query = query.filter(func.lower(Roster.shift_name) == shift_name.strip().lower())
        if status:
            query = query.filter(Roster.status == status)
        rosters = query.order_by(Roster.date, Roster.shift_name).all()

        if shift_type:
            # Legacy clients filter by morning/evening; match loosely on the name too
            rosters = [
                r for r in rosters
                if r.shift_type == shift_type.lower() or shift_names_match(r.shift_name, shift_type)
            ]
        return rosters

    def get_roster(self, store_id: int, roster_id: int) -> Roster:
        roster = self._query().filter(Roster.id == roster_id, Roster.store_id == store_id).first()
        if roster is None:
            raise NotFoundError("Roster not found", details={"rosterId": roster_id})
        return roster

    def find_roster(self, store_id: int, roster_date: date, shift_name: str) -> Optional[Roster]:
        return (
            self._query()
            .filter(
                Roster.store_id == store_id,
                Roster.date == roster_date,
                func.lower(Roster.shift_name) == shift_name.strip().lower(),
            )
            .first()
        )

    # ------------------------------------------------------------------
    # Create / replace
    # ------------------------------------------------------------------

    def upsert_roster(self, ctx: AuditContext, data: RosterUpsert) -> Tuple[Roster, bool]:
        """Create the roster for (store, date, shift) or replace its slots.

        Returns the roster and whether it was created. The roster row, slot
        replacement, coverage and audit entry commit together.
        """
        store_id = ctx.store_id
        if data.store_id is not None and data.store_id != store_id:
            raise PermissionDeniedError("Rosters can only be managed for your own store")

        settings = StoreService(self.db).get_settings(store_id)
        existing = self.find_roster(store_id, data.date, data.shift_name)
        authorize(
            ctx.actor,
            Permission.MODIFY_ROSTER if existing else Permission.CREATE_ROSTER,
            store_settings=settings,
        )
        if existing is not None and existing.status == RosterStatus.ARCHIVED.value:
            raise ValidationFailedError("Archived rosters cannot be modified")

        status = data.status.value if data.status else (existing.status if existing else RosterStatus.DRAFT.value)
        publishing = status == RosterStatus.PUBLISHED.value and (
            existing is None or existing.status != RosterStatus.PUBLISHED.value
        )
        if publishing:
            authorize(ctx.actor, Permission.PUBLISH_ROSTER, store_settings=settings)

        shift_name = existing.shift_name if existing else data.shift_name
        slot_times = self._resolve_slot_times(store_id, shift_name, data)

        validation = validate_roster_assignments(
            data.slots,
            settings,
            self._live_users(store_id, [s.user_id for s in data.slots if s.user_id]),
            self._other_rosters(store_id, data.date, existing.id if existing else None),
        )
        # Unknown users can never be stored; the other rules only warn unless the store enforces them
        blocking = settings.require_coverage_validation or any(e.code == "USER_NOT_FOUND" for e in validation.errors)
        if not validation.valid and blocking:
            raise ValidationFailedError("Roster validation failed", details=validation.to_dict())

        coverage = compute_coverage(
            data.slots,
            settings.min_staff_per_shift,
            warnings=validation.warnings + [e.message for e in validation.errors],
        )

        try:
            if existing is None:
                roster = Roster(
                    store_id=store_id,
                    date=data.date,
                    shift_name=shift_name,
                    created_by=ctx.user_id,
                )
                self.db.add(roster)
            else:
                roster = existing
                # Slot ids are not stable across edits
                roster.slots.clear()
                self.db.flush()

            roster.shift_type = infer_shift_type(shift_name, fallback=(data.shift_type or "").lower() or None)
            roster.status = status
            roster.template_id = data.template_id if data.template_id is not None else roster.template_id
            roster.coverage = coverage.model_dump(mode="json")
            roster.updated_by = ctx.user_id
            if publishing:
                roster.published_at = utcnow()
                roster.published_by = ctx.user_id

            for slot_input, (start_time, end_time) in zip(data.slots, slot_times):
                slot_status = slot_input.status.value
                if publishing and slot_status == SlotStatus.DRAFT.value:
                    slot_status = SlotStatus.PUBLISHED.value
                roster.slots.append(RosterSlot(
                    user_id=slot_input.user_id,
                    shift_name=shift_name,
                    date=data.date,
                    assigned_tasks=list(slot_input.assigned_tasks),
                    start_time=start_time,
                    end_time=end_time,
                    status=slot_status,
                    notes=slot_input.notes,
                ))
            self.db.flush()

            log_action(
                self.db, ctx,
                "CREATE_ROSTER" if existing is None else "UPDATE_ROSTER",
                entity_type="roster",
                entity_id=roster.id,
                entity_name=f"{roster.date.isoformat()} - {shift_name}",
                details={
                    "date": roster.date.isoformat(),
                    "shiftName": shift_name,
                    "status": status,
                    "totalSlots": coverage.total_slots,
                    "filledSlots": coverage.filled_slots,
                    "coveragePercentage": coverage.coverage_percentage,
                },
                enabled=settings.enable_audit_log,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning("Concurrent write on roster %s %s for store %s", data.date, shift_name, store_id)
            raise OperationInProgressError("This roster is being saved by another request, please retry")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save roster %s %s for store %s: %s", data.date, shift_name, store_id, e)
            raise InternalError("Failed to save roster") from e
        except Exception:
            self.db.rollback()
            raise

        return self.get_roster(store_id, roster.id), existing is None

    def _resolve_slot_times(self, store_id: int, shift_name: str, data: RosterUpsert) -> List[Tuple[str, str]]:
        """Planned times per slot, defaulting to the shift definition's times."""
        definition = None
        if any(not s.start_time or not s.end_time for s in data.slots):
            definition = ShiftDefinitionService(self.db).find_by_name(store_id, shift_name)
            if definition is None:
                raise ValidationFailedError(
                    f'Slots need startTime and endTime; no shift definition named "{shift_name}" to default from'
                )
        return [
            (s.start_time or definition.start_time, s.end_time or definition.end_time)
            for s in data.slots
        ]

    def _live_users(self, store_id: int, user_ids: List[int]) -> dict:
        if not user_ids:
            return {}
        users = (
            self.db.query(User)
            .filter(User.id.in_(set(user_ids)), User.store_id == store_id, User.not_deleted())
            .all()
        )
        return {u.id: u for u in users}

    def _other_rosters(self, store_id: int, roster_date: date, exclude_id: Optional[int]) -> List[Roster]:
        query = self._query().filter(
            Roster.store_id == store_id,
            Roster.date == roster_date,
            Roster.status != RosterStatus.ARCHIVED.value,
        )
        if exclude_id is not None:
            query = query.filter(Roster.id != exclude_id)
        return query.all()

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish_roster(self, ctx: AuditContext, roster_id: int) -> Roster:
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.PUBLISH_ROSTER, store_settings=settings)
        roster = self.get_roster(ctx.store_id, roster_id)
        if roster.status != RosterStatus.DRAFT.value:
            raise ValidationFailedError(
                "Only draft rosters can be published",
                details={"status": roster.status},
            )

        roster.status = RosterStatus.PUBLISHED.value
        roster.published_at = utcnow()
        roster.published_by = ctx.user_id
        roster.updated_by = ctx.user_id
        published_slots = 0
        for slot in roster.slots:
            if slot.status == SlotStatus.DRAFT.value:
                slot.status = SlotStatus.PUBLISHED.value
                published_slots += 1

        log_action(
            self.db, ctx, "PUBLISH_ROSTER",
            entity_type="roster", entity_id=roster.id,
            entity_name=f"{roster.date.isoformat()} - {roster.shift_name}",
            changes={"status": {"old": RosterStatus.DRAFT.value, "new": RosterStatus.PUBLISHED.value}},
            details={"publishedSlots": published_slots},
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        return self.get_roster(ctx.store_id, roster.id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def _delete_audited(self, roster_id: int) -> bool:
        return (
            self.db.query(AuditLogEntry.id)
            .filter(
                AuditLogEntry.action == "DELETE_ROSTER",
                AuditLogEntry.entity_type == "roster",
                AuditLogEntry.entity_id == str(roster_id),
            )
            .first()
            is not None
        )

    def delete_roster(self, ctx: AuditContext, roster_id: int) -> RosterDeleteResult:
        """Delete a roster exactly once.

        A ``roster_deletions`` row is claimed first; its unique ``roster_id``
        means a second, concurrent or repeated, delete cannot claim it and
        is answered from the outcome of the first.
        """
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.DELETE_ROSTER, store_settings=settings)

        try:
            self.db.add(RosterDeletion(roster_id=roster_id, deleted_by=ctx.user_id))
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            still_there = (
                self.db.query(Roster.id)
                .filter(Roster.id == roster_id, Roster.store_id == ctx.store_id)
                .first()
            )
            if still_there is None or self._delete_audited(roster_id):
                return RosterDeleteResult(roster_id=roster_id, deleted=True, already_deleted=True)
            raise OperationInProgressError("This roster is already being deleted")

        roster = (
            self.db.query(Roster)
            .filter(Roster.id == roster_id, Roster.store_id == ctx.store_id)
            .first()
        )
        if roster is None:
            self.db.rollback()
            if self._delete_audited(roster_id):
                return RosterDeleteResult(roster_id=roster_id, deleted=True, already_deleted=True)
            raise NotFoundError("Roster not found", details={"rosterId": roster_id})

        try:
            slots = list(roster.slots)
            details = {
                "date": roster.date.isoformat(),
                "shiftName": roster.shift_name,
                "totalSlots": len(slots),
                "filledSlots": sum(1 for s in slots if s.user_id),
                "status": roster.status,
            }
            entity_name = f"{roster.date.isoformat()} - {roster.shift_name}"
            self.db.delete(roster)
            self.db.flush()
            log_action(
                self.db, ctx, "DELETE_ROSTER",
                entity_type="roster", entity_id=roster_id, entity_name=entity_name,
                details=details,
                enabled=settings.enable_audit_log,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Roster %s deleted by user %s", roster_id, ctx.user_id)
        return RosterDeleteResult(roster_id=roster_id, deleted=True, already_deleted=False)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def staff_availability(self, ctx: AuditContext, roster_date: date, shift_name: str) -> StaffAvailability:
        """Who could still be rostered on a shift, and how many already are."""
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.VIEW_ROSTER, store_settings=settings)

        roster = self.find_roster(ctx.store_id, roster_date, shift_name)
        planned_ids = {s.user_id for s in roster.slots if s.user_id} if roster else set()

        staff = (
            self.db.query(User)
            .join(Role, User.role_id == Role.id)
            .filter(
                User.store_id == ctx.store_id,
                User.is_active.is_(True),
                User.not_deleted(),
                Role.kind != RoleKind.STORE_MANAGER.value,
            )
            .order_by(User.first_name, User.last_name)
            .all()
        )
        weekday = _sunday_based_weekday(roster_date)

        engaged, available = [], []
        for user in staff:
            if user.id in planned_ids:
                engaged.append(user)
                continue
            if weekday in (user.week_off_days or []):
                continue
            if user.default_shift_preference and not shift_names_match(user.default_shift_preference, shift_name):
                continue
            available.append(user)

        total = len(engaged) + len(available)
        return StaffAvailability(
            date=roster_date,
            shift_name=roster.shift_name if roster else shift_name.strip(),
            roster_id=roster.id if roster else None,
            total_staff=total,
            engaged_count=len(engaged),
            available_count=len(available),
            engagement_percentage=round(len(engaged) / total * 100, 1) if total else 0.0,
            engaged=[UserSummary.model_validate(u) for u in engaged],
            available=[UserSummary.model_validate(u) for u in available],
        )
