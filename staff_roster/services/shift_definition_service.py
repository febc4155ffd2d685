"""Shift definition service: store-scoped named shifts with derived durations."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from staff_roster.core.errors import NotFoundError, ValidationFailedError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.models.shift_definition import MAX_SHIFT_DURATION_HOURS, ShiftDefinition
from staff_roster.schemas.shift_definition import ShiftDefinitionCreate, ShiftDefinitionUpdate
from staff_roster.services.attendance import parse_time_to_minutes
from staff_roster.services.audit_service import AuditContext, diff_changes, log_action
from staff_roster.services.shift_names import infer_shift_type
from staff_roster.services.store_service import StoreService

logger = logging.getLogger(__name__)

DEFAULT_SHIFTS = (
    ("Morning Shift", "08:00", "17:00"),
    ("Evening Shift", "17:00", "02:00"),
)

_AUDITED_FIELDS = ("name", "shift_type", "start_time", "end_time", "duration_hours", "display_order", "is_active")


def calculate_duration_hours(start_time: str, end_time: str) -> float:
    """Length of a shift in hours, wrapping past midnight, to one decimal."""
    minutes = (parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)) % (24 * 60)
    return round(minutes / 60, 1)


def _checked_duration(start_time: str, end_time: str) -> float:
    duration = calculate_duration_hours(start_time, end_time)
    if duration > MAX_SHIFT_DURATION_HOURS:
        raise ValidationFailedError(
            f"Shift duration cannot exceed {MAX_SHIFT_DURATION_HOURS} hours",
            details={"durationHours": duration},
        )
    return duration


def _snapshot(shift: ShiftDefinition) -> dict:
    return {name: getattr(shift, name) for name in _AUDITED_FIELDS}


class ShiftDefinitionService:

    def __init__(self, db: Session):
        self.db = db

    def list_definitions(self, store_id: int, include_inactive: bool = False) -> List[ShiftDefinition]:
        query = self.db.query(ShiftDefinition).filter(ShiftDefinition.store_id == store_id)
        if not include_inactive:
            query = query.filter(ShiftDefinition.is_active.is_(True))
        return query.order_by(ShiftDefinition.display_order, ShiftDefinition.name).all()

    def get_definition(self, store_id: int, shift_id: int) -> ShiftDefinition:
        shift = (
            self.db.query(ShiftDefinition)
            .filter(ShiftDefinition.id == shift_id, ShiftDefinition.store_id == store_id)
            .first()
        )
        if shift is None:
            raise NotFoundError("Shift definition not found", details={"shiftId": shift_id})
        return shift

    def find_by_name(self, store_id: int, name: str) -> Optional[ShiftDefinition]:
        return (
            self.db.query(ShiftDefinition)
            .filter(ShiftDefinition.store_id == store_id, func.lower(ShiftDefinition.name) == name.lower())
            .first()
        )

    def _authorize(self, ctx: AuditContext):
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.MANAGE_SHIFT_DEFINITIONS, store_settings=settings)
        return settings

    def _ensure_unique_name(self, store_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        existing = self.find_by_name(store_id, name)
        if existing is not None and existing.id != exclude_id:
            raise ValidationFailedError(f'A shift named "{name}" already exists')

    def _revive(self, shift: ShiftDefinition, name: str, start_time: str, end_time: str, display_order: int) -> None:
        """Bring a deleted definition back under its name instead of inserting a duplicate."""
        shift.name = name
        shift.shift_type = infer_shift_type(name)
        shift.start_time = start_time
        shift.end_time = end_time
        shift.duration_hours = calculate_duration_hours(start_time, end_time)
        shift.display_order = display_order
        shift.is_active = True

    def _next_display_order(self, store_id: int) -> int:
        current = (
            self.db.query(func.max(ShiftDefinition.display_order))
            .filter(ShiftDefinition.store_id == store_id)
            .scalar()
        )
        return (current or 0) + 1

    def create_definition(self, ctx: AuditContext, data: ShiftDefinitionCreate) -> ShiftDefinition:
        settings = self._authorize(ctx)
        store_id = ctx.store_id
        name = data.name.strip()
        duration = _checked_duration(data.start_time, data.end_time)
        display_order = data.display_order if data.display_order is not None else self._next_display_order(store_id)

        shift = self.find_by_name(store_id, name)
        revived = shift is not None and not shift.is_active
        if revived:
            self._revive(shift, name, data.start_time, data.end_time, display_order)
        else:
            self._ensure_unique_name(store_id, name)
            shift = ShiftDefinition(
                store_id=store_id,
                name=name,
                shift_type=infer_shift_type(name),
                start_time=data.start_time,
                end_time=data.end_time,
                duration_hours=duration,
                is_active=True,
                display_order=display_order,
            )
            self.db.add(shift)
        self.db.flush()
        log_action(
            self.db, ctx, "CREATE_SHIFT_DEFINITION",
            entity_type="shift_definition", entity_id=shift.id, entity_name=shift.name,
            details={
                "startTime": shift.start_time,
                "endTime": shift.end_time,
                "durationHours": duration,
                "reactivated": revived,
            },
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(shift)
        return shift

    def update_definition(self, ctx: AuditContext, shift_id: int, data: ShiftDefinitionUpdate) -> ShiftDefinition:
        settings = self._authorize(ctx)
        shift = self.get_definition(ctx.store_id, shift_id)
        before = _snapshot(shift)
        fields = data.model_dump(exclude_unset=True)

        start_time = fields.get("start_time") or shift.start_time
        end_time = fields.get("end_time") or shift.end_time
        shift.duration_hours = _checked_duration(start_time, end_time)
        shift.start_time = start_time
        shift.end_time = end_time

        if fields.get("name"):
            name = fields["name"].strip()
            if name != shift.name:
                self._ensure_unique_name(shift.store_id, name, exclude_id=shift.id)
                shift.name = name
                shift.shift_type = infer_shift_type(name, fallback=shift.shift_type)
        if fields.get("display_order") is not None:
            shift.display_order = fields["display_order"]
        if fields.get("is_active") is not None:
            shift.is_active = fields["is_active"]

        changes = diff_changes(before, _snapshot(shift))
        if changes:
            log_action(
                self.db, ctx, "UPDATE_SHIFT_DEFINITION",
                entity_type="shift_definition", entity_id=shift.id, entity_name=shift.name,
                changes=changes,
                enabled=settings.enable_audit_log,
            )
        self.db.commit()
        self.db.refresh(shift)
        return shift

    def delete_definition(self, ctx: AuditContext, shift_id: int) -> ShiftDefinition:
        settings = self._authorize(ctx)
        shift = self.get_definition(ctx.store_id, shift_id)
        shift.is_active = False
        log_action(
            self.db, ctx, "DELETE_SHIFT_DEFINITION",
            entity_type="shift_definition", entity_id=shift.id, entity_name=shift.name,
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(shift)
        return shift

    def reorder(self, ctx: AuditContext, shift_ids: List[int]) -> List[ShiftDefinition]:
        settings = self._authorize(ctx)
        shifts = (
            self.db.query(ShiftDefinition)
            .filter(ShiftDefinition.store_id == ctx.store_id, ShiftDefinition.id.in_(shift_ids))
            .all()
        )
        by_id = {s.id: s for s in shifts}
        unknown = [sid for sid in shift_ids if sid not in by_id]
        if unknown:
            raise ValidationFailedError("Unknown shift definition ids", details={"shiftIds": unknown})

        for index, shift_id in enumerate(shift_ids):
            by_id[shift_id].display_order = index + 1

        log_action(
            self.db, ctx, "REORDER_SHIFT_DEFINITIONS",
            entity_type="shift_definition",
            details={"shiftIds": list(shift_ids)},
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        return self.list_definitions(ctx.store_id)

    def initialize_defaults(self, ctx: Optional[AuditContext], store_id: int) -> List[ShiftDefinition]:
        """Create the default morning and evening shifts that are missing."""
        if ctx is not None:
            settings = self._authorize(ctx)
            audit_enabled = settings.enable_audit_log
        else:
            audit_enabled = True

        created = []
        for name, start_time, end_time in DEFAULT_SHIFTS:
            existing = self.find_by_name(store_id, name)
            if existing is not None:
                if not existing.is_active:
                    self._revive(existing, name, start_time, end_time, self._next_display_order(store_id))
                    self.db.flush()
                    created.append(existing)
                continue
            shift = ShiftDefinition(
                store_id=store_id,
                name=name,
                shift_type=infer_shift_type(name),
                start_time=start_time,
                end_time=end_time,
                duration_hours=calculate_duration_hours(start_time, end_time),
                is_active=True,
                display_order=self._next_display_order(store_id),
            )
            self.db.add(shift)
            self.db.flush()
            created.append(shift)

        if created:
            log_action(
                self.db, ctx, "CREATE_SHIFT_DEFINITION",
                entity_type="shift_definition",
                details={"initialized": [s.name for s in created]},
                store_id=store_id,
                enabled=audit_enabled,
            )
            logger.info("Initialized %d default shift definitions for store %s", len(created), store_id)
        self.db.commit()
        return created
