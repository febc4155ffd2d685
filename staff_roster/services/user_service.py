"""Staff account service: CRUD, bulk import and deactivation."""

import logging
from datetime import date
from types import SimpleNamespace
from typing import Any, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from staff_roster.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from staff_roster.core.rbac_policy import Permission, PermissionTarget, RoleKind, authorize
from staff_roster.core.security import generate_temporary_password, get_password_hash
from staff_roster.models.role import Role
from staff_roster.models.roster import Roster, RosterSlot, RosterStatus
from staff_roster.models.user import MAX_WEEK_OFF_DAYS, ExperienceLevel, PPType, User
from staff_roster.schemas.pagination import paginate_query
from staff_roster.schemas.store import StoreSettings
from staff_roster.schemas.user import (
    AutoDeactivateRequest,
    AutoDeactivateResult,
    BulkImportError,
    BulkImportRequest,
    BulkImportResult,
    DeactivationError,
    ImpactedSlot,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from staff_roster.services.audit_service import AuditContext, diff_changes, log_action
from staff_roster.services.store_service import StoreService

logger = logging.getLogger(__name__)

_AUDITED_FIELDS = (
    "first_name", "last_name", "email", "phone", "role_id", "experience_level", "pp_type",
    "week_offs_count", "week_off_days", "default_shift_preference", "is_active",
)


def _snapshot(user: User) -> dict:
    return {name: getattr(user, name) for name in _AUDITED_FIELDS}


def normalize_week_off_days(days: Optional[List[Any]]) -> List[int]:
    """Deduplicate week-off day indices and enforce the one-day limit."""
    if not days:
        return []
    result: List[int] = []
    for day in days:
        if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
            raise ValidationFailedError(
                "Week off days must be between 0 (Sunday) and 6 (Saturday)",
                details={"weekOffDays": days},
                reason="INVALID_WEEKOFF_DAYS",
            )
        if day not in result:
            result.append(day)
    if len(result) > MAX_WEEK_OFF_DAYS:
        raise ValidationFailedError(
            f"Only {MAX_WEEK_OFF_DAYS} week off day is allowed",
            details={"weekOffDays": days},
            reason="INVALID_WEEKOFF_DAYS",
        )
    return result


class UserService:
    """Store-scoped staff management; every write is authorized and audited."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _settings(self, ctx: AuditContext) -> StoreSettings:
        return StoreService(self.db).get_settings(ctx.store_id)

    def list_users(
        self,
        store_id: int,
        include_inactive: bool = False,
        role_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[User], int]:
        query = self.db.query(User).filter(User.store_id == store_id, User.not_deleted())
        if not include_inactive:
            query = query.filter(User.is_active.is_(True))
        if role_id is not None:
            query = query.filter(User.role_id == role_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.employee_id.ilike(pattern),
            ))
        query = query.order_by(User.first_name, User.last_name, User.id)
        return paginate_query(query, page, page_size)

    def get_user(self, store_id: int, user_id: int) -> User:
        user = (
            self.db.query(User)
            .filter(User.id == user_id, User.store_id == store_id, User.not_deleted())
            .first()
        )
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})
        return user

    def _get_role(self, role_id: int) -> Role:
        role = self.db.get(Role, role_id)
        if role is None:
            raise ValidationFailedError("Role not found", details={"roleId": role_id})
        return role

    def _employee_id_taken(self, employee_id: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(func.lower(User.employee_id) == employee_id.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _active_store_manager_count(self, store_id: int) -> int:
        return (
            self.db.query(User)
            .join(Role, User.role_id == Role.id)
            .filter(
                User.store_id == store_id,
                User.is_active.is_(True),
                User.not_deleted(),
                Role.kind == RoleKind.STORE_MANAGER.value,
            )
            .count()
        )

    def _ensure_not_last_store_manager(self, user: User, message: str) -> None:
        if user.is_store_manager and user.is_active and self._active_store_manager_count(user.store_id) <= 1:
            raise ValidationFailedError(message)

    def _authorize_role_assignment(self, ctx: AuditContext, role: Role, settings: StoreSettings) -> None:
        """Acting on an account with ``role`` must pass the user hierarchy.

        Only a Store Manager may hand out the Store Manager role, whatever
        the Shift In Charge overrides say.
        """
        authorize(
            ctx.actor,
            Permission.CRUD_USER,
            target=PermissionTarget("user"),
            target_user=SimpleNamespace(role=role),
            store_settings=settings,
        )
        if role.kind == RoleKind.STORE_MANAGER.value and not ctx.actor.is_store_manager:
            raise PermissionDeniedError("Only a Store Manager can assign the Store Manager role")

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create_user(self, ctx: AuditContext, data: UserCreate) -> Tuple[User, Optional[str]]:
        """Create a user. Returns the user and the generated password, if any."""
        settings = self._settings(ctx)
        role = self._get_role(data.role_id)
        self._authorize_role_assignment(ctx, role, settings)

        store_id = ctx.store_id
        if data.store_id is not None and data.store_id != store_id:
            raise PermissionDeniedError("Users can only be created in your own store")

        if self._employee_id_taken(data.employee_id):
            raise ValidationFailedError(f'Employee ID "{data.employee_id}" already exists')
        if data.email and self._email_taken(data.email):
            raise ValidationFailedError(f'Email "{data.email}" is already in use')

        temporary_password = None
        password = data.password
        if not password:
            password = temporary_password = generate_temporary_password()

        user = User(
            store_id=store_id,
            employee_id=data.employee_id,
            first_name=data.first_name,
            last_name=(data.last_name or "").strip(),
            email=data.email,
            phone=data.phone,
            password_hash=get_password_hash(password),
            role_id=role.id,
            experience_level=data.experience_level.value,
            pp_type=data.pp_type.value if data.pp_type else role.default_pp_type,
            week_offs_count=data.week_offs_count,
            week_off_days=[],
            default_shift_preference=data.default_shift_preference,
            is_active=True,
            created_by=ctx.user_id,
            updated_by=ctx.user_id,
        )
        self.db.add(user)
        self.db.flush()
        log_action(
            self.db, ctx, "CREATE_USER",
            entity_type="user", entity_id=user.id, entity_name=user.full_name,
            details={"employeeId": user.employee_id, "role": role.name},
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(user)
        return user, temporary_password

    def update_user(self, ctx: AuditContext, user_id: int, data: UserUpdate) -> User:
        settings = self._settings(ctx)
        user = self.get_user(ctx.store_id, user_id)
        authorize(
            ctx.actor,
            Permission.CRUD_USER,
            target=PermissionTarget("user", user.id),
            target_user=user,
            store_settings=settings,
        )

        before = _snapshot(user)
        fields = data.model_dump(exclude_unset=True)

        if fields.get("role_id") is not None and fields["role_id"] != user.role_id:
            self._change_role(ctx, user, self._get_role(fields["role_id"]), settings)

        if "email" in fields and fields["email"] != user.email:
            if fields["email"] and self._email_taken(fields["email"], exclude_id=user.id):
                raise ValidationFailedError(f'Email "{fields["email"]}" is already in use')
            user.email = fields["email"]

        for name in ("first_name", "experience_level", "week_offs_count", "is_active"):
            if fields.get(name) is not None:
                value = fields[name]
                setattr(user, name, value.value if isinstance(value, ExperienceLevel) else value)
        for name in ("last_name", "phone", "default_shift_preference"):
            if name in fields:
                setattr(user, name, fields[name] if fields[name] is not None else ("" if name == "last_name" else None))
        if "pp_type" in fields:
            user.pp_type = data.pp_type.value if data.pp_type else None

        if fields.get("is_active") is False and before["is_active"]:
            self._ensure_not_last_store_manager(user, "Cannot deactivate the last active Store Manager")

        if "week_off_days" in fields:
            days = normalize_week_off_days(fields["week_off_days"])
            if days and user.pp_type == PPType.AD_HOC.value:
                raise ValidationFailedError(
                    "Ad-Hoc Picker Packers cannot have week off days",
                    reason="INVALID_WEEKOFF_DAYS",
                )
            user.week_off_days = days
        elif user.pp_type == PPType.AD_HOC.value and user.week_off_days:
            user.week_off_days = []

        user.updated_by = ctx.user_id
        changes = diff_changes(before, _snapshot(user))
        if changes:
            log_action(
                self.db, ctx, "UPDATE_USER",
                entity_type="user", entity_id=user.id, entity_name=user.full_name,
                changes=changes,
                enabled=settings.enable_audit_log,
            )
        self.db.commit()
        self.db.refresh(user)
        return user

    def _change_role(self, ctx: AuditContext, user: User, new_role: Role, settings: StoreSettings) -> None:
        self._authorize_role_assignment(ctx, new_role, settings)
        promoting = new_role.kind == RoleKind.STORE_MANAGER.value
        if user.is_store_manager and not promoting:
            authorize(ctx.actor, Permission.DEMOTE_SM_USER, store_settings=settings)
            self._ensure_not_last_store_manager(user, "Cannot change the role of the last active Store Manager")
        user.role_id = new_role.id
        user.role = new_role

    def delete_user(self, ctx: AuditContext, user_id: int, reason: Optional[str] = None):
        """Soft-delete a user and report the future roster slots they leave vacant."""
        settings = self._settings(ctx)
        user = self.get_user(ctx.store_id, user_id)
        if user.id == ctx.user_id:
            raise ValidationFailedError("You cannot delete your own account")

        authorize(
            ctx.actor,
            Permission.CRUD_USER,
            target=PermissionTarget("user", user.id),
            target_user=user,
            store_settings=settings,
        )
        if ctx.actor.role_kind == RoleKind.SHIFT_IN_CHARGE and not settings.si_can_delete_staff:
            raise PermissionDeniedError("Shift In Charge is not allowed to delete staff in this store")
        if user.is_store_manager:
            authorize(ctx.actor, Permission.DELETE_SM_USER, store_settings=settings)
            self._ensure_not_last_store_manager(user, "Cannot delete the last active Store Manager")

        impacted = self.impacted_slots(user.id)

        user.soft_delete(deleted_by=ctx.user_id, reason=reason)
        user.is_active = False
        user.updated_by = ctx.user_id
        log_action(
            self.db, ctx, "DELETE_USER",
            entity_type="user", entity_id=user.id, entity_name=user.full_name,
            details={
                "employeeId": user.employee_id,
                "reason": reason,
                "impactedSlots": len(impacted),
            },
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s soft-deleted by %s (%d future slots impacted)", user.id, ctx.user_id, len(impacted))
        return user, impacted

    def impacted_slots(self, user_id: int) -> List[ImpactedSlot]:
        rows = (
            self.db.query(RosterSlot, Roster)
            .join(Roster, RosterSlot.roster_id == Roster.id)
            .filter(
                RosterSlot.user_id == user_id,
                Roster.date >= date.today(),
                Roster.status != RosterStatus.ARCHIVED.value,
            )
            .order_by(Roster.date, Roster.shift_name)
            .all()
        )
        return [
            ImpactedSlot(roster_id=roster.id, slot_id=slot.id, date=roster.date, shift_name=roster.shift_name)
            for slot, roster in rows
        ]

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def bulk_import(self, ctx: AuditContext, request: BulkImportRequest) -> BulkImportResult:
        """Create many users; each row succeeds or fails on its own."""
        settings = self._settings(ctx)
        authorize(ctx.actor, Permission.CRUD_USER, store_settings=settings)

        result = BulkImportResult()
        seen_in_batch: dict[str, int] = {}

        for index, row in enumerate(request.users):
            row_number = index + 1
            employee_id = (row.employee_id or "").strip()

            error = self._check_import_row(row, employee_id)
            if error is None:
                key = employee_id.lower()
                if key in seen_in_batch:
                    error = (
                        f'Duplicate employee ID "{employee_id}" found in import batch '
                        f"(already at row {seen_in_batch[key]})"
                    )
                else:
                    seen_in_batch[key] = row_number
            if error is None and self._employee_id_taken(employee_id):
                if request.skip_duplicates:
                    result.skipped += 1
                    continue
                error = f'Employee ID "{employee_id}" already exists'
            if error is None:
                error = self._check_week_offs_count(row.week_offs_count)

            if error is not None:
                result.errors.append(BulkImportError(row=row_number, employee_id=employee_id or "unknown", error=error))
                continue

            try:
                with self.db.begin_nested():
                    user = self._insert_import_row(ctx, row, employee_id, settings)
            except (ValidationFailedError, PermissionDeniedError) as e:
                result.errors.append(BulkImportError(row=row_number, employee_id=employee_id, error=e.message))
                continue
            except Exception as e:
                logger.warning("Bulk import row %d failed: %s", row_number, e)
                result.errors.append(BulkImportError(row=row_number, employee_id=employee_id, error="Database error"))
                continue

            result.created += 1
            result.users.append(UserResponse.model_validate(user))

        log_action(
            self.db, ctx, "BULK_IMPORT_USERS",
            entity_type="user",
            details={
                "total": len(request.users),
                "created": result.created,
                "skipped": result.skipped,
                "failed": len(result.errors),
            },
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        return result

    def _check_import_row(self, row, employee_id: str) -> Optional[str]:
        if not employee_id:
            return "Employee ID is required"
        if not (row.first_name or "").strip():
            return "First name is required"
        if not row.role_id:
            return "Role ID is required"
        if not row.experience_level:
            return "Experience level is required"
        if row.experience_level not in {e.value for e in ExperienceLevel}:
            return f'Invalid experience level "{row.experience_level}"'
        if row.pp_type and row.pp_type not in {p.value for p in PPType}:
            return f'Invalid picker packer type "{row.pp_type}"'
        if row.email and row.email.strip():
            try:
                validate_email(row.email.strip(), check_deliverability=False)
            except EmailNotValidError:
                return "Invalid email format"
        return None

    def _check_week_offs_count(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            else:
                return "Week offs count must be an integer"
        if not 0 <= value <= 7:
            return f"Week offs count must be between 0 and 7 (got {value})"
        return None

    def _insert_import_row(self, ctx: AuditContext, row, employee_id: str, settings: StoreSettings) -> User:
        role = self._get_role(row.role_id)
        self._authorize_role_assignment(ctx, role, settings)

        email = (row.email or "").strip() or None
        if email and self._email_taken(email):
            raise ValidationFailedError(f'Email "{email}" is already in use')

        user = User(
            store_id=ctx.store_id,
            employee_id=employee_id,
            first_name=row.first_name.strip(),
            last_name=(row.last_name or "").strip(),
            email=email,
            phone=(row.phone or "").strip() or None,
            password_hash=get_password_hash(generate_temporary_password()),
            role_id=role.id,
            experience_level=row.experience_level,
            pp_type=row.pp_type or role.default_pp_type,
            week_offs_count=int(row.week_offs_count or 0),
            week_off_days=[],
            default_shift_preference=(row.default_shift_preference or "").strip() or None,
            is_active=True,
            created_by=ctx.user_id,
            updated_by=ctx.user_id,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def auto_deactivate(self, ctx: AuditContext, request: AutoDeactivateRequest) -> AutoDeactivateResult:
        """Deactivate a list of users; failures are reported per user."""
        settings = self._settings(ctx)
        authorize(ctx.actor, Permission.CRUD_USER, store_settings=settings)

        result = AutoDeactivateResult()
        for user_id in dict.fromkeys(request.user_ids):
            user = (
                self.db.query(User)
                .filter(User.id == user_id, User.store_id == ctx.store_id, User.not_deleted())
                .first()
            )
            if user is None:
                result.errors.append(DeactivationError(user_id=user_id, error="User not found"))
                continue
            if not user.is_active:
                result.errors.append(DeactivationError(user_id=user_id, error="User is already inactive"))
                continue
            try:
                with self.db.begin_nested():
                    authorize(
                        ctx.actor,
                        Permission.CRUD_USER,
                        target=PermissionTarget("user", user.id),
                        target_user=user,
                        store_settings=settings,
                    )
                    self._ensure_not_last_store_manager(user, "Cannot deactivate the last active Store Manager")
                    user.is_active = False
                    user.updated_by = ctx.user_id
                    log_action(
                        self.db, ctx, "DEACTIVATE_USER",
                        entity_type="user", entity_id=user.id, entity_name=user.full_name,
                        changes={"isActive": {"old": True, "new": False}},
                        details={"reason": request.reason} if request.reason else None,
                        enabled=settings.enable_audit_log,
                    )
            except (ValidationFailedError, PermissionDeniedError) as e:
                result.errors.append(DeactivationError(user_id=user_id, error=e.message))
                continue
            result.deactivated.append(user_id)

        log_action(
            self.db, ctx, "BULK_DEACTIVATE_USERS",
            entity_type="user",
            details={
                "requested": len(request.user_ids),
                "deactivated": result.deactivated,
                "failed": len(result.errors),
            },
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        return result
