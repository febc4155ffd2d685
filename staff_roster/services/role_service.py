"""Role management service."""

import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from staff_roster.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.models.role import Role
from staff_roster.models.user import User
from staff_roster.schemas.role import RoleCreate, RoleUpdate
from staff_roster.services.audit_service import AuditContext, diff_changes, log_action
from staff_roster.services.store_service import StoreService

logger = logging.getLogger(__name__)


def _snapshot(role: Role) -> dict:
    return {
        "name": role.name,
        "kind": role.kind,
        "description": role.description,
        "permissions": list(role.permissions or []),
        "defaultTaskPreferences": role.default_task_preferences,
        "defaultExperienceLevel": role.default_experience_level,
        "defaultPpType": role.default_pp_type,
    }


class RoleService:
    """CRUD for roles. Writes require CRUD_ROLE."""

    def __init__(self, db: Session):
        self.db = db

    def list_roles(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.is_system_role.desc(), Role.name).all()

    def get_role(self, role_id: int) -> Role:
        role = self.db.get(Role, role_id)
        if role is None:
            raise NotFoundError("Role not found", details={"roleId": role_id})
        return role

    def _authorize(self, ctx: AuditContext):
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.CRUD_ROLE, store_settings=settings)
        return settings

    def _ensure_unique_name(self, name: str, exclude_id: int = None) -> None:
        query = self.db.query(Role).filter(func.lower(Role.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first() is not None:
            raise ValidationFailedError(f'A role named "{name}" already exists')

    def create_role(self, ctx: AuditContext, data: RoleCreate) -> Role:
        settings = self._authorize(ctx)
        name = data.name.strip()
        self._ensure_unique_name(name)

        role = Role(
            name=name,
            kind=data.kind.value,
            description=data.description,
            permissions=[p.value for p in data.permissions],
            default_task_preferences=data.default_task_preferences,
            default_experience_level=data.default_experience_level.value if data.default_experience_level else None,
            default_pp_type=data.default_pp_type.value if data.default_pp_type else None,
            is_editable=data.is_editable,
            is_system_role=False,
            created_by=ctx.user_id,
            updated_by=ctx.user_id,
        )
        self.db.add(role)
        self.db.flush()
        log_action(
            self.db, ctx, "CREATE_ROLE",
            entity_type="role", entity_id=role.id, entity_name=role.name,
            details={"permissions": role.permissions},
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(role)
        return role

    def update_role(self, ctx: AuditContext, role_id: int, data: RoleUpdate) -> Role:
        settings = self._authorize(ctx)
        role = self.get_role(role_id)
        if not role.is_editable:
            raise PermissionDeniedError(
                f'Role "{role.name}" cannot be edited',
                reason="ROLE_NOT_EDITABLE",
            )

        before = _snapshot(role)
        fields = data.model_dump(exclude_unset=True)
        if "name" in fields and fields["name"] is not None:
            name = fields["name"].strip()
            self._ensure_unique_name(name, exclude_id=role.id)
            role.name = name
        if "kind" in fields and fields["kind"] is not None and fields["kind"].value != role.kind:
            if role.is_system_role:
                raise ValidationFailedError("The kind of a system role cannot be changed")
            role.kind = fields["kind"].value
        if "description" in fields:
            role.description = fields["description"]
        if "permissions" in fields and fields["permissions"] is not None:
            role.permissions = [p.value for p in data.permissions]
        if "default_task_preferences" in fields:
            role.default_task_preferences = fields["default_task_preferences"]
        if "default_experience_level" in fields:
            level = data.default_experience_level
            role.default_experience_level = level.value if level else None
        if "default_pp_type" in fields:
            role.default_pp_type = data.default_pp_type.value if data.default_pp_type else None
        role.updated_by = ctx.user_id

        changes = diff_changes(before, _snapshot(role))
        if changes:
            log_action(
                self.db, ctx, "UPDATE_ROLE",
                entity_type="role", entity_id=role.id, entity_name=role.name,
                changes=changes,
                enabled=settings.enable_audit_log,
            )
        self.db.commit()
        self.db.refresh(role)
        return role

    def delete_role(self, ctx: AuditContext, role_id: int) -> None:
        settings = self._authorize(ctx)
        role = self.get_role(role_id)
        if role.is_system_role:
            raise ValidationFailedError(
                f'System role "{role.name}" cannot be deleted',
                reason="DELETE_NOT_ALLOWED",
            )

        # Soft-deleted users still reference their role
        affected = self.db.query(User).filter(User.role_id == role.id).count()
        if affected:
            raise ValidationFailedError(
                f'Role "{role.name}" is assigned to {affected} user(s)',
                details={"affectedUsers": affected},
                reason="DELETE_NOT_ALLOWED",
            )

        log_action(
            self.db, ctx, "DELETE_ROLE",
            entity_type="role", entity_id=role.id, entity_name=role.name,
            enabled=settings.enable_audit_log,
        )
        self.db.delete(role)
        self.db.commit()
        logger.info("Role %s deleted by user %s", role_id, ctx.user_id)
