"""
RBAC Policy Enforcement

Pure permission decisions for the roster API. Nothing here touches the
database: callers load the actor (and optional target user) with their
roles and pass them in.

Role kinds:
- store_manager: full access, including user hierarchy overrides
- shift_in_charge: supervisor; may be granted extra permissions per store
- inventory_executive: may manage ordinary staff only
- picker_packer: floor staff (warehouse / ad-hoc variants)
- custom: any role created at runtime, judged purely on its permission set

Authorization keys off ``Role.kind`` and never off the display name, so
renaming a role cannot change what it is allowed to do.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional


class Permission(str, Enum):
    """Available permissions in the system."""
    # Users & roles
    CRUD_USER = "CRUD_USER"
    CRUD_ROLE = "CRUD_ROLE"
    VIEW_ALL_STAFF = "VIEW_ALL_STAFF"
    VIEW_OWN_STAFF = "VIEW_OWN_STAFF"
    DELETE_SM_USER = "DELETE_SM_USER"
    DEMOTE_SM_USER = "DEMOTE_SM_USER"
    MANAGE_AD_HOC_PP = "MANAGE_AD_HOC_PP"

    # Rosters
    ASSIGN_SHIFT = "ASSIGN_SHIFT"
    CREATE_ROSTER = "CREATE_ROSTER"
    MODIFY_ROSTER = "MODIFY_ROSTER"
    PUBLISH_ROSTER = "PUBLISH_ROSTER"
    DELETE_ROSTER = "DELETE_ROSTER"
    VIEW_ROSTER = "VIEW_ROSTER"
    EXPORT_ROSTER = "EXPORT_ROSTER"
    SHARE_ROSTER = "SHARE_ROSTER"
    MANAGE_ROSTER_TEMPLATES = "MANAGE_ROSTER_TEMPLATES"

    # Tasks
    ASSIGN_TASK = "ASSIGN_TASK"
    MODIFY_TASK = "MODIFY_TASK"

    # Store administration
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    MANAGE_SHIFT_DEFINITIONS = "MANAGE_SHIFT_DEFINITIONS"
    VIEW_AUDIT_LOG = "VIEW_AUDIT_LOG"
    VIEW_REPORTS = "VIEW_REPORTS"


ALL_PERMISSIONS: List[Permission] = list(Permission)

# Allowed for a store manager, but the client should confirm first
CONFIRMATION_REQUIRED = frozenset({Permission.DELETE_SM_USER, Permission.DEMOTE_SM_USER})


class RoleKind(str, Enum):
    """Stable role identifiers used for authorization."""
    STORE_MANAGER = "store_manager"
    SHIFT_IN_CHARGE = "shift_in_charge"
    INVENTORY_EXECUTIVE = "inventory_executive"
    PICKER_PACKER = "picker_packer"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PermissionTarget:
    """What an action is aimed at: ``type`` is user, role, roster, ..."""
    type: str
    id: Optional[int] = None


@dataclass
class PermissionCheckResult:
    allowed: bool
    reason: Optional[str] = None
    required_permission: Optional[Permission] = None
    requires_confirmation: bool = False

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "requiredPermission": self.required_permission.value if self.required_permission else None,
            "requiresConfirmation": self.requires_confirmation,
        }


def _kind(role: Any) -> Optional[RoleKind]:
    if role is None:
        return None
    try:
        return RoleKind(role.kind)
    except ValueError:
        return RoleKind.CUSTOM


def _permission_values(role: Any) -> set:
    return {p.value if isinstance(p, Permission) else str(p) for p in (role.permissions or [])}


def shift_in_charge_overrides(store_settings: Any) -> set:
    """Permissions a store has delegated to its Shift In Charge role."""
    if store_settings is None:
        return set()
    granted = {p.value if isinstance(p, Permission) else str(p) for p in (store_settings.si_permissions or [])}
    if getattr(store_settings, "si_can_publish_roster", False):
        granted.add(Permission.PUBLISH_ROSTER.value)
    return granted


def can_perform_action(
    actor_id: Optional[int],
    action: Permission,
    target: Optional[PermissionTarget],
    actor: Any,
    target_user: Any = None,
    store_settings: Any = None,
) -> PermissionCheckResult:
    """Decide whether ``actor`` may perform ``action``.

    ``actor`` and ``target_user`` are user objects exposing ``.role`` (with
    ``kind``, ``name`` and ``permissions``). ``store_settings`` exposes the
    Shift In Charge override fields.
    """
    role = getattr(actor, "role", None)
    if role is None:
        return PermissionCheckResult(
            allowed=False,
            reason="User role not found",
            required_permission=action,
        )

    kind = _kind(role)

    if kind == RoleKind.STORE_MANAGER:
        if action in CONFIRMATION_REQUIRED:
            return PermissionCheckResult(
                allowed=True,
                reason="Store Manager can perform this action (confirmation required)",
                requires_confirmation=True,
            )
        return PermissionCheckResult(allowed=True)

    routes_to_hierarchy = (
        action == Permission.CRUD_USER
        and target is not None
        and target.type == "user"
        and target_user is not None
    )

    if action.value in _permission_values(role):
        if routes_to_hierarchy:
            return can_modify_user(actor, target_user, store_settings)
        return PermissionCheckResult(allowed=True)

    if kind == RoleKind.SHIFT_IN_CHARGE and store_settings is not None:
        if action.value in shift_in_charge_overrides(store_settings):
            if routes_to_hierarchy:
                return can_modify_user(actor, target_user, store_settings)
            return PermissionCheckResult(allowed=True)

    return PermissionCheckResult(
        allowed=False,
        reason=f'Role "{role.name}" does not have permission "{action.value}"',
        required_permission=action,
    )


def can_modify_user(actor: Any, target_user: Any, store_settings: Any = None) -> PermissionCheckResult:
    """Fixed three-tier hierarchy for acting on another user's account."""
    actor_role = getattr(actor, "role", None)
    target_role = getattr(target_user, "role", None)

    if actor_role is None or target_role is None:
        return PermissionCheckResult(allowed=False, reason="User roles not found")

    actor_kind = _kind(actor_role)
    target_kind = _kind(target_role)

    if actor_kind == RoleKind.STORE_MANAGER:
        return PermissionCheckResult(allowed=True)

    if actor_kind == RoleKind.SHIFT_IN_CHARGE and target_kind == RoleKind.STORE_MANAGER:
        if store_settings is not None and getattr(store_settings, "si_can_modify_sm", False):
            return PermissionCheckResult(
                allowed=True,
                reason="SI can modify SM (override enabled in settings)",
            )
        return PermissionCheckResult(
            allowed=False,
            reason="Shift In Charge cannot modify Store Manager accounts",
        )

    if actor_kind == RoleKind.SHIFT_IN_CHARGE:
        if target_kind not in (RoleKind.SHIFT_IN_CHARGE, RoleKind.STORE_MANAGER):
            return PermissionCheckResult(allowed=True)

    if actor_kind == RoleKind.INVENTORY_EXECUTIVE:
        if target_kind not in (
            RoleKind.STORE_MANAGER,
            RoleKind.SHIFT_IN_CHARGE,
            RoleKind.INVENTORY_EXECUTIVE,
        ):
            return PermissionCheckResult(allowed=True)

    return PermissionCheckResult(
        allowed=False,
        reason=f'User role "{actor_role.name}" cannot modify "{target_role.name}"',
    )


def authorize(
    actor: Any,
    action: Permission,
    target: Optional[PermissionTarget] = None,
    target_user: Any = None,
    store_settings: Any = None,
) -> PermissionCheckResult:
    """Run ``can_perform_action`` and raise ``PermissionDeniedError`` on deny."""
    from staff_roster.core.errors import PermissionDeniedError

    result = can_perform_action(
        getattr(actor, "id", None),
        action,
        target,
        actor,
        target_user=target_user,
        store_settings=store_settings,
    )
    if not result.allowed:
        raise PermissionDeniedError(
            result.reason or "Permission denied",
            details={"requiredPermission": action.value},
        )
    return result
