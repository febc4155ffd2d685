"""Idempotent default data: store, roles, tasks, shifts and a first manager."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from staff_roster.core.config import settings
from staff_roster.core.rbac_policy import ALL_PERMISSIONS, Permission, RoleKind
from staff_roster.core.security import get_password_hash
from staff_roster.models.role import Role
from staff_roster.models.store import Store
from staff_roster.models.task import Task
from staff_roster.models.user import ExperienceLevel, PPType, User
from staff_roster.schemas.store import StoreSettings
from staff_roster.services.shift_definition_service import ShiftDefinitionService

logger = logging.getLogger(__name__)

P = Permission

DEFAULT_ROLES = [
    {
        "name": "Store Manager",
        "kind": RoleKind.STORE_MANAGER,
        "description": "Full administrative access to all features",
        "permissions": ALL_PERMISSIONS,
        "is_editable": False,
        "is_system_role": True,
    },
    {
        "name": "Shift In Charge",
        "kind": RoleKind.SHIFT_IN_CHARGE,
        "description": "Elevated user with staff management and roster creation capabilities",
        "permissions": [
            P.VIEW_OWN_STAFF, P.CRUD_USER, P.ASSIGN_SHIFT, P.CREATE_ROSTER, P.MODIFY_ROSTER,
            P.ASSIGN_TASK, P.VIEW_ROSTER, P.EXPORT_ROSTER, P.MANAGE_AD_HOC_PP,
        ],
        "is_editable": True,
        "is_system_role": True,
    },
    {
        "name": "Inventory Executive",
        "kind": RoleKind.INVENTORY_EXECUTIVE,
        "description": "Manages inventory and stock-related tasks. Can add/update emails for staff.",
        "permissions": [P.VIEW_ROSTER, P.ASSIGN_TASK, P.VIEW_REPORTS, P.CRUD_USER],
        "is_editable": True,
        "is_system_role": False,
    },
    {
        "name": "Picker Packer (Warehouse)",
        "kind": RoleKind.PICKER_PACKER,
        "description": "In-store picking and packing operations",
        "permissions": [P.VIEW_ROSTER],
        "default_experience_level": ExperienceLevel.FRESHER.value,
        "default_pp_type": PPType.WAREHOUSE.value,
    },
    {
        "name": "Picker Packer (Ad-Hoc)",
        "kind": RoleKind.PICKER_PACKER,
        "description": "Temporary or seasonal picking and packing staff",
        "permissions": [P.VIEW_ROSTER],
        "default_experience_level": ExperienceLevel.FRESHER.value,
        "default_pp_type": PPType.AD_HOC.value,
    },
    {
        "name": "Picker Packer",
        "kind": RoleKind.PICKER_PACKER,
        "description": "General picking and packing operations",
        "permissions": [P.VIEW_ROSTER],
        "default_experience_level": ExperienceLevel.FRESHER.value,
    },
]

DEFAULT_TASKS = [
    ("Order Processing", "Process customer orders, verify details, and prepare for fulfillment", "operations", 180),
    ("Growth Team Escalations", "Handle escalated customer issues and coordinate with growth team", "customer-service", 120),
    ("Inwarding", "Receive and process incoming inventory, verify quantities, and update stock", "inventory", 240),
    ("Return Processing", "Process customer returns, inspect items, and update inventory", "operations", 150),
    ("Audit", "Conduct quality audits, verify processes, and document findings", "quality", 90),
]


def _seed_store(db: Session) -> Store:
    store = db.query(Store).order_by(Store.id).first()
    if store is None:
        store = Store(
            name=settings.default_store_name,
            timezone="UTC",
            settings=StoreSettings(min_staff_per_shift=settings.default_min_required_staff).model_dump(mode="json"),
        )
        db.add(store)
        db.flush()
        logger.info("Created default store %r", store.name)
    return store


def _seed_roles(db: Session) -> dict:
    roles = {}
    for role_def in DEFAULT_ROLES:
        role = db.query(Role).filter(Role.name == role_def["name"]).first()
        if role is None:
            role = Role(
                name=role_def["name"],
                kind=role_def["kind"].value,
                description=role_def["description"],
                permissions=[p.value for p in role_def["permissions"]],
                default_experience_level=role_def.get("default_experience_level"),
                default_pp_type=role_def.get("default_pp_type"),
                is_editable=role_def.get("is_editable", True),
                is_system_role=role_def.get("is_system_role", False),
            )
            db.add(role)
            db.flush()
            logger.info("Created default role %r", role.name)
        roles[role_def["kind"]] = roles.get(role_def["kind"], role)
    return roles


def _seed_tasks(db: Session) -> int:
    created = 0
    for name, description, category, duration in DEFAULT_TASKS:
        if db.query(Task.id).filter(Task.name == name).first() is not None:
            continue
        db.add(Task(
            name=name,
            description=description,
            category=category,
            required_experience=ExperienceLevel.EXPERIENCED.value,
            estimated_duration=duration,
            is_active=True,
        ))
        created += 1
    db.flush()
    return created


def seed_defaults(
    db: Session,
    admin_email: Optional[str] = None,
    admin_password: Optional[str] = None,
    admin_employee_id: str = "SM001",
) -> Store:
    """Create whatever default data is missing. Safe to run repeatedly.

    When ``admin_email`` and ``admin_password`` are given and the store has
    no Store Manager yet, a first manager account is created too.
    """
    store = _seed_store(db)
    roles = _seed_roles(db)
    tasks_created = _seed_tasks(db)
    db.commit()

    ShiftDefinitionService(db).initialize_defaults(None, store.id)

    if admin_email and admin_password:
        manager_role = roles[RoleKind.STORE_MANAGER]
        has_manager = (
            db.query(User.id)
            .filter(User.store_id == store.id, User.role_id == manager_role.id, User.not_deleted())
            .first()
        )
        if has_manager is None:
            db.add(User(
                store_id=store.id,
                employee_id=admin_employee_id,
                first_name="Store",
                last_name="Manager",
                email=admin_email.lower(),
                password_hash=get_password_hash(admin_password),
                role_id=manager_role.id,
                experience_level=ExperienceLevel.EXPERIENCED.value,
                week_off_days=[],
                is_active=True,
            ))
            db.commit()
            logger.info("Created first Store Manager account %s", admin_email)

    if tasks_created:
        logger.info("Created %d default tasks", tasks_created)
    return store
