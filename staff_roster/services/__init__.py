# Services module

from staff_roster.services.actuals_service import ActualsService
from staff_roster.services.audit_service import AuditContext, log_action
from staff_roster.services.role_service import RoleService
from staff_roster.services.roster_service import RosterService
from staff_roster.services.seed_service import seed_defaults
from staff_roster.services.shift_definition_service import ShiftDefinitionService
from staff_roster.services.store_service import StoreService
from staff_roster.services.task_service import TaskService
from staff_roster.services.user_service import UserService

__all__ = [
    "ActualsService",
    "AuditContext",
    "RoleService",
    "RosterService",
    "ShiftDefinitionService",
    "StoreService",
    "TaskService",
    "UserService",
    "log_action",
    "seed_defaults",
]
