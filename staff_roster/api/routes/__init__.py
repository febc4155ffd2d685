"""API routes."""

from fastapi import APIRouter

from staff_roster.api.routes import (
    activity_logs,
    auth,
    roles,
    rosters,
    settings,
    shift_definitions,
    tasks,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(rosters.router, prefix="/rosters", tags=["rosters"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(shift_definitions.router, prefix="/shift-definitions", tags=["shift-definitions"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(activity_logs.router, prefix="/activity-logs", tags=["activity-logs", "audit"])
