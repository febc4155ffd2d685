"""Task catalogue routes."""

from fastapi import APIRouter, Query, status

from staff_roster.core.rbac import Actor, CurrentUser
from staff_roster.core.responses import success_response
from staff_roster.db.session import DbSession
from staff_roster.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from staff_roster.services.task_service import TaskService

router = APIRouter()


@router.get("")
def list_tasks(
    db: DbSession,
    current_user: CurrentUser,
    include_inactive: bool = Query(False, alias="includeInactive"),
):
    tasks = TaskService(db).list_tasks(include_inactive=include_inactive)
    return success_response([TaskResponse.model_validate(t) for t in tasks])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(data: TaskCreate, db: DbSession, ctx: Actor):
    return success_response(TaskResponse.model_validate(TaskService(db).create_task(ctx, data)))


@router.get("/{task_id}")
def get_task(task_id: int, db: DbSession, current_user: CurrentUser):
    return success_response(TaskResponse.model_validate(TaskService(db).get_task(task_id)))


@router.put("/{task_id}")
def update_task(task_id: int, data: TaskUpdate, db: DbSession, ctx: Actor):
    return success_response(TaskResponse.model_validate(TaskService(db).update_task(ctx, task_id, data)))


@router.delete("/{task_id}")
def delete_task(task_id: int, db: DbSession, ctx: Actor):
    """Deactivate a task. Rosters that reference it keep the id."""
    task = TaskService(db).delete_task(ctx, task_id)
    return success_response(TaskResponse.model_validate(task))
