"""Task catalogue service."""

from typing import List

from sqlalchemy.orm import Session

from staff_roster.core.errors import NotFoundError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.models.task import Task
from staff_roster.schemas.task import TaskCreate, TaskUpdate
from staff_roster.services.audit_service import AuditContext, diff_changes, log_action
from staff_roster.services.store_service import StoreService

_AUDITED_FIELDS = ("name", "description", "category", "required_experience", "estimated_duration", "is_active")


def _snapshot(task: Task) -> dict:
    return {name: getattr(task, name) for name in _AUDITED_FIELDS}


class TaskService:

    def __init__(self, db: Session):
        self.db = db

    def list_tasks(self, include_inactive: bool = False) -> List[Task]:
        query = self.db.query(Task)
        if not include_inactive:
            query = query.filter(Task.is_active.is_(True))
        return query.order_by(Task.category, Task.name).all()

    def get_task(self, task_id: int) -> Task:
        task = self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found", details={"taskId": task_id})
        return task

    def _authorize(self, ctx: AuditContext):
        settings = StoreService(self.db).get_settings(ctx.store_id)
        authorize(ctx.actor, Permission.MODIFY_TASK, store_settings=settings)
        return settings

    def create_task(self, ctx: AuditContext, data: TaskCreate) -> Task:
        settings = self._authorize(ctx)
        task = Task(
            name=data.name.strip(),
            description=data.description,
            category=data.category.strip(),
            required_experience=data.required_experience.value if data.required_experience else None,
            estimated_duration=data.estimated_duration,
            is_active=True,
        )
        self.db.add(task)
        self.db.flush()
        log_action(
            self.db, ctx, "CREATE_TASK",
            entity_type="task", entity_id=task.id, entity_name=task.name,
            details={"category": task.category},
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(task)
        return task

    def update_task(self, ctx: AuditContext, task_id: int, data: TaskUpdate) -> Task:
        settings = self._authorize(ctx)
        task = self.get_task(task_id)
        before = _snapshot(task)

        for name, value in data.model_dump(exclude_unset=True).items():
            if name in ("name", "category") and value is None:
                continue
            if name == "required_experience" and value is not None:
                value = value.value
            setattr(task, name, value.strip() if name in ("name", "category") else value)

        changes = diff_changes(before, _snapshot(task))
        if changes:
            log_action(
                self.db, ctx, "UPDATE_TASK",
                entity_type="task", entity_id=task.id, entity_name=task.name,
                changes=changes,
                enabled=settings.enable_audit_log,
            )
        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, ctx: AuditContext, task_id: int) -> Task:
        """Soft delete: the task stays referenced by historical slots."""
        settings = self._authorize(ctx)
        task = self.get_task(task_id)
        task.is_active = False
        log_action(
            self.db, ctx, "DELETE_TASK",
            entity_type="task", entity_id=task.id, entity_name=task.name,
            enabled=settings.enable_audit_log,
        )
        self.db.commit()
        self.db.refresh(task)
        return task
