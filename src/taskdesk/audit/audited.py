"""Audit wrapper around task mutations."""

from typing import Any, Mapping, Optional

from taskdesk.audit.dispatcher import AuditDispatcher
from taskdesk.auth.context import Caller
from taskdesk.engine.tasks import UPDATABLE_FIELDS, TaskService
from taskdesk.models import Task, TaskPage


class AuditedTaskService:
    """TaskService with admin-authored mutations sent to the audit trail.

    Each successful create/update/delete by an admin queues exactly one
    entry, released when the service session commits. Reads pass straight
    through.
    """

    def __init__(self, service: TaskService, dispatcher: AuditDispatcher):
        self.service = service
        self.dispatcher = dispatcher

    async def create(self, caller: Caller, fields: Mapping[str, Any]) -> Task:
        task = await self.service.create(caller, fields)
        self._audit(caller, "Created task", task, {"title": task.title})
        return task

    async def update(self, caller: Caller, task_id: Any, fields: Mapping[str, Any]) -> Task:
        task = await self.service.update(caller, task_id, fields)
        updates = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}
        if "image" in updates:
            # never copy an inline payload into the trail
            updates["image"] = task.image
        self._audit(caller, "Updated task", task, {"updates": updates})
        return task

    async def delete(self, caller: Caller, task_id: Any) -> Task:
        task = await self.service.delete(caller, task_id)
        self._audit(caller, "Deleted task", task, {"title": task.title})
        return task

    async def list(
        self,
        caller: Caller,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> TaskPage:
        return await self.service.list(caller, status, priority, page, limit)

    async def get(self, caller: Caller, task_id: Any) -> Task:
        return await self.service.get(caller, task_id)

    async def search(self, caller: Caller, query: Optional[str]) -> "list[Task]":
        return await self.service.search(caller, query)

    def _audit(self, caller: Caller, action: str, task: Task, details: dict[str, Any]) -> None:
        if not caller.is_admin:
            return
        self.dispatcher.submit_after_commit(
            self.service.session,
            caller.id,
            action,
            target="Task",
            target_id=task.id,
            details={**details, "user": str(caller.id)},
        )
