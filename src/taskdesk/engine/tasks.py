"""Owner-scoped task operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.context import Caller
from taskdesk.config import settings
from taskdesk.db.repositories import TaskRepository
from taskdesk.engine.errors import NotFoundError, ValidationError
from taskdesk.engine.validation import (
    clean_description,
    parse_due_date,
    parse_id,
    parse_priority,
    parse_status,
    require_title,
)
from taskdesk.models import Task, TaskPage, TaskPriority, TaskStatus

if TYPE_CHECKING:
    from taskdesk.images.normalizer import ImageNormalizer

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "status", "due_date", "priority", "image")


class TaskService:
    """Task CRUD for a single caller.

    Every read and write is filtered by ``owner == caller.id``. Image
    normalization happens before the first write so a failed upload never
    leaves a partial row behind.
    """

    def __init__(self, session: AsyncSession, normalizer: ImageNormalizer):
        self.session = session
        self.normalizer = normalizer
        self.tasks = TaskRepository(session)

    async def create(self, caller: Caller, fields: Mapping[str, Any]) -> Task:
        """Create a task owned by the caller."""
        title = require_title(fields.get("title"))
        description = clean_description(fields.get("description"))

        status = TaskStatus.PENDING
        if fields.get("status"):
            status = parse_status(fields["status"])

        priority = TaskPriority.MEDIUM
        if fields.get("priority"):
            priority = parse_priority(fields["priority"])

        due_date = parse_due_date(fields.get("due_date"))
        image = await self.normalizer.normalize(fields.get("image"))

        task = await self.tasks.create(
            owner_id=caller.id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            image=image,
        )
        logger.info(f"Task {task.id} created by {caller.id}")
        return task

    async def list(
        self,
        caller: Caller,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> TaskPage:
        """List the caller's tasks, newest first."""
        limit = settings.default_list_limit if limit is None else limit
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if not 1 <= limit <= settings.max_list_limit:
            raise ValidationError(
                f"limit must be between 1 and {settings.max_list_limit}", field="limit"
            )

        items, total = await self.tasks.list_owned(
            owner_id=caller.id,
            status=parse_status(status) if status else None,
            priority=parse_priority(priority) if priority else None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return TaskPage(items=items, total=total, page=page, limit=limit)

    async def get(self, caller: Caller, task_id: Any) -> Task:
        """Get one of the caller's tasks."""
        task = await self.tasks.get_owned(caller.id, parse_id(task_id))
        if not task:
            raise NotFoundError("Task", task_id)
        return task

    async def update(
        self, caller: Caller, task_id: Any, fields: Mapping[str, Any]
    ) -> Task:
        """Apply whitelisted field changes to one of the caller's tasks.

        Unknown keys are dropped. Present fields get the same checks as on
        create; an inline image is uploaded again every time it is sent.
        """
        task_uuid = parse_id(task_id)
        changes = self._validated_changes(fields)

        if "image" in changes:
            changes["image"] = await self.normalizer.normalize(changes["image"])

        task = await self.tasks.update_owned(caller.id, task_uuid, changes)
        if not task:
            raise NotFoundError("Task", task_id)
        logger.info(f"Task {task.id} updated by {caller.id}: {sorted(changes)}")
        return task

    async def delete(self, caller: Caller, task_id: Any) -> Task:
        """Delete one of the caller's tasks and return it."""
        task = await self.tasks.delete_owned(caller.id, parse_id(task_id))
        if not task:
            raise NotFoundError("Task", task_id)
        logger.info(f"Task {task.id} deleted by {caller.id}")
        return task

    async def search(self, caller: Caller, query: Optional[str]) -> list[Task]:
        """Case-insensitive substring search over title and description."""
        if not isinstance(query, str) or not query.strip():
            raise ValidationError(
                "Search query 'q' is required and must be a non-empty string.",
                field="q",
            )
        return await self.tasks.search_owned(caller.id, query.strip())

    def _validated_changes(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        present = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}
        changes: dict[str, Any] = {}

        if "title" in present:
            changes["title"] = require_title(present["title"])
        if "description" in present:
            changes["description"] = clean_description(present["description"])
        if "status" in present:
            changes["status"] = parse_status(present["status"])
        if "priority" in present:
            changes["priority"] = parse_priority(present["priority"])
        if "due_date" in present:
            changes["due_date"] = parse_due_date(present["due_date"])
        if "image" in present:
            changes["image"] = present["image"]

        return changes
