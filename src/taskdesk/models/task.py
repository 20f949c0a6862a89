"""Task model - a personal to-do item owned by one user."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from taskdesk.models.enums import TaskPriority, TaskStatus


class Task(BaseModel):
    """Task entity."""

    id: UUID
    owner_id: UUID
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TaskPage(BaseModel):
    """One page of an owner's task list."""

    items: list[Task]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        # ceil(total / limit) without floats
        return -(-self.total // self.limit)
