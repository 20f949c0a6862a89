"""Admin dashboard snapshot models."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class UserRef(BaseModel):
    """Username/email pair used when a report names a user."""

    id: UUID
    username: str
    email: str


class RecentUser(BaseModel):
    username: str
    email: str
    role: str
    created_at: datetime


class RecentTask(BaseModel):
    id: UUID
    title: str
    status: str
    owner: Optional[UserRef] = None
    created_at: datetime
    due_date: Optional[datetime] = None


class ActiveUser(BaseModel):
    user_id: UUID
    username: str
    email: str
    task_count: int


class OverdueTask(BaseModel):
    id: UUID
    title: str
    status: str
    due_date: datetime
    owner: Optional[UserRef] = None


class RecentAdminAction(BaseModel):
    id: UUID
    admin: Optional[UserRef] = None
    action: str
    target: Optional[str] = None
    target_id: Optional[str] = None
    details: dict[str, Any]
    created_at: datetime


class DashboardSnapshot(BaseModel):
    """Read-only statistics over every user, task and audit entry."""

    user_count: int
    admin_count: int
    task_count: int
    user_role_breakdown: dict[str, int]
    task_status_breakdown: dict[str, int]
    recent_users: list[RecentUser]
    recent_tasks: list[RecentTask]
    most_active_users: list[ActiveUser]
    overdue_tasks: list[OverdueTask]
    recent_admin_actions: list[RecentAdminAction]
