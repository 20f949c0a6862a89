"""TaskDesk data models."""

from taskdesk.models.enums import TaskPriority, TaskStatus, UserRole
from taskdesk.models.user import PublicUser, User
from taskdesk.models.task import Task, TaskPage
from taskdesk.models.admin_action import AdminAction, AdminActionEntry
from taskdesk.models.dashboard import DashboardSnapshot

__all__ = [
    "AdminAction",
    "AdminActionEntry",
    "DashboardSnapshot",
    "PublicUser",
    "Task",
    "TaskPage",
    "TaskPriority",
    "TaskStatus",
    "User",
    "UserRole",
]
