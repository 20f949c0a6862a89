"""TaskDesk engine - task and account operations."""

from taskdesk.engine.accounts import AccountService
from taskdesk.engine.errors import (
    AggregationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TaskDeskError,
    UnauthorizedError,
    UploadError,
    ValidationError,
)
from taskdesk.engine.tasks import TaskService

__all__ = [
    "AccountService",
    "AggregationError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "TaskDeskError",
    "TaskService",
    "UnauthorizedError",
    "UploadError",
    "ValidationError",
]
