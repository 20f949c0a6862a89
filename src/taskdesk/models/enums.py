"""TaskDesk enumerations."""

from enum import Enum


class UserRole(str, Enum):
    """Account role."""

    USER = "user"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    """Task status. Any status may move to any other."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
