"""TaskDesk engine errors."""

from typing import Any, Optional


class TaskDeskError(Exception):
    """Base error for TaskDesk operations."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "TASKDESK_ERROR",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)


class ValidationError(TaskDeskError):
    """Malformed, missing or out-of-range input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.field = field


class ConflictError(TaskDeskError):
    """Unique value already taken (username, email)."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "CONFLICT")
        self.field = field


class UnauthorizedError(TaskDeskError):
    """Missing or invalid caller identity."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED")


class ForbiddenError(TaskDeskError):
    """Authenticated, but the role is not allowed."""

    status_code = 403

    def __init__(self, message: str = "Access denied. Admins only."):
        super().__init__(message, "FORBIDDEN")


class NotFoundError(TaskDeskError):
    """No matching entity owned by the caller."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None):
        super().__init__(f"{entity} not found.", "NOT_FOUND")
        self.entity = entity
        self.entity_id = entity_id


class UploadError(TaskDeskError):
    """The image store rejected or failed an upload."""

    status_code = 400

    def __init__(self, details: Any = None):
        super().__init__("Failed to upload image.", "UPLOAD_FAILED", details)


class AggregationError(TaskDeskError):
    """A dashboard read failed."""

    status_code = 500

    def __init__(self, details: Any = None):
        super().__init__("Failed to fetch dashboard data.", "AGGREGATION_FAILED", details)
