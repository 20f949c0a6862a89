"""Field validation shared by task and account operations."""

import re
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from taskdesk.engine.errors import ValidationError
from taskdesk.models.enums import TaskPriority, TaskStatus
from taskdesk.utils.time import ensure_utc

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_id(value: Any, entity: str = "task") -> UUID:
    """Parse an identifier, rejecting anything that is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {entity} ID.", field="id") from exc


def require_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            "Title is required and must be a non-empty string.", field="title"
        )
    return value.strip()


def clean_description(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("Description must be a string.", field="description")
    return value.strip()


def parse_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError as exc:
        raise ValidationError("Invalid status value.", field="status") from exc


def parse_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError as exc:
        raise ValidationError("Invalid priority value.", field="priority") from exc


def parse_due_date(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 date or datetime. Naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return ensure_utc(datetime(value.year, value.month, value.day))
    if not isinstance(value, str):
        raise ValidationError("Invalid dueDate format.", field="due_date")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError("Invalid dueDate format.", field="due_date") from exc
    return ensure_utc(parsed)


def require_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise ValidationError("Invalid email format", field="email")
    return value.strip()


def require_username(value: Any) -> str:
    if not isinstance(value, str) or not 3 <= len(value.strip()) <= 32:
        raise ValidationError(
            "Username must be between 3 and 32 characters", field="username"
        )
    return value.strip()


def require_password(
    value: Any, min_length: int, max_bytes: int, field: str = "password"
) -> str:
    if not isinstance(value, str) or len(value) < min_length:
        raise ValidationError(
            f"Password must be at least {min_length} characters long", field=field
        )
    if len(value.encode()) > max_bytes:
        raise ValidationError(
            f"Password must be at most {max_bytes} bytes long", field=field
        )
    return value
