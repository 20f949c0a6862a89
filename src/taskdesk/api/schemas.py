"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from taskdesk.models import Task


class RequestModel(BaseModel):
    """Request bodies accept camelCase or snake_case keys; unknown keys are dropped."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============================================================================
# Auth / profile schemas
# ============================================================================


class SignupRequest(RequestModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(RequestModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(RequestModel):
    username: Optional[str] = None
    email: Optional[str] = None
    profile_img: Optional[str] = Field(
        None, validation_alias=AliasChoices("profileImg", "profile_img")
    )


class PasswordChangeRequest(RequestModel):
    current_password: Optional[str] = Field(
        None, validation_alias=AliasChoices("currentPassword", "current_password")
    )
    new_password: Optional[str] = Field(
        None, validation_alias=AliasChoices("newPassword", "new_password")
    )


# ============================================================================
# Task schemas
# ============================================================================


class TaskFieldsRequest(RequestModel):
    """Task fields as sent by clients. Checks beyond types live in TaskService."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = Field(
        None, validation_alias=AliasChoices("dueDate", "due_date")
    )
    image: Optional[str] = None

    def present_fields(self) -> dict[str, Any]:
        """Only the keys the client actually sent."""
        return self.model_dump(exclude_unset=True)


class TaskResponse(BaseModel):
    """Task response."""

    id: UUID
    owner_id: UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: Optional[datetime] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            owner_id=task.owner_id,
            title=task.title,
            description=task.description,
            status=task.status.value,
            priority=task.priority.value,
            due_date=task.due_date,
            image=task.image,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class ListTasksResponse(BaseModel):
    """List tasks response."""

    tasks: list[TaskResponse]
    total: int
    page: int
    pages: int


# ============================================================================
# System schemas
# ============================================================================


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
