"""Admin action model - append-only audit entry."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AdminActionEntry(BaseModel):
    """An audit entry waiting to be written."""

    admin_id: UUID
    action: str
    target: Optional[str] = None
    target_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class AdminAction(AdminActionEntry):
    """A written audit entry."""

    id: UUID
    created_at: datetime
