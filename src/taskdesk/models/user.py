"""User model - account identity."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from taskdesk.models.enums import UserRole


class User(BaseModel):
    """Stored account, including the credential hash."""

    id: UUID
    username: str
    email: str
    password_hash: str
    role: UserRole = UserRole.USER
    profile_img: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            role=self.role,
            profile_img=self.profile_img,
            created_at=self.created_at,
        )


class PublicUser(BaseModel):
    """Client-facing projection of a user. Never carries the credential hash."""

    id: UUID
    username: str
    email: str
    role: UserRole
    profile_img: Optional[str] = None
    created_at: datetime
