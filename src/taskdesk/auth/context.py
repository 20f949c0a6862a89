"""Authentication context helpers."""

from dataclasses import dataclass
from uuid import UUID

from taskdesk.models.enums import UserRole


@dataclass(frozen=True)
class Caller:
    """Identity of the user behind the current request."""

    id: UUID
    role: UserRole
    username: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
