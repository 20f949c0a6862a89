"""SQLAlchemy table definitions."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskdesk.db.base import Base
from taskdesk.models.enums import TaskPriority, TaskStatus, UserRole
from taskdesk.utils.time import ensure_utc


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops tzinfo on the way in and out; values are normalized to UTC
    before binding and re-tagged as UTC when loaded.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)


JSONType = JSON().with_variant(JSONB(), "postgresql")


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class UserTable(Base):
    """Users table - accounts and credentials."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=_enum_values, name="userrole"),
        nullable=False,
        default=UserRole.USER,
    )
    profile_img: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    tasks: Mapped[list["TaskTable"]] = relationship("TaskTable", back_populates="owner")

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_created", "created_at"),
    )


class TaskTable(Base):
    """Tasks table - every row belongs to exactly one user."""

    __tablename__ = "tasks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, values_callable=_enum_values, name="taskstatus"),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, values_callable=_enum_values, name="taskpriority"),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    owner: Mapped[UserTable] = relationship("UserTable", back_populates="tasks")

    __table_args__ = (
        # Owner-scoped listing, newest first
        Index("idx_tasks_owner_created", "owner_id", "created_at"),
        Index("idx_tasks_owner_status", "owner_id", "status"),
        # Overdue scans
        Index("idx_tasks_due", "due_date", "status"),
    )


class AdminActionTable(Base):
    """Admin actions table - append-only audit trail."""

    __tablename__ = "admin_actions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    admin_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    target: Mapped[str | None] = mapped_column(String(100), nullable=True)
    target_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    admin: Mapped[UserTable] = relationship("UserTable")

    __table_args__ = (
        Index("idx_admin_actions_created", "created_at"),
        Index("idx_admin_actions_admin", "admin_id", "created_at"),
    )
