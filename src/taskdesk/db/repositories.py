"""Database repositories for TaskDesk entities."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.db.tables import AdminActionTable, TaskTable, UserTable
from taskdesk.models import (
    AdminAction,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    UserRole,
)
from taskdesk.utils.time import utc_now


class UserRepository:
    """Repository for user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.USER,
        profile_img: str | None = None,
    ) -> User:
        """Create a new user."""
        now = utc_now()
        row = UserTable(
            id=uuid4(),
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
            profile_img=profile_img,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return self._row_to_model(row)

    async def get(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        row = await self.session.get(UserTable, user_id)
        return self._row_to_model(row) if row else None

    async def get_by_username(self, username: str) -> User | None:
        result = await self.session.execute(
            select(UserTable).where(UserTable.username == username)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(UserTable).where(UserTable.email == email)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def update(self, user_id: UUID, values: dict[str, Any]) -> User | None:
        """Apply a partial update to a user."""
        if values:
            values = {**values, "updated_at": utc_now()}
            await self.session.execute(
                update(UserTable).where(UserTable.id == user_id).values(**values)
            )
        await self.session.flush()
        result = await self.session.execute(
            select(UserTable)
            .where(UserTable.id == user_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    def _row_to_model(self, row: UserTable) -> User:
        """Convert database row to model."""
        return User(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password_hash,
            role=UserRole(row.role),
            profile_img=row.profile_img,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class TaskRepository:
    """Repository for task operations.

    Every query is scoped by owner; there is no unscoped read here.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        owner_id: UUID,
        title: str,
        description: str = "",
        status: TaskStatus = TaskStatus.PENDING,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        image: str | None = None,
    ) -> Task:
        """Create a new task."""
        now = utc_now()
        row = TaskTable(
            id=uuid4(),
            owner_id=owner_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            image=image,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return self._row_to_model(row)

    async def get_owned(self, owner_id: UUID, task_id: UUID) -> Task | None:
        """Get a task by ID if the owner matches."""
        result = await self.session.execute(
            select(TaskTable)
            .where(TaskTable.id == task_id, TaskTable.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def list_owned(
        self,
        owner_id: UUID,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Task], int]:
        """List an owner's tasks, newest first, with the unpaginated total."""
        conditions = [TaskTable.owner_id == owner_id]
        if status:
            conditions.append(TaskTable.status == status)
        if priority:
            conditions.append(TaskTable.priority == priority)

        total = await self.session.scalar(
            select(func.count()).select_from(TaskTable).where(*conditions)
        )

        result = await self.session.execute(
            select(TaskTable)
            .where(*conditions)
            .order_by(TaskTable.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = result.scalars().all()
        return [self._row_to_model(r) for r in rows], int(total or 0)

    async def update_owned(
        self,
        owner_id: UUID,
        task_id: UUID,
        values: dict[str, Any],
    ) -> Task | None:
        """Apply a partial update in one statement scoped by (id, owner)."""
        values = {**values, "updated_at": utc_now()}
        result = await self.session.execute(
            update(TaskTable)
            .where(TaskTable.id == task_id, TaskTable.owner_id == owner_id)
            .values(**values)
        )
        if result.rowcount == 0:
            return None
        return await self.get_owned(owner_id, task_id)

    async def delete_owned(self, owner_id: UUID, task_id: UUID) -> Task | None:
        """Delete a task if the owner matches; return what was removed."""
        task = await self.get_owned(owner_id, task_id)
        if not task:
            return None
        await self.session.execute(
            delete(TaskTable).where(
                TaskTable.id == task_id, TaskTable.owner_id == owner_id
            )
        )
        await self.session.flush()
        return task

    async def search_owned(self, owner_id: UUID, query: str) -> list[Task]:
        """Case-insensitive literal substring match on title or description."""
        result = await self.session.execute(
            select(TaskTable)
            .where(
                TaskTable.owner_id == owner_id,
                or_(
                    TaskTable.title.icontains(query, autoescape=True),
                    TaskTable.description.icontains(query, autoescape=True),
                ),
            )
            .order_by(TaskTable.created_at.asc())
        )
        return [self._row_to_model(r) for r in result.scalars().all()]

    def _row_to_model(self, row: TaskTable) -> Task:
        """Convert database row to model."""
        return Task(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            description=row.description or "",
            status=TaskStatus(row.status),
            priority=TaskPriority(row.priority),
            due_date=row.due_date,
            image=row.image,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class AdminActionRepository:
    """Repository for the admin audit trail. Append and read only."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        admin_id: UUID,
        action: str,
        target: str | None = None,
        target_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AdminAction:
        """Append an audit entry."""
        row = AdminActionTable(
            id=uuid4(),
            admin_id=admin_id,
            action=action,
            target=target,
            target_id=target_id,
            details=details or {},
            created_at=utc_now(),
        )
        self.session.add(row)
        await self.session.flush()
        return self._row_to_model(row)

    async def list_recent(self, limit: int = 5) -> list[tuple[AdminAction, User | None]]:
        """Newest entries first, each with its acting admin."""
        result = await self.session.execute(
            select(AdminActionTable, UserTable)
            .outerjoin(UserTable, UserTable.id == AdminActionTable.admin_id)
            .order_by(AdminActionTable.created_at.desc())
            .limit(limit)
        )
        users = UserRepository(self.session)
        return [
            (self._row_to_model(action), users._row_to_model(user) if user else None)
            for action, user in result.all()
        ]

    def _row_to_model(self, row: AdminActionTable) -> AdminAction:
        """Convert database row to model."""
        return AdminAction(
            id=row.id,
            admin_id=row.admin_id,
            action=row.action,
            target=row.target,
            target_id=row.target_id,
            details=row.details or {},
            created_at=row.created_at,
        )
