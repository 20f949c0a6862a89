"""Admin dashboard aggregation.

Reads across every user, task and audit entry; nothing here is owner
scoped and nothing here writes.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.config import settings
from taskdesk.db.repositories import AdminActionRepository
from taskdesk.db.tables import TaskTable, UserTable
from taskdesk.engine.errors import AggregationError
from taskdesk.models import DashboardSnapshot, TaskStatus, UserRole
from taskdesk.models.dashboard import (
    ActiveUser,
    OverdueTask,
    RecentAdminAction,
    RecentTask,
    RecentUser,
    UserRef,
)
from taskdesk.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def _user_ref(user: Optional[UserTable]) -> Optional[UserRef]:
    if user is None:
        return None
    return UserRef(id=user.id, username=user.username, email=user.email)


def _value(member) -> str:
    return member.value if hasattr(member, "value") else str(member)


class DashboardEngine:
    """Computes the admin dashboard snapshot."""

    def __init__(self, session: AsyncSession, recent_limit: Optional[int] = None):
        self.session = session
        self.recent_limit = recent_limit or settings.dashboard_recent_limit

    async def compute_dashboard(self, now: Optional[datetime] = None) -> DashboardSnapshot:
        """Build every report; any failed read fails the whole snapshot."""
        now = ensure_utc(now) if now else utc_now()
        try:
            return DashboardSnapshot(
                user_count=await self._count(UserTable),
                admin_count=await self._count(UserTable, UserTable.role == UserRole.ADMIN),
                task_count=await self._count(TaskTable),
                user_role_breakdown=await self._breakdown(UserTable.role),
                task_status_breakdown=await self._breakdown(TaskTable.status),
                recent_users=await self._recent_users(),
                recent_tasks=await self._recent_tasks(),
                most_active_users=await self._most_active_users(),
                overdue_tasks=await self._overdue_tasks(now),
                recent_admin_actions=await self._recent_admin_actions(),
            )
        except SQLAlchemyError as exc:
            logger.error(f"Dashboard aggregation failed: {exc}", exc_info=True)
            raise AggregationError(str(exc)) from exc

    async def _count(self, table, *conditions) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(table).where(*conditions)
        )
        return int(total or 0)

    async def _breakdown(self, column) -> dict[str, int]:
        result = await self.session.execute(
            select(column, func.count()).group_by(column)
        )
        return {_value(key): int(count) for key, count in result.all()}

    async def _recent_users(self) -> list[RecentUser]:
        result = await self.session.execute(
            select(UserTable)
            .order_by(UserTable.created_at.desc())
            .limit(self.recent_limit)
        )
        return [
            RecentUser(
                username=user.username,
                email=user.email,
                role=_value(user.role),
                created_at=user.created_at,
            )
            for user in result.scalars().all()
        ]

    async def _recent_tasks(self) -> list[RecentTask]:
        result = await self.session.execute(
            select(TaskTable, UserTable)
            .outerjoin(UserTable, UserTable.id == TaskTable.owner_id)
            .order_by(TaskTable.created_at.desc())
            .limit(self.recent_limit)
        )
        return [
            RecentTask(
                id=task.id,
                title=task.title,
                status=_value(task.status),
                owner=_user_ref(owner),
                created_at=task.created_at,
                due_date=task.due_date,
            )
            for task, owner in result.all()
        ]

    async def _most_active_users(self) -> list[ActiveUser]:
        task_count = func.count(TaskTable.id).label("task_count")
        result = await self.session.execute(
            select(UserTable.id, UserTable.username, UserTable.email, task_count)
            .join(TaskTable, TaskTable.owner_id == UserTable.id)
            .group_by(UserTable.id, UserTable.username, UserTable.email)
            .order_by(task_count.desc(), UserTable.username.asc(), UserTable.id.asc())
            .limit(self.recent_limit)
        )
        return [
            ActiveUser(user_id=user_id, username=username, email=email, task_count=count)
            for user_id, username, email, count in result.all()
        ]

    async def _overdue_tasks(self, now: datetime) -> list[OverdueTask]:
        result = await self.session.execute(
            select(TaskTable, UserTable)
            .outerjoin(UserTable, UserTable.id == TaskTable.owner_id)
            .where(
                TaskTable.due_date.is_not(None),
                TaskTable.due_date < now,
                TaskTable.status != TaskStatus.COMPLETED,
            )
            .order_by(TaskTable.due_date.asc())
        )
        return [
            OverdueTask(
                id=task.id,
                title=task.title,
                status=_value(task.status),
                due_date=task.due_date,
                owner=_user_ref(owner),
            )
            for task, owner in result.all()
        ]

    async def _recent_admin_actions(self) -> list[RecentAdminAction]:
        rows = await AdminActionRepository(self.session).list_recent(self.recent_limit)
        return [
            RecentAdminAction(
                id=action.id,
                admin=UserRef(id=admin.id, username=admin.username, email=admin.email)
                if admin
                else None,
                action=action.action,
                target=action.target,
                target_id=action.target_id,
                details=action.details,
                created_at=action.created_at,
            )
            for action, admin in rows
        ]
