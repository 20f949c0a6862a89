"""Best-effort writer for the admin audit trail."""

import logging
from typing import Any, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python

from taskdesk.db import base as db_base
from taskdesk.db.repositories import AdminActionRepository
from taskdesk.models import AdminActionEntry

logger = logging.getLogger("taskdesk.audit")


class AuditLog:
    """Writes audit entries in their own session.

    ``record`` never raises: a failed write is logged and dropped so the
    operation that triggered it keeps its outcome.
    """

    async def record(
        self,
        admin_id: UUID,
        action: str,
        target: Optional[str] = None,
        target_id: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> bool:
        entry = AdminActionEntry(
            admin_id=admin_id,
            action=action,
            target=target,
            target_id=str(target_id) if target_id is not None else None,
            details=to_jsonable_python(details or {}),
        )
        return await self.write(entry)

    async def write(self, entry: AdminActionEntry) -> bool:
        """Persist one entry; True on success."""
        try:
            async with db_base.get_session() as session:
                await AdminActionRepository(session).add(
                    admin_id=entry.admin_id,
                    action=entry.action,
                    target=entry.target,
                    target_id=entry.target_id,
                    details=entry.details,
                )
        except Exception as exc:
            logger.error(
                f"Failed to log admin action {entry.action!r} by {entry.admin_id}: {exc}",
                exc_info=True,
            )
            return False
        return True
