"""Background dispatch of audit entries.

Request handlers hand entries to the dispatcher and return immediately; a
single worker task writes them through ``AuditLog``. Entries tied to a
request session are held until that session commits and are dropped if it
rolls back.
"""

import asyncio
import logging
from typing import Any, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.audit.log import AuditLog
from taskdesk.models import AdminActionEntry

logger = logging.getLogger("taskdesk.audit")

_PENDING_KEY = "taskdesk.audit.pending"


class AuditDispatcher:
    """Fire-and-forget queue in front of the audit log."""

    def __init__(self, audit_log: Optional[AuditLog] = None):
        self.audit_log = audit_log or AuditLog()
        self.written = 0
        self.failed = 0
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Start the worker task (no-op if it is already running)."""
        self._ensure_worker()

    def submit(
        self,
        admin_id: UUID,
        action: str,
        target: Optional[str] = None,
        target_id: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue an entry without waiting for it to be written."""
        self._enqueue(_entry(admin_id, action, target, target_id, details))

    def submit_after_commit(
        self,
        session: AsyncSession,
        admin_id: UUID,
        action: str,
        target: Optional[str] = None,
        target_id: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue an entry once ``session`` commits; discard it on rollback."""
        sync_session = session.sync_session
        if _PENDING_KEY not in sync_session.info:
            sync_session.info[_PENDING_KEY] = []
            event.listen(sync_session, "after_commit", _release_pending)
            event.listen(sync_session, "after_rollback", _discard_pending)
        sync_session.info[_PENDING_KEY].append(
            (self, _entry(admin_id, action, target, target_id, details))
        )
        self._ensure_worker()

    async def drain(self) -> None:
        """Wait until every queued entry has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, timeout: float = 10.0) -> None:
        """Flush pending entries, then stop the worker."""
        if self._worker is None:
            return

        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Audit dispatcher stopped with {self._queue.qsize()} entries unwritten"
            )

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass

        self._worker = None
        self._queue = None
        logger.info(f"Audit dispatcher stopped (written={self.written}, failed={self.failed})")

    def _enqueue(self, entry: AdminActionEntry) -> None:
        self._ensure_worker()
        self._queue.put_nowait(entry)

    def _ensure_worker(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if not self.running:
            self._worker = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                if await self.audit_log.write(entry):
                    self.written += 1
                else:
                    self.failed += 1
            except Exception as exc:
                self.failed += 1
                logger.error(f"Audit worker error: {exc}", exc_info=True)
            finally:
                self._queue.task_done()


def _entry(
    admin_id: UUID,
    action: str,
    target: Optional[str],
    target_id: Optional[Any],
    details: Optional[dict[str, Any]],
) -> AdminActionEntry:
    return AdminActionEntry(
        admin_id=admin_id,
        action=action,
        target=target,
        target_id=str(target_id) if target_id is not None else None,
        details=to_jsonable_python(details or {}),
    )


def _release_pending(sync_session) -> None:
    pending = sync_session.info.get(_PENDING_KEY, [])
    for dispatcher, entry in pending:
        dispatcher._enqueue(entry)
    pending.clear()


def _discard_pending(sync_session) -> None:
    dropped = sync_session.info.get(_PENDING_KEY, [])
    if dropped:
        logger.debug(f"Discarded {len(dropped)} audit entries after rollback")
    dropped.clear()


_dispatcher: Optional[AuditDispatcher] = None


def get_audit_dispatcher() -> AuditDispatcher:
    """Get or create the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = AuditDispatcher()
    return _dispatcher
