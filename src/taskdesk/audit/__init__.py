"""Admin audit trail."""

from taskdesk.audit.audited import AuditedTaskService
from taskdesk.audit.dispatcher import AuditDispatcher, get_audit_dispatcher
from taskdesk.audit.log import AuditLog

__all__ = [
    "AuditDispatcher",
    "AuditLog",
    "AuditedTaskService",
    "get_audit_dispatcher",
]
