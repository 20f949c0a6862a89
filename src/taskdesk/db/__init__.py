"""TaskDesk database layer."""

from taskdesk.db.base import Base, get_session, init_db
from taskdesk.db.tables import AdminActionTable, TaskTable, UserTable

__all__ = [
    "AdminActionTable",
    "Base",
    "TaskTable",
    "UserTable",
    "get_session",
    "init_db",
]
