"""Admin reporting."""

from taskdesk.admin.dashboard import DashboardEngine

__all__ = ["DashboardEngine"]
