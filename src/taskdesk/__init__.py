"""TaskDesk - personal task tracking with an admin audit trail."""

__version__ = "0.1.0"
