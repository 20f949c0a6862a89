"""TaskDesk HTTP API."""

from taskdesk.api.router import router

__all__ = ["router"]
