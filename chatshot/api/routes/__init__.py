"""API routes for chatshot."""

from .screenshots import router as screenshots_router, chat_router

__all__ = ["screenshots_router", "chat_router"]
