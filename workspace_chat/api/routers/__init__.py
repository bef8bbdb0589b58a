"""API routers."""

from .admin import router as admin_router
from .chat_stream import router as chat_stream_router
from .health import router as health_router
from .sessions import router as sessions_router

__all__ = [
    "admin_router",
    "chat_stream_router",
    "health_router",
    "sessions_router",
]
