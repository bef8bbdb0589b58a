"""Service orchestrators."""

from .chat_stream_service import ChatStreamService, PreparedChat, RateLimitedError
from .session_service import SessionService

__all__ = [
    "ChatStreamService",
    "PreparedChat",
    "RateLimitedError",
    "SessionService",
]
