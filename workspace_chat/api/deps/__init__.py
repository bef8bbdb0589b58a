"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    ServiceCache,
    get_chat_stream_service,
    get_service_cache,
    get_session_service,
    get_settings_dependency,
)

__all__ = [
    "ServiceCache",
    "get_chat_stream_service",
    "get_service_cache",
    "get_session_service",
    "get_settings_dependency",
]
