"""
Rate limiting settings for embed workspaces.

Dependencies: pydantic, pydantic_settings
System role: Quota defaults and visitor anonymization salt
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class RateLimitSettings(BaseSettings):
    """Quota configuration. Workspace rows override the default limits."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        extra="ignore",
    )

    visitor_hash_salt: str = Field(default="workspace-chat")
    default_daily_limit: int = Field(default=50, ge=0)
    default_session_limit: int = Field(default=20, ge=0)
    cleanup_probability: float = Field(default=0.01, ge=0.0, le=1.0)
    retention_hours: int = Field(default=48, gt=24)
