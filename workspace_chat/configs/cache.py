"""
Query cache configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Cache backend selection (Redis for prod, in-memory for dev)
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class CacheSettings(BaseSettings):
    """Key-value cache configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CACHE_",
        case_sensitive=False,
        extra="ignore",
    )

    backend: str = Field(
        default="memory",
        description="Cache backend: 'redis' for shared deployments, 'memory' for single process",
    )
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    namespace: str = Field(default="wschat", description="Prefix applied to every cache key")
    max_entries: int = Field(default=1000, gt=0, description="In-memory cache capacity")
    socket_timeout_seconds: float = Field(default=2.0, gt=0)
