"""
SSE streaming settings.

Dependencies: pydantic, pydantic_settings
System role: Heartbeat, chunking, and stream duration bounds
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class StreamingSettings(BaseSettings):
    """Server-sent events configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STREAM_",
        case_sensitive=False,
        extra="ignore",
    )

    keepalive_interval_seconds: float = Field(default=15.0, gt=0)
    chunk_size: int = Field(default=20, gt=0, description="Characters per chunk event")
    chunk_delay_ms: int = Field(default=10, ge=0)
    max_stream_duration_seconds: float = Field(default=180.0, gt=0)
