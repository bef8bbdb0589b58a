"""
Conversation history and summarization settings.

Dependencies: pydantic, pydantic_settings
System role: History window sizes and summarization trigger
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class SummarizationSettings(BaseSettings):
    """History resolver configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SUMMARIZATION_",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(default=True)
    token_threshold: int = Field(default=100000, gt=0)
    keep_recent_messages: int = Field(default=10, ge=1)
    summary_max_tokens: int = Field(default=2000, gt=0)
    archive_original_messages: bool = Field(default=True)

    embed_history_limit: int = Field(default=10, ge=1)
    standalone_history_limit: int = Field(default=20, ge=1)
    session_ttl_hours: int = Field(default=24, gt=0)
