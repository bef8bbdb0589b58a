"""
Language model configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Chat completion provider configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class LLMSettings(BaseSettings):
    """Chat model configuration (Google Gemini via langchain_google_genai)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LLM_",
        case_sensitive=False,
        extra="ignore",
    )

    model_id: str = Field(default="gemini-2.5-flash", description="Chat model ID")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2000, gt=0)
    summary_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Temperature used when summarizing conversation history",
    )
    request_timeout_seconds: float = Field(default=120.0, gt=0)
