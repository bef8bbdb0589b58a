"""
Tool orchestration settings.

Dependencies: pydantic, pydantic_settings
System role: Tool-calling loop bounds and tool credentials
"""

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class ToolSettings(BaseSettings):
    """Tool-calling loop and built-in tool configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TOOLS_",
        case_sensitive=False,
        extra="ignore",
    )

    max_iterations: int = Field(
        default=3,
        ge=1,
        description="Maximum model/tool round trips before the answer is finalized",
    )
    tool_timeout_seconds: float = Field(default=60.0, gt=0)
    max_result_chars: int = Field(
        default=20000,
        gt=0,
        description="Tool output longer than this is truncated before it reaches the model",
    )

    tavily_api_key: SecretStr | None = Field(default=None)
    tavily_url: str = Field(default="https://api.tavily.com/search")
    web_search_max_results: int = Field(default=5, ge=1, le=20)
    web_search_depth: str = Field(default="basic", description="'basic' or 'advanced'")
    web_search_cache_ttl_seconds: int = Field(default=3600, gt=0)
