"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from workspace_chat.configs.base import BaseSettings
from workspace_chat.configs.cache import CacheSettings
from workspace_chat.configs.database import DatabaseSettings
from workspace_chat.configs.llm import LLMSettings
from workspace_chat.configs.rag import RAGSettings
from workspace_chat.configs.rate_limit import RateLimitSettings
from workspace_chat.configs.streaming import StreamingSettings
from workspace_chat.configs.summarization import SummarizationSettings
from workspace_chat.configs.tools import ToolSettings
from workspace_chat.configs.vector_store import VectorStoreSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    database: DatabaseSettings = DatabaseSettings()
    vector_store: VectorStoreSettings = VectorStoreSettings()
    llm: LLMSettings = LLMSettings()
    cache: CacheSettings = CacheSettings()
    rag: RAGSettings = RAGSettings()
    tools: ToolSettings = ToolSettings()
    streaming: StreamingSettings = StreamingSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    summarization: SummarizationSettings = SummarizationSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from workspace_chat.configs import get_settings
        settings = get_settings()
    """
    return Settings()
