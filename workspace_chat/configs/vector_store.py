"""
Vector store configuration settings.

Manages the category-scoped FAISS indexes and the embedding model used
to vectorize queries.

Dependencies: pydantic, pydantic_settings
System role: Vector database configuration for RAG retrieval
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings


class VectorStoreSettings(BaseSettings):
    """Vector store configuration (one FAISS index directory per category)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VECTOR_STORE_",
        case_sensitive=False,
        extra="ignore",
    )

    persist_directory: str = Field(
        default=".faiss_index",
        description="Root directory holding one FAISS index per category id",
    )
    embedding_model: str = Field(
        default="models/gemini-embedding-001",
        description="Google Gemini embedding model ID",
    )
