"""
Retrieval settings for the RAG assembler.

Dependencies: pydantic, pydantic_settings
System role: Retrieval tuning (top-K, threshold, expansion, caching)
"""

import hashlib
import json

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from workspace_chat.configs.base import BaseSettings

DEFAULT_ACRONYMS: dict[str, list[str]] = {
    "hr": ["human resources"],
    "pto": ["paid time off"],
    "sop": ["standard operating procedure"],
    "kpi": ["key performance indicator"],
    "faq": ["frequently asked questions"],
    "it": ["information technology"],
}


class RAGSettings(BaseSettings):
    """Retrieval configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RAG_",
        case_sensitive=False,
        extra="ignore",
    )

    top_k: int = Field(default=20, gt=0, description="Chunks fetched per category per query")
    max_context_chunks: int = Field(default=15, gt=0)
    similarity_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    query_expansion_enabled: bool = Field(default=True)
    max_query_expansions: int = Field(
        default=3,
        ge=1,
        description="Maximum query variants, original included",
    )
    acronym_mappings: dict[str, list[str]] = Field(default_factory=lambda: dict(DEFAULT_ACRONYMS))
    cache_enabled: bool = Field(default=True)
    cache_ttl_seconds: int = Field(default=3600, gt=0)
    chunk_preview_length: int = Field(default=200, gt=0)

    @property
    def version(self) -> str:
        """
        Fingerprint of every setting that changes retrieval output.

        Part of the cache key, so editing any of these values makes
        previously cached results unreachable.
        """
        payload = self.model_dump(
            include={
                "top_k",
                "max_context_chunks",
                "similarity_threshold",
                "query_expansion_enabled",
                "max_query_expansions",
                "acronym_mappings",
                "chunk_preview_length",
            }
        )
        raw = json.dumps(payload, sort_keys=True)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]
