"""
Per-request configuration.

Built once per chat request from application settings and the workspace
row, then passed explicitly to every pipeline component. Components never
read global settings mid-call.

Dependencies: pydantic, workspace_chat.configs
System role: Immutable configuration value threaded through the pipeline
"""

from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from workspace_chat.configs.settings import Settings

if TYPE_CHECKING:
    from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel


class _FrozenConfig(BaseModel):
    model_config = ConfigDict(frozen=True)


class RAGConfig(_FrozenConfig):
    top_k: int = 20
    max_context_chunks: int = 15
    similarity_threshold: float = 0.5
    query_expansion_enabled: bool = True
    max_query_expansions: int = 3
    acronym_mappings: dict[str, list[str]] = {}
    cache_enabled: bool = True
    cache_ttl_seconds: int = 3600
    chunk_preview_length: int = 200
    version: str = "default"


class ToolConfig(_FrozenConfig):
    max_iterations: int = 3
    tool_timeout_seconds: float = 60.0
    max_result_chars: int = 20000
    enabled_tools: tuple[str, ...] = ()
    forward_artifacts: bool = True


class StreamConfig(_FrozenConfig):
    keepalive_interval_seconds: float = 15.0
    chunk_size: int = 20
    chunk_delay_seconds: float = 0.01
    max_stream_duration_seconds: float = 180.0


class HistoryConfig(_FrozenConfig):
    history_limit: int = 20
    summarization_enabled: bool = True
    token_threshold: int = 100000
    keep_recent_messages: int = 10
    summary_max_tokens: int = 2000
    archive_original_messages: bool = True


class RequestConfig(_FrozenConfig):
    """
    Everything a single chat turn needs to know about its configuration.

    Attributes:
        workspace_id: Tenant
        is_embed: Embed (session scope, rate limited) or standalone (threads)
        category_ids: Knowledge base categories to search
        system_prompt: Workspace system prompt, None for the default
        rag: Retrieval tuning
        tools: Tool loop tuning
        stream: SSE tuning
        history: History window and summarization trigger
    """

    workspace_id: UUID
    is_embed: bool
    category_ids: tuple[str, ...] = ()
    system_prompt: str | None = None
    rag: RAGConfig = RAGConfig()
    tools: ToolConfig = ToolConfig()
    stream: StreamConfig = StreamConfig()
    history: HistoryConfig = HistoryConfig()

    @classmethod
    def build(cls, settings: Settings, workspace: "WorkspaceModel") -> "RequestConfig":
        """
        Snapshot settings and workspace configuration for one request.

        Args:
            settings: Application settings
            workspace: Resolved workspace row

        Returns:
            RequestConfig
        """
        is_embed = workspace.is_embed
        rag = settings.rag
        summarization = settings.summarization
        return cls(
            workspace_id=workspace.id,
            is_embed=is_embed,
            category_ids=tuple(workspace.category_ids or ()),
            system_prompt=workspace.system_prompt,
            rag=RAGConfig(
                top_k=rag.top_k,
                max_context_chunks=rag.max_context_chunks,
                similarity_threshold=rag.similarity_threshold,
                query_expansion_enabled=rag.query_expansion_enabled,
                max_query_expansions=rag.max_query_expansions,
                acronym_mappings=rag.acronym_mappings,
                cache_enabled=rag.cache_enabled,
                cache_ttl_seconds=rag.cache_ttl_seconds,
                chunk_preview_length=rag.chunk_preview_length,
                version=rag.version,
            ),
            tools=ToolConfig(
                max_iterations=settings.tools.max_iterations,
                tool_timeout_seconds=settings.tools.tool_timeout_seconds,
                max_result_chars=settings.tools.max_result_chars,
                enabled_tools=tuple(workspace.enabled_tools or ()),
                forward_artifacts=not is_embed,
            ),
            stream=StreamConfig(
                keepalive_interval_seconds=settings.streaming.keepalive_interval_seconds,
                chunk_size=settings.streaming.chunk_size,
                chunk_delay_seconds=settings.streaming.chunk_delay_ms / 1000,
                max_stream_duration_seconds=settings.streaming.max_stream_duration_seconds,
            ),
            history=HistoryConfig(
                history_limit=(
                    summarization.embed_history_limit
                    if is_embed
                    else summarization.standalone_history_limit
                ),
                summarization_enabled=summarization.enabled and not is_embed,
                token_threshold=summarization.token_threshold,
                keep_recent_messages=summarization.keep_recent_messages,
                summary_max_tokens=summarization.summary_max_tokens,
                archive_original_messages=summarization.archive_original_messages,
            ),
        )
