"""
Dependency injection container.

Process-wide components are built lazily by ``ServiceCache`` and shared
across requests; request-scoped services are assembled per request from
them and the request's database session.

Dependencies: workspace_chat.configs, workspace_chat.application, workspace_chat.boundary
System role: DI container for service injection
"""

import logging
from functools import lru_cache

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.application.adapters.conversation_adapter import ConversationAdapter
from workspace_chat.application.services import ChatStreamService, SessionService
from workspace_chat.boundary.db import database_writer, get_async_db, get_async_session_factory
from workspace_chat.configs import Settings, get_settings

logger = logging.getLogger(__name__)


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self.clear()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def query_cache(self):
        """Get cached query cache (Redis or in-memory)."""
        if self._query_cache is None:
            from workspace_chat.boundary.cache import create_query_cache
            self._query_cache = create_query_cache(self.settings.cache)
        return self._query_cache

    @property
    def embeddings(self):
        if self._embeddings is None:
            from workspace_chat.boundary.llm import create_embeddings
            self._embeddings = create_embeddings(self.settings.vector_store)
        return self._embeddings

    @property
    def retriever(self):
        """Get cached per-category FAISS retriever."""
        if self._retriever is None:
            from workspace_chat.boundary.vdb import FAISSCategoryRetriever
            self._retriever = FAISSCategoryRetriever(
                persist_directory=self.settings.vector_store.persist_directory,
                embeddings=self.embeddings,
            )
        return self._retriever

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.tools.tool_timeout_seconds)
        return self._http_client

    @property
    def tool_registry(self):
        """Get cached tool registry. web_search is registered only with an API key."""
        if self._tool_registry is None:
            from workspace_chat.boundary.web.tavily_client import TavilyClient
            from workspace_chat.core.agentic_system.tools import (
                ToolRegistry,
                create_chart_tool,
                create_web_search_tool,
            )

            tool_settings = self.settings.tools
            registry = ToolRegistry([create_chart_tool()])
            if tool_settings.tavily_api_key is not None:
                client = TavilyClient(
                    api_key=tool_settings.tavily_api_key.get_secret_value(),
                    http_client=self.http_client,
                    url=tool_settings.tavily_url,
                )
                registry.register(create_web_search_tool(client, self.query_cache, tool_settings))
            else:
                logger.info(f"{__name__}:tool_registry - No Tavily API key, web_search disabled")
            self._tool_registry = registry
        return self._tool_registry

    @property
    def assembler(self):
        """Get cached RAG assembler."""
        if self._assembler is None:
            from workspace_chat.core.rag import RAGAssembler
            self._assembler = RAGAssembler(self.retriever, self.embeddings, self.query_cache)
        return self._assembler

    @property
    def orchestrator(self):
        if self._orchestrator is None:
            from workspace_chat.boundary.llm import create_chat_provider
            from workspace_chat.core.agentic_system.tool_orchestrator import ToolOrchestrator
            self._orchestrator = ToolOrchestrator(create_chat_provider(self.settings.llm))
        return self._orchestrator

    @property
    def history_resolver(self):
        """Get cached history resolver with its own low-temperature summary model."""
        if self._history_resolver is None:
            from workspace_chat.boundary.llm import create_chat_provider
            from workspace_chat.core.history import ConversationSummarizer, HistoryResolver
            provider = create_chat_provider(
                self.settings.llm,
                temperature=self.settings.llm.summary_temperature,
            )
            self._history_resolver = HistoryResolver(ConversationSummarizer(provider), database_writer)
        return self._history_resolver

    @property
    def rate_limiter(self):
        if self._rate_limiter is None:
            from workspace_chat.core.rate_limit import RateLimiter
            self._rate_limiter = RateLimiter(self.settings.rate_limit, database_writer)
        return self._rate_limiter

    @property
    def conversations(self) -> ConversationAdapter:
        if self._conversations is None:
            self._conversations = ConversationAdapter(database_writer)
        return self._conversations

    async def aclose(self) -> None:
        """Release network resources and clear all cached instances."""
        if self._query_cache is not None:
            await self._query_cache.close()
        if self._http_client is not None:
            await self._http_client.aclose()
        self.clear()

    def clear(self) -> None:
        """Clear all cached instances."""
        self._query_cache = None
        self._embeddings = None
        self._retriever = None
        self._http_client = None
        self._tool_registry = None
        self._assembler = None
        self._orchestrator = None
        self._history_resolver = None
        self._rate_limiter = None
        self._conversations = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_session_service(
    db: AsyncSession = Depends(get_async_db),
    services: ServiceCache = Depends(get_service_cache),
) -> SessionService:
    """
    Get session service instance.

    Args:
        db: Async database session (injected via Depends)
        services: Shared component cache

    Returns:
        SessionService: Service bound to the request session
    """
    return SessionService(db, services.conversations, services.settings.rate_limit.visitor_hash_salt)


def get_chat_stream_service(
    db: AsyncSession = Depends(get_async_db),
    services: ServiceCache = Depends(get_service_cache),
) -> ChatStreamService:
    """
    Get chat stream service instance.

    Args:
        db: Async database session used for pre-stream validation
        services: Shared component cache

    Returns:
        ChatStreamService
    """
    return ChatStreamService(
        db=db,
        settings=services.settings,
        session_factory=get_async_session_factory(),
        assembler=services.assembler,
        orchestrator=services.orchestrator,
        history=services.history_resolver,
        rate_limiter=services.rate_limiter,
        tools=services.tool_registry,
        conversations=services.conversations,
    )
