"""
Web search tool.

Wraps the Tavily client as a langchain tool. Results are cached and
returned both as JSON content for the model and as web citations.

Dependencies: langchain_core.tools, workspace_chat.boundary
System role: Web search capability for the tool-calling loop
"""

import hashlib
import logging

from langchain_core.tools import BaseTool, tool

from workspace_chat.boundary.cache.query_cache import QueryCache
from workspace_chat.boundary.web.tavily_client import TavilyClient, WebSearchResponse
from workspace_chat.configs.tools import ToolSettings
from workspace_chat.models.source import Source
from workspace_chat.models.tools import ToolArtifact

logger = logging.getLogger(__name__)

CACHE_PREFIX = "tavily:"
WEB_SOURCE_PREVIEW = 200


def web_search_cache_key(query: str, max_results: int, depth: str) -> str:
    raw = f"{query.strip().lower()}|{max_results}|{depth}"
    return CACHE_PREFIX + hashlib.md5(raw.encode("utf-8")).hexdigest()


def web_sources(response: WebSearchResponse) -> list[Source]:
    return [
        Source(
            document_name=f"[WEB] {result.title or result.url}",
            page_number=0,
            chunk_text=result.content[:WEB_SOURCE_PREVIEW],
            score=result.score,
        )
        for result in response.results
    ]


def create_web_search_tool(
    client: TavilyClient,
    cache: QueryCache,
    settings: ToolSettings,
) -> BaseTool:
    """
    Create the web_search tool bound to a client and cache.

    Args:
        client: Tavily API client
        cache: Query cache shared with retrieval
        settings: Tool settings (result count, depth, cache TTL)

    Returns:
        BaseTool: Async tool returning (json content, web_sources artifact)
    """

    @tool("web_search", response_format="content_and_artifact")
    async def web_search(query: str) -> tuple[str, ToolArtifact]:
        """Search the web for current information that the knowledge base does not cover.

        Args:
            query: Search query
        """
        logger.info(f"{__name__}:web_search - START query_len={len(query)}")
        key = web_search_cache_key(query, settings.web_search_max_results, settings.web_search_depth)

        cached = await cache.get(key)
        if cached is not None:
            response = WebSearchResponse.model_validate_json(cached)
            logger.info(f"{__name__}:web_search - Cache hit")
        else:
            response = await client.search(
                query,
                max_results=settings.web_search_max_results,
                search_depth=settings.web_search_depth,
            )
            await cache.set(key, response.model_dump_json(), settings.web_search_cache_ttl_seconds)

        logger.info(f"{__name__}:web_search - END results={len(response.results)}")
        return response.model_dump_json(), ToolArtifact(kind="web_sources", sources=web_sources(response))

    return web_search
