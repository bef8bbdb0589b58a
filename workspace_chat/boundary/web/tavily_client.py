"""
Tavily web search client.

Dependencies: httpx, tenacity
System role: Outbound web search for the web_search tool
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)


class WebSearchResult(BaseModel):
    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0.0


class WebSearchResponse(BaseModel):
    query: str
    answer: str | None = None
    results: list[WebSearchResult] = Field(default_factory=list)


class TavilyClient:
    """
    Thin async client for the Tavily search API.

    Transport errors are retried with jittered backoff; HTTP error statuses
    are raised immediately.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        url: str = "https://api.tavily.com/search",
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._url = url

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=0.5, max=4, jitter=0.5),
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:search - Retry {retry_state.attempt_number}/3 after transport error"
        ),
        reraise=True,
    )
    async def search(
        self,
        query: str,
        max_results: int = 5,
        search_depth: str = "basic",
        topic: str = "general",
    ) -> WebSearchResponse:
        """
        Run one search.

        Args:
            query: Search query
            max_results: Result count cap
            search_depth: "basic" or "advanced"
            topic: "general" or "news"

        Returns:
            WebSearchResponse

        Raises:
            httpx.HTTPError: On transport failure after retries or HTTP error status
        """
        payload: dict[str, Any] = {
            "query": query,
            "max_results": max_results,
            "search_depth": search_depth,
            "topic": topic,
            "include_answer": True,
        }
        response = await self._http.post(
            self._url,
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()
        body = response.json()
        return WebSearchResponse(
            query=query,
            answer=body.get("answer"),
            results=[WebSearchResult.model_validate(item) for item in body.get("results", [])],
        )
