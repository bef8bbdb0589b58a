"""
Chat completion and embedding providers.

Wraps langchain chat models behind a narrow ``complete`` contract so the
orchestrator and summarizer never depend on a specific vendor.

Dependencies: langchain_core, langchain_google_genai
System role: Language model access
"""

import asyncio
import logging
from typing import Any, Protocol, Sequence

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

from workspace_chat.configs.llm import LLMSettings
from workspace_chat.configs.vector_store import VectorStoreSettings
from workspace_chat.core.exceptions import LLMError

logger = logging.getLogger(__name__)


class ChatCompletionProvider(Protocol):
    """Returns either content or tool calls on an AIMessage."""

    async def complete(
        self,
        messages: Sequence[BaseMessage],
        tools: Sequence[Any] | None = None,
    ) -> AIMessage: ...


class LangChainChatProvider:
    """ChatCompletionProvider over any langchain chat model supporting bind_tools."""

    def __init__(self, model: BaseChatModel) -> None:
        self._model = model

    async def complete(
        self,
        messages: Sequence[BaseMessage],
        tools: Sequence[Any] | None = None,
    ) -> AIMessage:
        """
        Call the model once.

        Args:
            messages: Full conversation including system prompt
            tools: langchain tools or OpenAI-style tool dicts to expose

        Returns:
            AIMessage: Content and/or tool_calls

        Raises:
            LLMError: On any provider failure (cancellation propagates)
        """
        runnable = self._model.bind_tools(list(tools)) if tools else self._model
        try:
            response = await runnable.ainvoke(list(messages))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{__name__}:complete - Model call FAILED: {type(e).__name__}: {e}")
            raise LLMError(f"Language model call failed: {e}") from e
        if not isinstance(response, AIMessage):
            raise LLMError(f"Unexpected model response type: {type(response).__name__}")
        return response


def create_chat_provider(settings: LLMSettings, temperature: float | None = None) -> LangChainChatProvider:
    """
    Build the Gemini-backed provider.

    Args:
        settings: LLM settings
        temperature: Override, used for summarization

    Returns:
        LangChainChatProvider
    """
    model = ChatGoogleGenerativeAI(
        model=settings.model_id,
        temperature=settings.temperature if temperature is None else temperature,
        max_output_tokens=settings.max_output_tokens,
        timeout=settings.request_timeout_seconds,
    )
    return LangChainChatProvider(model)


def create_embeddings(settings: VectorStoreSettings) -> Embeddings:
    """Build the Gemini embedding provider used for queries."""
    return GoogleGenerativeAIEmbeddings(model=settings.embedding_model)
