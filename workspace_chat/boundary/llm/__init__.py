"""
Language model and embedding providers.
"""

from workspace_chat.boundary.llm.providers import (
    ChatCompletionProvider,
    LangChainChatProvider,
    create_chat_provider,
    create_embeddings,
)

__all__ = [
    "ChatCompletionProvider",
    "LangChainChatProvider",
    "create_chat_provider",
    "create_embeddings",
]
