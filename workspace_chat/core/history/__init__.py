"""
Conversation history: token estimation, summarization, and history resolution.
"""

from workspace_chat.core.history.history_resolver import ConversationView, HistoryResolver
from workspace_chat.core.history.summarizer import ConversationSummarizer
from workspace_chat.core.history.token_counter import count_message_tokens, count_tokens

__all__ = [
    "ConversationSummarizer",
    "ConversationView",
    "HistoryResolver",
    "count_message_tokens",
    "count_tokens",
]
