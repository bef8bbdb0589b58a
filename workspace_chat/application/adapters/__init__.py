"""
Application adapters over boundary CRUD.
"""

from workspace_chat.application.adapters.conversation_adapter import (
    ConversationAdapter,
    ConversationScope,
)

__all__ = ["ConversationAdapter", "ConversationScope"]
