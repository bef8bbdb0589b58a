"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from workspace_chat.boundary.db.CRUD import session_crud, message_crud

    session = await session_crud.get_by_id(db, session_id)
"""

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.CRUD.message_crud import MessageCRUD, message_crud
from workspace_chat.boundary.db.CRUD.rate_limit_crud import RateLimitCRUD, rate_limit_crud
from workspace_chat.boundary.db.CRUD.session_crud import SessionCRUD, session_crud
from workspace_chat.boundary.db.CRUD.summary_crud import (
    ArchivedMessageCRUD,
    ThreadSummaryCRUD,
    archived_message_crud,
    summary_crud,
)
from workspace_chat.boundary.db.CRUD.thread_crud import ThreadCRUD, thread_crud
from workspace_chat.boundary.db.CRUD.workspace_crud import WorkspaceCRUD, workspace_crud

__all__ = [
    "BaseCRUD",
    "MessageCRUD",
    "message_crud",
    "RateLimitCRUD",
    "rate_limit_crud",
    "SessionCRUD",
    "session_crud",
    "ArchivedMessageCRUD",
    "ThreadSummaryCRUD",
    "archived_message_crud",
    "summary_crud",
    "ThreadCRUD",
    "thread_crud",
    "WorkspaceCRUD",
    "workspace_crud",
]
