"""
Database models package.

Exports:
  - WorkspaceModel, WorkspaceType: Tenant configuration
  - SessionModel: Visitor/user session
  - ThreadModel: Standalone conversation thread
  - MessageModel: Chat message
  - ThreadSummaryModel, ArchivedMessageModel: Summarization records
  - RateLimitModel: Quota counters

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Database model definitions for domain entities
"""

from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel, WorkspaceType
from workspace_chat.boundary.db.models.session_model import SessionModel
from workspace_chat.boundary.db.models.thread_model import ThreadModel
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.boundary.db.models.summary_model import ArchivedMessageModel, ThreadSummaryModel
from workspace_chat.boundary.db.models.rate_limit_model import RateLimitModel

__all__ = [
    "WorkspaceModel",
    "WorkspaceType",
    "SessionModel",
    "ThreadModel",
    "MessageModel",
    "ThreadSummaryModel",
    "ArchivedMessageModel",
    "RateLimitModel",
]
