"""
Chat API request/response schemas.

Dependencies: pydantic
System role: Chat and conversation HTTP contracts
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workspace_chat.models.source import Source


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ChatStreamRequest(_CamelModel):
    """
    Body of ``POST /api/w/{slug}/chat/stream``.

    Fields are loosely typed here so missing or malformed values reach the
    service and come back as VALIDATION_ERROR in the stream error shape.
    """

    message: str | None = None
    session_id: str | None = None
    thread_id: str | None = None


class CreateSessionRequest(_CamelModel):
    user_id: str | None = None


class SessionResponse(_CamelModel):
    id: UUID
    workspace_id: UUID
    started_at: datetime
    expires_at: datetime | None = None
    message_count: int = 0


class CreateThreadRequest(_CamelModel):
    session_id: str
    title: str | None = Field(default=None, max_length=200)


class ThreadResponse(_CamelModel):
    id: UUID
    session_id: UUID
    title: str
    is_archived: bool = False
    is_summarized: bool = False
    total_tokens: int = 0


class MessageResponse(_CamelModel):
    id: UUID
    role: str
    content: str
    sources: list[Source] = Field(default_factory=list)
    created_at: datetime


class ArchivedMessageResponse(MessageResponse):
    summary_id: UUID | None = None
    archived_at: datetime


class CacheInvalidateRequest(_CamelModel):
    prefix: str = "rag:"


class CacheInvalidateResponse(_CamelModel):
    prefix: str
    deleted: int
