"""
Conversation persistence adapter.

High-level persistence for sessions, threads and messages. Every write
goes through the database writer so message ordering, session counters
and thread token totals change together.

Dependencies: workspace_chat.boundary.db.CRUD, workspace_chat.core.history.token_counter
System role: Conversation persistence business logic adapter
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.connection import DatabaseWriter
from workspace_chat.boundary.db.CRUD.message_crud import message_crud
from workspace_chat.boundary.db.CRUD.session_crud import session_crud
from workspace_chat.boundary.db.CRUD.summary_crud import archived_message_crud
from workspace_chat.boundary.db.CRUD.thread_crud import thread_crud
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.boundary.db.models.session_model import SessionModel
from workspace_chat.boundary.db.models.summary_model import ArchivedMessageModel
from workspace_chat.boundary.db.models.thread_model import ThreadModel
from workspace_chat.core.history.token_counter import count_message_tokens

logger = logging.getLogger(__name__)

THREAD_TITLE_LENGTH = 50


class ConversationScope(BaseModel):
    """Where messages live: a session (embed) or a thread within it (standalone)."""

    session_id: UUID
    thread_id: UUID | None = None

    @property
    def stream_id(self) -> str:
        """Identifier reported to the client as ``threadId``."""
        return str(self.thread_id or self.session_id)


def title_from_message(message: str) -> str:
    text = " ".join(message.split())
    if len(text) <= THREAD_TITLE_LENGTH:
        return text or "New conversation"
    return text[:THREAD_TITLE_LENGTH].rstrip() + "..."


class ConversationAdapter:
    """
    High-level adapter for conversation persistence.

    Provides the append/read operations used by the chat pipeline and the
    conversation HTTP routes.
    """

    def __init__(
        self,
        writer: DatabaseWriter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """
        Initialize adapter.

        Args:
            writer: Single-writer guard
            clock: UTC clock
        """
        self._writer = writer
        self._clock = clock

    async def create_session(
        self,
        db: AsyncSession,
        workspace_id: UUID,
        visitor_hash: str | None = None,
        user_id: str | None = None,
        ttl_hours: int | None = None,
    ) -> SessionModel:
        """
        Create a session on first contact.

        Args:
            db: Async database session
            workspace_id: Owning workspace
            visitor_hash: Anonymized visitor (embed)
            user_id: Authenticated user (standalone)
            ttl_hours: Lifetime, None for no expiry

        Returns:
            SessionModel
        """
        now = self._clock()
        expires_at = now + timedelta(hours=ttl_hours) if ttl_hours else None
        async with self._writer.transaction(db):
            session = await session_crud.create(
                db,
                workspace_id=workspace_id,
                visitor_hash=visitor_hash,
                user_id=user_id,
                started_at=now,
                last_activity=now,
                expires_at=expires_at,
            )
        logger.info(
            f"{__name__}:create_session - Created session {session.id}",
            extra={"workspace_id": str(workspace_id), "expires_at": str(expires_at)},
        )
        return session

    async def create_thread(
        self,
        db: AsyncSession,
        session_id: UUID,
        title: str | None = None,
    ) -> ThreadModel:
        """Create a standalone thread owned by ``session_id``."""
        now = self._clock()
        async with self._writer.transaction(db):
            thread = await thread_crud.create(
                db,
                session_id=session_id,
                title=title_from_message(title or ""),
                last_message_at=now,
            )
        logger.info(f"{__name__}:create_thread - Created thread {thread.id} for session {session_id}")
        return thread

    async def append_message(
        self,
        db: AsyncSession,
        scope: ConversationScope,
        role: str,
        content: str,
        sources: list[dict] | None = None,
        latency_ms: int | None = None,
        tokens_used: int | None = None,
    ) -> MessageModel:
        """
        Append a message and update session/thread counters in one write.

        Args:
            db: Async database session
            scope: Session or thread scope
            role: "user" or "assistant"
            content: Message text
            sources: Citations as emitted on the stream
            latency_ms: Generation time for assistant messages
            tokens_used: Model-reported usage, estimated when None

        Returns:
            MessageModel

        Raises:
            ValueError: If role is not "user" or "assistant"
        """
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid role: {role}. Must be 'user' or 'assistant'")

        estimate = count_message_tokens(content)
        now = self._clock()
        async with self._writer.transaction(db):
            message = await message_crud.append(
                db,
                session_id=scope.session_id,
                thread_id=scope.thread_id,
                role=role,
                content=content,
                sources=sources,
                latency_ms=latency_ms,
                tokens_used=tokens_used if tokens_used is not None else estimate,
            )
            await session_crud.record_message(db, scope.session_id, now)
            if scope.thread_id is not None:
                await thread_crud.add_tokens(db, scope.thread_id, estimate, now)
        return message

    async def get_recent_messages(
        self,
        db: AsyncSession,
        scope: ConversationScope,
        limit: int,
    ) -> list[MessageModel]:
        """Last ``limit`` active messages of the scope, oldest first."""
        return await message_crud.get_recent(
            db,
            limit,
            session_id=scope.session_id,
            thread_id=scope.thread_id,
        )

    async def get_archived_messages(
        self,
        db: AsyncSession,
        thread_id: UUID,
    ) -> Sequence[ArchivedMessageModel]:
        """Messages moved out of active context by summarization, in original order."""
        return await archived_message_crud.get_for_thread(db, thread_id)
