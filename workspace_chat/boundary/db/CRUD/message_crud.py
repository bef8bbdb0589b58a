"""
Message CRUD operations.

Append-only message persistence. Scope is a session (embed mode) or a
thread (standalone mode).

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Chat message persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.message_model import MessageModel


class MessageCRUD(BaseCRUD[MessageModel]):
    """
    CRUD operations for MessageModel.

    ``append`` assigns the next per-session ``seq``; it must run under the
    database writer so two appends never read the same maximum.
    """

    def __init__(self) -> None:
        super().__init__(MessageModel)

    async def append(
        self,
        session: AsyncSession,
        session_id: UUID,
        role: str,
        content: str,
        thread_id: UUID | None = None,
        sources: list[dict] | None = None,
        latency_ms: int | None = None,
        tokens_used: int = 0,
    ) -> MessageModel:
        """
        Append a message to a session (and optionally a thread).

        Args:
            session: Async database session
            session_id: Owning session
            role: "user" or "assistant"
            content: Message text
            thread_id: Owning thread in standalone mode
            sources: Citation dicts as emitted on the stream
            latency_ms: Generation latency for assistant messages
            tokens_used: Token usage for the message

        Returns:
            Created MessageModel
        """
        stmt = select(func.max(MessageModel.seq)).where(MessageModel.session_id == session_id)
        current = (await session.execute(stmt)).scalar_one_or_none()
        return await self.create(
            session,
            session_id=session_id,
            thread_id=thread_id,
            seq=(current or 0) + 1,
            role=role,
            content=content,
            sources=sources or [],
            latency_ms=latency_ms,
            tokens_used=tokens_used,
        )

    async def get_recent(
        self,
        session: AsyncSession,
        limit: int,
        session_id: UUID | None = None,
        thread_id: UUID | None = None,
    ) -> list[MessageModel]:
        """
        Retrieve the last ``limit`` messages of a scope in chronological order.

        Args:
            session: Async database session
            limit: Maximum number of messages
            session_id: Session scope (embed mode)
            thread_id: Thread scope (standalone mode), takes precedence

        Returns:
            Messages oldest first
        """
        stmt = select(MessageModel)
        if thread_id is not None:
            stmt = stmt.where(MessageModel.thread_id == thread_id)
        elif session_id is not None:
            stmt = stmt.where(MessageModel.session_id == session_id)
        else:
            raise ValueError("get_recent requires session_id or thread_id")
        stmt = stmt.order_by(MessageModel.seq.desc()).limit(limit)
        result = await session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def get_for_thread(
        self,
        session: AsyncSession,
        thread_id: UUID,
    ) -> Sequence[MessageModel]:
        """Retrieve every active message of a thread, oldest first."""
        stmt = (
            select(MessageModel)
            .where(MessageModel.thread_id == thread_id)
            .order_by(MessageModel.seq)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_many(self, session: AsyncSession, ids: list[UUID]) -> int:
        """
        Delete messages by id. Only used when moving messages to the archive.

        Returns:
            Number of deleted rows
        """
        if not ids:
            return 0
        result = await session.execute(delete(MessageModel).where(MessageModel.id.in_(ids)))
        return result.rowcount


message_crud = MessageCRUD()
