"""
Thread summary and archive CRUD operations.

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Summarization persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.boundary.db.models.summary_model import (
    ArchivedMessageModel,
    ThreadSummaryModel,
)


class ThreadSummaryCRUD(BaseCRUD[ThreadSummaryModel]):
    """CRUD operations for ThreadSummaryModel."""

    def __init__(self) -> None:
        super().__init__(ThreadSummaryModel)

    async def get_latest(
        self,
        session: AsyncSession,
        thread_id: UUID,
    ) -> ThreadSummaryModel | None:
        """Most recent summary of a thread, None if never summarized."""
        stmt = (
            select(ThreadSummaryModel)
            .where(ThreadSummaryModel.thread_id == thread_id)
            .order_by(ThreadSummaryModel.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


class ArchivedMessageCRUD(BaseCRUD[ArchivedMessageModel]):
    """CRUD operations for ArchivedMessageModel."""

    def __init__(self) -> None:
        super().__init__(ArchivedMessageModel)

    async def archive(
        self,
        session: AsyncSession,
        messages: Sequence[MessageModel],
        thread_id: UUID,
        summary_id: UUID | None,
    ) -> list[ArchivedMessageModel]:
        """
        Copy messages verbatim into the archive.

        Args:
            session: Async database session
            messages: Active messages being summarized
            thread_id: Owning thread
            summary_id: Summary that replaced them

        Returns:
            Archived rows
        """
        archived = [
            ArchivedMessageModel(
                id=message.id,
                thread_id=thread_id,
                summary_id=summary_id,
                seq=message.seq,
                role=message.role,
                content=message.content,
                sources=list(message.sources or []),
                created_at=message.created_at,
            )
            for message in messages
        ]
        session.add_all(archived)
        await session.flush()
        return archived

    async def get_for_thread(
        self,
        session: AsyncSession,
        thread_id: UUID,
    ) -> Sequence[ArchivedMessageModel]:
        """Archived messages of a thread in original conversation order."""
        stmt = (
            select(ArchivedMessageModel)
            .where(ArchivedMessageModel.thread_id == thread_id)
            .order_by(ArchivedMessageModel.seq)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


summary_crud = ThreadSummaryCRUD()
archived_message_crud = ArchivedMessageCRUD()
