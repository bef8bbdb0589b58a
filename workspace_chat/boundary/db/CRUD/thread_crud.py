"""
Thread CRUD operations.

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Thread persistence and token accounting
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.thread_model import ThreadModel


class ThreadCRUD(BaseCRUD[ThreadModel]):
    """CRUD operations for ThreadModel."""

    def __init__(self) -> None:
        super().__init__(ThreadModel)

    async def get_for_session(
        self,
        session: AsyncSession,
        thread_id: UUID,
        session_id: UUID,
    ) -> ThreadModel | None:
        """
        Retrieve a thread only if the given session owns it.

        Args:
            session: Async database session
            thread_id: Thread UUID
            session_id: Expected owning session

        Returns:
            ThreadModel if found and owned, None otherwise
        """
        thread = await self.get_by_id(session, thread_id)
        if thread is None or thread.session_id != session_id:
            return None
        return thread

    async def add_tokens(
        self,
        session: AsyncSession,
        id: UUID,
        tokens: int,
        now: datetime,
    ) -> ThreadModel | None:
        """
        Add to the thread's running token estimate and touch it.

        Args:
            session: Async database session
            id: Thread UUID
            tokens: Tokens contributed by the new message
            now: Message timestamp

        Returns:
            Updated ThreadModel if found, None otherwise
        """
        return await self.update_by_id(
            session,
            id,
            total_tokens=ThreadModel.total_tokens + tokens,
            last_message_at=now,
        )

    async def mark_summarized(
        self,
        session: AsyncSession,
        id: UUID,
        total_tokens: int,
    ) -> ThreadModel | None:
        """Reset the token estimate to what remains active after summarization."""
        return await self.update_by_id(
            session,
            id,
            is_summarized=True,
            total_tokens=total_tokens,
        )


thread_crud = ThreadCRUD()
