"""
Session CRUD operations.

Provides session creation and the per-message activity update.

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Session persistence operations
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.session_model import SessionModel


class SessionCRUD(BaseCRUD[SessionModel]):
    """
    CRUD operations for SessionModel.

    Extends BaseCRUD with the activity bump applied on every persisted
    message.
    """

    def __init__(self) -> None:
        """Initialize SessionCRUD with SessionModel."""
        super().__init__(SessionModel)

    async def record_message(
        self,
        session: AsyncSession,
        id: UUID,
        now: datetime,
    ) -> SessionModel | None:
        """
        Increment message_count and refresh last_activity.

        Args:
            session: Async database session
            id: Session UUID
            now: Activity timestamp

        Returns:
            Updated SessionModel if found, None otherwise
        """
        return await self.update_by_id(
            session,
            id,
            message_count=SessionModel.message_count + 1,
            last_activity=now,
        )


session_crud = SessionCRUD()
