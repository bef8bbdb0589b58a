"""
Session service orchestrator.

Coordinates workspace resolution, session and thread lifecycle, and the
conversation read endpoints. Also hosts the validation shared with the
chat stream entrypoint.

Dependencies: workspace_chat.application.adapters, workspace_chat.boundary.db.CRUD
System role: Session and thread use case orchestration
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.application.adapters.conversation_adapter import (
    ConversationAdapter,
    ConversationScope,
)
from workspace_chat.boundary.db.CRUD.session_crud import session_crud
from workspace_chat.boundary.db.CRUD.thread_crud import thread_crud
from workspace_chat.boundary.db.CRUD.workspace_crud import workspace_crud
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.boundary.db.models.session_model import SessionModel
from workspace_chat.boundary.db.models.summary_model import ArchivedMessageModel
from workspace_chat.boundary.db.models.thread_model import ThreadModel
from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel
from workspace_chat.core.exceptions import (
    SessionExpiredError,
    SessionNotFoundError,
    ThreadNotFoundError,
    ValidationError,
    WorkspaceDisabledError,
    WorkspaceNotFoundError,
)
from workspace_chat.core.rate_limit.rate_limiter import hash_visitor

logger = logging.getLogger(__name__)

MAX_THREAD_MESSAGES = 200


def parse_uuid(value: str | None, field: str) -> UUID:
    """
    Parse a client-supplied identifier.

    Raises:
        ValidationError: If the value is missing or not a UUID
    """
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    try:
        return UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"{field} must be a valid UUID", field=field) from e


class SessionService:
    """Session service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        conversations: ConversationAdapter,
        visitor_hash_salt: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """
        Initialize session service with async database session.

        Args:
            db: Async SQLAlchemy session
            conversations: Conversation persistence adapter
            visitor_hash_salt: Salt for anonymizing visitor IPs
            clock: UTC clock
        """
        self.db = db
        self.conversations = conversations
        self.visitor_hash_salt = visitor_hash_salt
        self.clock = clock

    async def resolve_workspace(self, slug: str) -> WorkspaceModel:
        """
        Look up an enabled workspace by slug.

        Raises:
            WorkspaceNotFoundError: If no workspace has this slug
            WorkspaceDisabledError: If the workspace is switched off
        """
        workspace = await workspace_crud.get_by_slug(self.db, slug)
        if workspace is None:
            raise WorkspaceNotFoundError(slug)
        if not workspace.is_enabled:
            raise WorkspaceDisabledError(slug)
        return workspace

    async def resolve_session(self, workspace: WorkspaceModel, session_id: str | None) -> SessionModel:
        """
        Validate that a session exists, belongs to the workspace and is live.

        Args:
            workspace: Resolved workspace
            session_id: Raw identifier from the request

        Returns:
            SessionModel

        Raises:
            ValidationError: If the id is missing or malformed
            SessionNotFoundError: If unknown or owned by another workspace
            SessionExpiredError: If past its expiry
        """
        parsed = parse_uuid(session_id, "sessionId")
        session = await session_crud.get_by_id(self.db, parsed)
        if session is None or session.workspace_id != workspace.id:
            raise SessionNotFoundError(str(parsed))
        if session.is_expired(self.clock()):
            raise SessionExpiredError(str(parsed))
        return session

    async def resolve_thread(self, session: SessionModel, thread_id: str | None) -> ThreadModel:
        """
        Validate thread ownership.

        Raises:
            ValidationError: If the id is malformed
            ThreadNotFoundError: If unknown or owned by another session
        """
        parsed = parse_uuid(thread_id, "threadId")
        thread = await thread_crud.get_for_session(self.db, parsed, session.id)
        if thread is None:
            raise ThreadNotFoundError(str(parsed))
        return thread

    async def create_session(
        self,
        slug: str,
        client_ip: str | None,
        user_id: str | None = None,
    ) -> SessionModel:
        """
        Start a session in a workspace.

        Embed sessions are tied to an anonymized visitor and expire after
        the workspace TTL; standalone sessions never expire.

        Args:
            slug: Workspace slug
            client_ip: Caller address, hashed before storage
            user_id: Authenticated user (standalone)

        Returns:
            SessionModel
        """
        workspace = await self.resolve_workspace(slug)
        visitor_hash = hash_visitor(client_ip or "unknown", self.visitor_hash_salt)
        return await self.conversations.create_session(
            self.db,
            workspace.id,
            visitor_hash=visitor_hash,
            user_id=user_id,
            ttl_hours=workspace.session_ttl_hours if workspace.is_embed else None,
        )

    async def create_thread(self, slug: str, session_id: str, title: str | None = None) -> ThreadModel:
        """
        Create a thread in a standalone workspace.

        Raises:
            ValidationError: If the workspace is an embed workspace
        """
        workspace = await self.resolve_workspace(slug)
        if workspace.is_embed:
            raise ValidationError("Threads are only available in standalone workspaces", field="slug")
        session = await self.resolve_session(workspace, session_id)
        return await self.conversations.create_thread(self.db, session.id, title)

    async def get_thread_messages(
        self,
        slug: str,
        session_id: str,
        thread_id: str,
        limit: int = MAX_THREAD_MESSAGES,
    ) -> list[MessageModel]:
        """Active (unarchived) messages of a thread, oldest first."""
        thread = await self._owned_thread(slug, session_id, thread_id)
        return await self.conversations.get_recent_messages(
            self.db,
            ConversationScope(session_id=thread.session_id, thread_id=thread.id),
            limit,
        )

    async def get_archived_messages(
        self,
        slug: str,
        session_id: str,
        thread_id: str,
    ) -> Sequence[ArchivedMessageModel]:
        """Messages that summarization moved out of active context."""
        thread = await self._owned_thread(slug, session_id, thread_id)
        return await self.conversations.get_archived_messages(self.db, thread.id)

    async def _owned_thread(self, slug: str, session_id: str, thread_id: str) -> ThreadModel:
        workspace = await self.resolve_workspace(slug)
        session = await self.resolve_session(workspace, session_id)
        return await self.resolve_thread(session, thread_id)
