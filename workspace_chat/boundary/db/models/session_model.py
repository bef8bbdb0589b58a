"""
Session ORM model.

Represents a visitor's (embed) or user's (standalone) interaction anchor
within a workspace.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Session persistence for conversation scope and quotas
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, TimestampMixin, UTCDateTime, UUIDMixin, utc_now


class SessionModel(Base, UUIDMixin, TimestampMixin):
    """
    Session ORM model.

    Sessions are mutated on each message and expire by policy; they are
    never hard-deleted mid-conversation.

    Attributes:
        workspace_id: Owning workspace
        visitor_hash: Anonymized visitor identity (embed mode)
        user_id: Authenticated user identity (standalone mode)
        message_count: Messages persisted in this session, both roles
        started_at: First contact
        last_activity: Last persisted message
        expires_at: Optional expiry, None means no expiry
    """

    __tablename__ = "chat_sessions"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    visitor_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    last_activity: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
