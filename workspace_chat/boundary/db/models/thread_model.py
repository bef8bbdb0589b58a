"""
Thread ORM model.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Standalone-mode conversation container
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, TimestampMixin, UTCDateTime, UUIDMixin, utc_now


class ThreadModel(Base, UUIDMixin, TimestampMixin):
    """
    Ordered message container owned exclusively by one session.

    Attributes:
        session_id: Owning session
        title: Display title, derived from the first message when not given
        is_archived: Hidden from thread lists
        total_tokens: Estimated tokens of the active (unarchived) history
        is_summarized: At least one summary exists for this thread
        last_message_at: Timestamp of the latest message
    """

    __tablename__ = "threads"

    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="New conversation")
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_summarized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_message_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
