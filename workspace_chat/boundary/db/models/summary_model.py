"""
Thread summary and archived message ORM models.

Summarization is one-directional: summarized messages move from
``messages`` into ``archived_messages`` and stay there verbatim.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Conversation summarization persistence
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, UTCDateTime, UUIDMixin, utc_now


class ThreadSummaryModel(Base, UUIDMixin):
    """
    Generated summary of older thread messages.

    Attributes:
        thread_id: Summarized thread
        summary: Summary text
        messages_summarized: Number of messages folded into this summary
        tokens_before: Thread token estimate before summarization
        tokens_after: Token estimate of summary plus retained tail
        created_at: Creation time (UTC)
    """

    __tablename__ = "thread_summaries"

    thread_id: Mapped[UUID] = mapped_column(
        ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    messages_summarized: Mapped[int] = mapped_column(Integer, nullable=False)
    tokens_before: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tokens_after: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)


class ArchivedMessageModel(Base):
    """
    Verbatim copy of a message removed from active context.

    The primary key is the original message id.
    """

    __tablename__ = "archived_messages"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    thread_id: Mapped[UUID] = mapped_column(
        ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    summary_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("thread_summaries.id", ondelete="SET NULL"),
        nullable=True,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    archived_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
