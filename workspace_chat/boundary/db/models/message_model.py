"""
Message ORM model.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Append-only chat message persistence
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, UTCDateTime, UUIDMixin, utc_now


class MessageModel(Base, UUIDMixin):
    """
    Chat message. Immutable once persisted.

    ``seq`` is a per-session position assigned under the single writer, so
    ordering never depends on timestamp resolution.

    Attributes:
        session_id: Owning session
        thread_id: Owning thread (standalone mode only)
        seq: Monotonic position within the session
        role: "user" or "assistant"
        content: Message text
        sources: Citations as emitted on the stream (assistant only)
        latency_ms: End-to-end generation time (assistant only)
        tokens_used: Token estimate or model-reported usage
        created_at: Persist time (UTC)
    """

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_session_seq", "session_id", "seq"),)

    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    thread_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    latency_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
