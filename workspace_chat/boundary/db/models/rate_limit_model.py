"""
Rate limit counter ORM model.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Persistent quota counters (survive restarts)
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, UTCDateTime, UUIDMixin


class RateLimitModel(Base, UUIDMixin):
    """
    One counter row per (workspace, visitor, scope, window start).

    Attributes:
        workspace_id: Tenant
        visitor_hash: Anonymized visitor identity
        scope: "daily" (hourly buckets) or "session" (one bucket per session)
        window_start: Bucket start (UTC)
        request_count: Requests counted in this bucket
    """

    __tablename__ = "rate_limits"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id",
            "visitor_hash",
            "scope",
            "window_start",
            name="uq_rate_limits_window",
        ),
    )

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    visitor_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    window_start: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
