"""
Workspace ORM model.

A workspace is the tenant boundary: it owns configuration, category scope,
and quotas for either an embeddable widget or a standalone deployment.

Dependencies: sqlalchemy, workspace_chat.boundary.db.base
System role: Tenant configuration persistence
"""

import enum

from sqlalchemy import JSON, Boolean, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workspace_chat.boundary.db.base import Base, TimestampMixin, UUIDMixin


class WorkspaceType(str, enum.Enum):
    EMBED = "embed"
    STANDALONE = "standalone"


class WorkspaceModel(Base, UUIDMixin, TimestampMixin):
    """
    Workspace ORM model.

    Attributes:
        slug: URL-safe unique identifier used in routes
        name: Display name
        type: embed (anonymous visitors, rate limited) or standalone (threads)
        is_enabled: Disabled workspaces reject chat requests
        system_prompt: Optional workspace-specific system prompt
        category_ids: Knowledge base categories searched by RAG
        enabled_tools: Tool names the model may call
        daily_limit: Embed-mode messages per visitor per rolling 24h
        session_limit: Embed-mode messages per session
        session_ttl_hours: Embed session lifetime
    """

    __tablename__ = "workspaces"

    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[WorkspaceType] = mapped_column(
        Enum(WorkspaceType, native_enum=False, length=20),
        nullable=False,
        default=WorkspaceType.EMBED,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    enabled_tools: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    daily_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    session_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    session_ttl_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    @property
    def is_embed(self) -> bool:
        return self.type == WorkspaceType.EMBED
