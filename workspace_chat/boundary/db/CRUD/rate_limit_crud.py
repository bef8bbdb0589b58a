"""
Rate limit counter CRUD operations.

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Quota counter persistence
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.rate_limit_model import RateLimitModel


class RateLimitCRUD(BaseCRUD[RateLimitModel]):
    """
    CRUD operations for RateLimitModel.

    ``increment`` reads then writes; it must run under the database writer.
    """

    def __init__(self) -> None:
        super().__init__(RateLimitModel)

    async def get_usage(
        self,
        session: AsyncSession,
        workspace_id: UUID,
        visitor_hash: str,
        scope: str,
        since: datetime,
    ) -> tuple[int, datetime | None]:
        """
        Sum request counts in buckets that started after ``since``.

        Args:
            session: Async database session
            workspace_id: Tenant
            visitor_hash: Anonymized visitor
            scope: Counter scope
            since: Exclusive lower bound on window_start

        Returns:
            (total count, oldest counted window_start or None)
        """
        stmt = select(
            func.coalesce(func.sum(RateLimitModel.request_count), 0),
            func.min(RateLimitModel.window_start),
        ).where(
            RateLimitModel.workspace_id == workspace_id,
            RateLimitModel.visitor_hash == visitor_hash,
            RateLimitModel.scope == scope,
            RateLimitModel.window_start > since,
        )
        total, oldest = (await session.execute(stmt)).one()
        return int(total or 0), oldest

    async def increment(
        self,
        session: AsyncSession,
        workspace_id: UUID,
        visitor_hash: str,
        scope: str,
        window_start: datetime,
    ) -> int:
        """
        Add one request to the bucket, creating it when missing.

        Returns:
            The bucket's new count
        """
        stmt = select(RateLimitModel).where(
            RateLimitModel.workspace_id == workspace_id,
            RateLimitModel.visitor_hash == visitor_hash,
            RateLimitModel.scope == scope,
            RateLimitModel.window_start == window_start,
        )
        record = (await session.execute(stmt)).scalar_one_or_none()
        if record is None:
            record = await self.create(
                session,
                workspace_id=workspace_id,
                visitor_hash=visitor_hash,
                scope=scope,
                window_start=window_start,
                request_count=1,
            )
            return record.request_count
        record.request_count += 1
        await session.flush()
        return record.request_count

    async def delete_older_than(self, session: AsyncSession, cutoff: datetime) -> int:
        result = await session.execute(
            delete(RateLimitModel).where(RateLimitModel.window_start < cutoff)
        )
        return result.rowcount

    async def delete_for_workspace(
        self,
        session: AsyncSession,
        workspace_id: UUID,
        visitor_hash: str | None = None,
    ) -> int:
        """Drop counters of a workspace, or of one visitor within it."""
        stmt = delete(RateLimitModel).where(RateLimitModel.workspace_id == workspace_id)
        if visitor_hash is not None:
            stmt = stmt.where(RateLimitModel.visitor_hash == visitor_hash)
        result = await session.execute(stmt)
        return result.rowcount

    async def get_stats(
        self,
        session: AsyncSession,
        workspace_id: UUID,
        scope: str,
        since: datetime,
    ) -> tuple[int, int]:
        """
        Returns:
            (unique visitors, total requests) for the scope since ``since``
        """
        stmt = select(
            func.count(func.distinct(RateLimitModel.visitor_hash)),
            func.coalesce(func.sum(RateLimitModel.request_count), 0),
        ).where(
            RateLimitModel.workspace_id == workspace_id,
            RateLimitModel.scope == scope,
            RateLimitModel.window_start > since,
        )
        visitors, total = (await session.execute(stmt)).one()
        return int(visitors or 0), int(total or 0)


rate_limit_crud = RateLimitCRUD()
