"""
Rate limiter for embed workspaces.

Two independent counters guard each visitor:

- daily: hourly buckets summed over a sliding 24 hour window
- session: one bucket per session, living as long as the session

Both are checked under the database writer and incremented only when both
allow, so a rejected request consumes nothing. Counters are persisted, so
restarts never reset quotas early.

Dependencies: sqlalchemy, workspace_chat.boundary.db
System role: Cost control for anonymous widget traffic
"""

import hashlib
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.connection import DatabaseWriter
from workspace_chat.boundary.db.CRUD.rate_limit_crud import rate_limit_crud
from workspace_chat.boundary.db.models.session_model import SessionModel
from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel
from workspace_chat.configs.rate_limit import RateLimitSettings
from workspace_chat.models.rate_limit import RateLimitDecision, RateLimitStats

logger = logging.getLogger(__name__)

DAILY_SCOPE = "daily"
SESSION_SCOPE = "session"
DAILY_WINDOW = timedelta(hours=24)
BUCKET = timedelta(hours=1)


def hash_visitor(ip_address: str, salt: str) -> str:
    """Anonymize a visitor IP. The raw IP is never stored."""
    digest = hashlib.sha256(f"{salt}:{ip_address}".encode("utf-8")).hexdigest()
    return digest[:32]


def bucket_start(now: datetime) -> datetime:
    return now.replace(minute=0, second=0, microsecond=0)


class RateLimiter:
    """Daily and per-session quota counters for embed visitors."""

    def __init__(
        self,
        settings: RateLimitSettings,
        writer: DatabaseWriter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        rng: Callable[[], float] = random.random,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            settings: Rate limit settings
            writer: Single-writer guard for the relational store
            clock: UTC clock
            rng: Uniform [0, 1) source for probabilistic cleanup
        """
        self._settings = settings
        self._writer = writer
        self._clock = clock
        self._rng = rng

    async def check_and_increment(
        self,
        db: AsyncSession,
        workspace: WorkspaceModel,
        session: SessionModel,
        visitor_hash: str,
    ) -> RateLimitDecision:
        """
        Atomically check both counters and count the request if allowed.

        Args:
            db: Async database session
            workspace: Embed workspace (limits come from here)
            session: Visitor session
            visitor_hash: Anonymized visitor identity

        Returns:
            RateLimitDecision: Denials carry the exhausted counter and its reset time
        """
        now = self._clock()
        daily_since = now - DAILY_WINDOW
        session_since = session.started_at - timedelta(microseconds=1)

        async with self._writer.transaction(db):
            daily_used, oldest_bucket = await rate_limit_crud.get_usage(
                db, workspace.id, visitor_hash, DAILY_SCOPE, daily_since
            )
            daily_reset = (oldest_bucket or bucket_start(now)) + DAILY_WINDOW
            if daily_used >= workspace.daily_limit:
                decision = RateLimitDecision(
                    allowed=False,
                    limit=workspace.daily_limit,
                    remaining=0,
                    reset_at=daily_reset,
                    reason=DAILY_SCOPE,
                )
                self._log_denial(workspace, visitor_hash, decision)
                return decision

            session_used, _ = await rate_limit_crud.get_usage(
                db, workspace.id, str(session.id), SESSION_SCOPE, session_since
            )
            if session_used >= workspace.session_limit:
                decision = RateLimitDecision(
                    allowed=False,
                    limit=workspace.session_limit,
                    remaining=0,
                    reset_at=session.expires_at,
                    reason=SESSION_SCOPE,
                )
                self._log_denial(workspace, visitor_hash, decision)
                return decision

            await rate_limit_crud.increment(db, workspace.id, visitor_hash, DAILY_SCOPE, bucket_start(now))
            await rate_limit_crud.increment(db, workspace.id, str(session.id), SESSION_SCOPE, session.started_at)

            if self._rng() < self._settings.cleanup_probability:
                cutoff = now - timedelta(hours=self._settings.retention_hours)
                removed = await rate_limit_crud.delete_older_than(db, cutoff)
                logger.info(f"{__name__}:check_and_increment - Cleanup removed {removed} stale counters")

        daily_remaining = workspace.daily_limit - daily_used - 1
        session_remaining = workspace.session_limit - session_used - 1
        if daily_remaining <= session_remaining:
            return RateLimitDecision(
                allowed=True,
                limit=workspace.daily_limit,
                remaining=daily_remaining,
                reset_at=daily_reset,
            )
        return RateLimitDecision(
            allowed=True,
            limit=workspace.session_limit,
            remaining=session_remaining,
            reset_at=session.expires_at,
        )

    @staticmethod
    def _log_denial(workspace: WorkspaceModel, visitor_hash: str, decision: RateLimitDecision) -> None:
        logger.info(
            f"{__name__}:check_and_increment - Rate limited ({decision.reason})",
            extra={
                "workspace_id": str(workspace.id),
                "visitor_hash": visitor_hash,
                "limit": decision.limit,
                "reset_at": decision.reset_at.isoformat() if decision.reset_at else None,
            },
        )

    async def reset(
        self,
        db: AsyncSession,
        workspace_id: UUID,
        visitor_hash: str | None = None,
    ) -> int:
        """
        Clear daily counters of a workspace, or of one visitor.

        Returns:
            int: Counter rows removed
        """
        async with self._writer.transaction(db):
            removed = await rate_limit_crud.delete_for_workspace(db, workspace_id, visitor_hash)
        logger.info(
            f"{__name__}:reset - Removed {removed} counters",
            extra={"workspace_id": str(workspace_id), "visitor_hash": visitor_hash},
        )
        return removed

    async def stats(self, db: AsyncSession, workspace_id: UUID) -> RateLimitStats:
        """Unique visitors and requests over the last 24 hours."""
        visitors, total = await rate_limit_crud.get_stats(
            db, workspace_id, DAILY_SCOPE, self._clock() - DAILY_WINDOW
        )
        return RateLimitStats(
            workspace_id=str(workspace_id),
            unique_visitors=visitors,
            total_requests=total,
        )
