"""
Test suite for RateLimiter.

Tests daily and session quotas against the in-memory database with a
controllable clock: N requests pass, request N+1 is rejected with a reset
time strictly in the future, and rejected requests consume nothing.

System role: Verification of embed-mode quota enforcement
"""

from datetime import datetime, timedelta

import pytest

from workspace_chat.boundary.db.CRUD import rate_limit_crud
from workspace_chat.configs.rate_limit import RateLimitSettings
from workspace_chat.core.rate_limit.rate_limiter import (
    DAILY_SCOPE,
    RateLimiter,
    bucket_start,
    hash_visitor,
)


class Clock:
    """Mutable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock(fixed_now: datetime) -> Clock:
    return Clock(fixed_now)


@pytest.fixture
def limiter(writer, clock: Clock) -> RateLimiter:
    return RateLimiter(RateLimitSettings(cleanup_probability=0.0), writer, clock=clock, rng=lambda: 1.0)


class TestHashVisitor:
    """Test suite for hash_visitor."""

    def test_hash_should_be_stable_and_hide_ip(self) -> None:
        digest = hash_visitor("203.0.113.7", "salt")

        assert digest == hash_visitor("203.0.113.7", "salt")
        assert "203.0.113.7" not in digest
        assert len(digest) == 32

    def test_salt_should_change_hash(self) -> None:
        assert hash_visitor("203.0.113.7", "a") != hash_visitor("203.0.113.7", "b")


class TestDailyLimit:
    """Test suite for the rolling 24 hour visitor quota."""

    @pytest.mark.asyncio
    async def test_limit_plus_one_should_be_rejected_with_future_reset(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        """Test daily_limit=5: five requests pass and the sixth is rejected."""
        # Arrange
        workspace = await make_workspace(daily_limit=5, session_limit=100)
        sessions = [await make_session(workspace, started_at=clock()) for _ in range(2)]

        # Act
        decisions = []
        for i in range(6):
            decisions.append(
                await limiter.check_and_increment(test_async_db, workspace, sessions[i % 2], "visitor-1")
            )

        # Assert
        assert [d.allowed for d in decisions] == [True] * 5 + [False]
        assert [d.remaining for d in decisions[:5]] == [4, 3, 2, 1, 0]
        denied = decisions[-1]
        assert denied.reason == "daily"
        assert denied.limit == 5
        assert denied.reset_at > clock()

    @pytest.mark.asyncio
    async def test_rejected_request_should_not_consume_quota(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=1, session_limit=100)
        session = await make_session(workspace, started_at=clock())

        await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")
        await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")

        used, _ = await rate_limit_crud.get_usage(
            test_async_db, workspace.id, "visitor-1", DAILY_SCOPE, clock() - timedelta(hours=24)
        )
        assert used == 1

    @pytest.mark.asyncio
    async def test_visitors_should_have_independent_quotas(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=1, session_limit=100)
        session_a = await make_session(workspace, started_at=clock())
        session_b = await make_session(workspace, started_at=clock())

        first = await limiter.check_and_increment(test_async_db, workspace, session_a, "visitor-a")
        second = await limiter.check_and_increment(test_async_db, workspace, session_b, "visitor-b")

        assert first.allowed and second.allowed

    @pytest.mark.asyncio
    async def test_quota_should_free_up_after_window_slides(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=1, session_limit=100)
        session = await make_session(workspace, started_at=clock(), ttl_hours=None)

        await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")
        denied = await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")
        clock.now = denied.reset_at
        later = await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")

        assert denied.allowed is False
        assert denied.reset_at == bucket_start(session.started_at) + timedelta(hours=24)
        assert later.allowed is True


class TestSessionLimit:
    """Test suite for the per-session quota."""

    @pytest.mark.asyncio
    async def test_session_limit_should_reject_with_session_expiry(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=100, session_limit=2)
        session = await make_session(workspace, started_at=clock(), ttl_hours=24)

        decisions = [
            await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")
            for _ in range(3)
        ]

        assert [d.allowed for d in decisions] == [True, True, False]
        assert decisions[-1].reason == "session"
        assert decisions[-1].reset_at == session.expires_at
        assert decisions[-1].reset_at > clock()

    @pytest.mark.asyncio
    async def test_new_session_should_get_fresh_session_quota(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=100, session_limit=1)
        first_session = await make_session(workspace, started_at=clock())
        await limiter.check_and_increment(test_async_db, workspace, first_session, "visitor-1")

        clock.advance(minutes=5)
        second_session = await make_session(workspace, started_at=clock())
        decision = await limiter.check_and_increment(test_async_db, workspace, second_session, "visitor-1")

        assert decision.allowed is True


class TestAdminHelpers:
    """Test suite for reset and stats."""

    @pytest.mark.asyncio
    async def test_stats_should_count_visitors_and_requests(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace, started_at=clock())
        for visitor in ("a", "a", "b"):
            await limiter.check_and_increment(test_async_db, workspace, session, visitor)

        stats = await limiter.stats(test_async_db, workspace.id)

        assert stats.unique_visitors == 2
        assert stats.total_requests == 3

    @pytest.mark.asyncio
    async def test_reset_visitor_should_restore_quota(
        self, test_async_db, make_workspace, make_session, limiter: RateLimiter, clock: Clock
    ) -> None:
        workspace = await make_workspace(daily_limit=1, session_limit=100)
        session = await make_session(workspace, started_at=clock())
        await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")

        removed = await limiter.reset(test_async_db, workspace.id, "visitor-1")
        decision = await limiter.check_and_increment(test_async_db, workspace, session, "visitor-1")

        assert removed >= 1
        assert decision.allowed is True

    @pytest.mark.asyncio
    async def test_cleanup_should_remove_counters_past_retention(
        self, test_async_db, make_workspace, make_session, writer, clock: Clock
    ) -> None:
        limiter = RateLimiter(
            RateLimitSettings(cleanup_probability=1.0, retention_hours=48),
            writer,
            clock=clock,
            rng=lambda: 0.0,
        )
        workspace = await make_workspace()
        session = await make_session(workspace, started_at=clock())
        await limiter.check_and_increment(test_async_db, workspace, session, "old-visitor")

        clock.advance(hours=72)
        await limiter.check_and_increment(test_async_db, workspace, session, "new-visitor")

        stale, _ = await rate_limit_crud.get_usage(
            test_async_db, workspace.id, "old-visitor", DAILY_SCOPE, clock() - timedelta(days=30)
        )
        assert stale == 0
