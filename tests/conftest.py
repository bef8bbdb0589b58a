"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory async database, seeded workspaces and sessions, and
scripted fakes for the embedding, vector, and chat model boundaries.
Dependencies: pytest, sqlalchemy, langchain_core
System role: Test infrastructure and fixture management
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.messages import AIMessage

from workspace_chat.core.exceptions import LLMError, VectorStoreError
from workspace_chat.models.retrieval import RetrievedChunk


class FakeEmbeddings(Embeddings):
    """Deterministic embeddings; records every embedded query."""

    def __init__(self, fail: bool = False) -> None:
        self.queries: list[str] = []
        self.fail = fail

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return [float(len(text)), 1.0]

    async def aembed_query(self, text: str) -> list[float]:
        if self.fail:
            raise RuntimeError("embedding service down")
        self.queries.append(text)
        return self.embed_query(text)


class FakeRetriever:
    """
    In-memory category retriever.

    Returns the configured chunks for a category regardless of the query
    vector; categories listed in ``failing`` raise VectorStoreError.
    """

    def __init__(
        self,
        chunks: dict[str, list[RetrievedChunk]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.chunks = chunks or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, int]] = []

    async def query(self, category_id: str, vector: list[float], top_k: int) -> list[RetrievedChunk]:
        self.calls.append((category_id, top_k))
        if category_id in self.failing:
            raise VectorStoreError("connection refused", operation="query")
        return list(self.chunks.get(category_id, []))[:top_k]

    async def delete_collection(self, category_id: str) -> None:
        self.chunks.pop(category_id, None)


class ScriptedProvider:
    """
    Chat completion provider that replays scripted responses.

    Each script entry is an AIMessage, an exception to raise, or a callable
    receiving the message list. ``delay`` makes every call slow.
    """

    def __init__(self, script: list[Any], delay: float = 0.0) -> None:
        self.script = list(script)
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def complete(self, messages, tools=None) -> AIMessage:
        self.calls.append({"messages": list(messages), "tools": tools})
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.script:
            raise LLMError("script exhausted")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(messages)
        return step


def make_chunk(
    chunk_id: str,
    score: float,
    document_id: str = "doc-1",
    chunk_index: int = 0,
    text: str | None = None,
    document_name: str = "Handbook.pdf",
    page_number: int = 1,
) -> RetrievedChunk:
    return RetrievedChunk(
        chunk_id=chunk_id,
        document_id=document_id,
        chunk_index=chunk_index,
        document_name=document_name,
        page_number=page_number,
        text=text or f"text of {chunk_id}",
        score=score,
    )


def tool_call_message(name: str, args: dict, call_id: str = "call_1", content: str = "") -> AIMessage:
    return AIMessage(
        content=content,
        tool_calls=[{"name": name, "args": args, "id": call_id, "type": "tool_call"}],
    )


@pytest.fixture
async def test_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine shared by every session of the test (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    import workspace_chat.boundary.db.models  # noqa: F401
    from workspace_chat.boundary.db.base import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine, configured like production."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(session_factory):
    """
    Create async database session for testing.

    Yields:
        AsyncSession: Test database session
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def writer():
    """Fresh single-writer guard bound to the test's event loop."""
    from workspace_chat.boundary.db.connection import DatabaseWriter

    return DatabaseWriter()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_workspace(test_async_db, writer) -> Callable:
    """Factory creating committed workspaces."""
    from workspace_chat.boundary.db.CRUD import workspace_crud
    from workspace_chat.boundary.db.models import WorkspaceType

    async def _make(slug: str = "acme", embed: bool = True, **overrides):
        values = {
            "slug": slug,
            "name": slug.title(),
            "type": WorkspaceType.EMBED if embed else WorkspaceType.STANDALONE,
            "category_ids": ["hr"],
            "enabled_tools": [],
            "daily_limit": 50,
            "session_limit": 20,
        }
        values.update(overrides)
        async with writer.transaction(test_async_db):
            return await workspace_crud.create(test_async_db, **values)

    return _make


@pytest.fixture
def make_session(test_async_db, writer) -> Callable:
    """Factory creating committed sessions."""
    from workspace_chat.boundary.db.CRUD import session_crud

    async def _make(workspace, started_at: datetime | None = None, ttl_hours: int | None = 24, **overrides):
        started = started_at or datetime.now(timezone.utc)
        values = {
            "workspace_id": workspace.id,
            "visitor_hash": "visitor",
            "started_at": started,
            "last_activity": started,
            "expires_at": started + timedelta(hours=ttl_hours) if ttl_hours else None,
        }
        values.update(overrides)
        async with writer.transaction(test_async_db):
            return await session_crud.create(test_async_db, **values)

    return _make
