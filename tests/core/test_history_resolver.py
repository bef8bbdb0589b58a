"""
Test suite for HistoryResolver.

Seeds conversations through ConversationAdapter on the in-memory database
and checks windowing, summarization triggering, archival, and the
fallback when the summarizer fails.

System role: Verification of conversation history resolution
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from tests.conftest import ScriptedProvider
from workspace_chat.application.adapters.conversation_adapter import (
    ConversationAdapter,
    ConversationScope,
)
from workspace_chat.boundary.db.CRUD import message_crud, summary_crud, thread_crud
from workspace_chat.core.exceptions import LLMError
from workspace_chat.core.history.history_resolver import HistoryResolver
from workspace_chat.core.history.summarizer import ConversationSummarizer
from workspace_chat.core.request_config import HistoryConfig


def summarizing_config(**overrides) -> HistoryConfig:
    values = {
        "history_limit": 4,
        "summarization_enabled": True,
        "token_threshold": 10,
        "keep_recent_messages": 4,
        "summary_max_tokens": 200,
        "archive_original_messages": True,
    }
    values.update(overrides)
    return HistoryConfig(**values)


@pytest.fixture
def adapter(writer) -> ConversationAdapter:
    return ConversationAdapter(writer)


@pytest.fixture
def make_thread(test_async_db, make_workspace, make_session, adapter: ConversationAdapter):
    """Create a standalone thread holding ``count`` alternating messages."""

    async def _make(count: int):
        workspace = await make_workspace(slug="docs", embed=False)
        session = await make_session(workspace, ttl_hours=None)
        thread = await adapter.create_thread(test_async_db, session.id, "Policies")
        scope = ConversationScope(session_id=session.id, thread_id=thread.id)
        for i in range(count):
            role = "user" if i % 2 == 0 else "assistant"
            await adapter.append_message(test_async_db, scope, role, f"message number {i}")
        return session, thread

    return _make


def resolver_with(script: list) -> tuple[HistoryResolver, ScriptedProvider]:
    from workspace_chat.boundary.db.connection import DatabaseWriter

    provider = ScriptedProvider(script)
    return HistoryResolver(ConversationSummarizer(provider), DatabaseWriter()), provider


class TestEmbedWindow:
    """Test suite for session-scoped (embed) history."""

    @pytest.mark.asyncio
    async def test_window_should_return_last_messages_oldest_first(
        self, test_async_db, make_workspace, make_session, adapter: ConversationAdapter
    ) -> None:
        # Arrange
        workspace = await make_workspace()
        session = await make_session(workspace)
        scope = ConversationScope(session_id=session.id)
        for i in range(8):
            await adapter.append_message(test_async_db, scope, "user" if i % 2 == 0 else "assistant", f"m{i}")
        resolver, provider = resolver_with([])

        # Act
        view = await resolver.resolve(
            test_async_db, session.id, None, HistoryConfig(history_limit=6, summarization_enabled=False)
        )

        # Assert
        assert [m.content for m in view.messages] == ["m2", "m3", "m4", "m5", "m6", "m7"]
        assert view.summary is None
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_exclude_latest_should_drop_current_user_message(
        self, test_async_db, make_workspace, make_session, adapter: ConversationAdapter
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace)
        scope = ConversationScope(session_id=session.id)
        for content in ("first question", "first answer", "second question"):
            role = "assistant" if "answer" in content else "user"
            await adapter.append_message(test_async_db, scope, role, content)
        resolver, _ = resolver_with([])

        view = await resolver.resolve(
            test_async_db, session.id, None, HistoryConfig(history_limit=6), exclude_latest=True
        )

        assert [m.content for m in view.messages] == ["first question", "first answer"]
        converted = view.to_langchain()
        assert isinstance(converted[0], HumanMessage)
        assert isinstance(converted[1], AIMessage)


class TestSummarization:
    """Test suite for threshold-triggered summarization."""

    @pytest.mark.asyncio
    async def test_below_threshold_should_not_summarize(self, test_async_db, make_thread) -> None:
        session, thread = await make_thread(10)
        resolver, provider = resolver_with([AIMessage(content="SUMMARY")])

        view = await resolver.resolve(
            test_async_db, session.id, thread.id, summarizing_config(token_threshold=100000)
        )

        assert provider.calls == []
        assert view.summary is None
        assert view.summarized_now is False
        assert len(view.messages) == 4

    @pytest.mark.asyncio
    async def test_above_threshold_should_summarize_and_archive_exactly(
        self, test_async_db, make_thread
    ) -> None:
        """Test that the summarized prefix moves to the archive verbatim and in order."""
        # Arrange
        session, thread = await make_thread(10)
        before = [m.content for m in await message_crud.get_for_thread(test_async_db, thread.id)]
        resolver, provider = resolver_with([AIMessage(content="SUMMARY")])

        # Act
        view = await resolver.resolve(test_async_db, session.id, thread.id, summarizing_config())

        # Assert
        assert view.summarized_now is True
        assert view.summary == "SUMMARY"
        assert [m.content for m in view.messages] == before[6:]

        archived = await resolver.get_archived_messages(test_async_db, thread.id)
        assert [m.content for m in archived] == before[:6]
        assert [m.role for m in archived] == ["user", "assistant"] * 3

        active = await message_crud.get_for_thread(test_async_db, thread.id)
        assert [m.content for m in active] == before[6:]

        summary = await summary_crud.get_latest(test_async_db, thread.id)
        assert summary.messages_summarized == 6
        assert summary.tokens_after < summary.tokens_before

        refreshed = await thread_crud.get_by_id(test_async_db, thread.id)
        await test_async_db.refresh(refreshed)
        assert refreshed.is_summarized is True
        assert refreshed.total_tokens == summary.tokens_after

        transcript = provider.calls[0]["messages"][1].content
        assert "message number 0" in transcript
        assert "message number 6" not in transcript

    @pytest.mark.asyncio
    async def test_archive_disabled_should_only_delete(self, test_async_db, make_thread) -> None:
        session, thread = await make_thread(10)
        resolver, _ = resolver_with([AIMessage(content="SUMMARY")])

        await resolver.resolve(
            test_async_db, session.id, thread.id, summarizing_config(archive_original_messages=False)
        )

        assert list(await resolver.get_archived_messages(test_async_db, thread.id)) == []
        assert len(await message_crud.get_for_thread(test_async_db, thread.id)) == 4

    @pytest.mark.asyncio
    async def test_too_few_messages_should_skip_summarization(self, test_async_db, make_thread) -> None:
        session, thread = await make_thread(5)
        resolver, provider = resolver_with([AIMessage(content="SUMMARY")])

        view = await resolver.resolve(test_async_db, session.id, thread.id, summarizing_config())

        assert provider.calls == []
        assert view.summarized_now is False
        assert view.summary is None

    @pytest.mark.asyncio
    async def test_summarizer_failure_should_fall_back_to_raw_window(
        self, test_async_db, make_thread
    ) -> None:
        session, thread = await make_thread(10)
        resolver, _ = resolver_with([LLMError("model overloaded")])

        view = await resolver.resolve(test_async_db, session.id, thread.id, summarizing_config())

        assert view.summary is None
        assert view.summarized_now is False
        assert [m.content for m in view.messages] == [f"message number {i}" for i in range(6, 10)]
        assert len(await message_crud.get_for_thread(test_async_db, thread.id)) == 10

    @pytest.mark.asyncio
    async def test_second_summary_should_fold_in_previous(self, test_async_db, make_thread, adapter) -> None:
        session, thread = await make_thread(10)
        resolver, provider = resolver_with([AIMessage(content="FIRST"), AIMessage(content="SECOND")])
        await resolver.resolve(test_async_db, session.id, thread.id, summarizing_config())

        scope = ConversationScope(session_id=session.id, thread_id=thread.id)
        for i in range(10, 14):
            await adapter.append_message(
                test_async_db, scope, "user" if i % 2 == 0 else "assistant", f"message number {i}"
            )
        view = await resolver.resolve(test_async_db, session.id, thread.id, summarizing_config())

        assert view.summary == "SECOND"
        assert "FIRST" in provider.calls[1]["messages"][1].content
        archived = await resolver.get_archived_messages(test_async_db, thread.id)
        assert [m.content for m in archived] == [f"message number {i}" for i in range(10)]
