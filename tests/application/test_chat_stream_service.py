"""
Test suite for ChatStreamService.

Runs whole chat turns against the in-memory database with scripted model,
embedding and vector boundaries: pre-stream validation, embed quotas,
the full event sequence, tool failure handling, standalone thread
creation, and client disconnects.

System role: End-to-end verification of the chat turn pipeline
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from langchain_core.messages import AIMessage
from langchain_core.tools import tool

from tests.conftest import FakeEmbeddings, FakeRetriever, ScriptedProvider, make_chunk, tool_call_message
from workspace_chat.application.adapters.conversation_adapter import ConversationAdapter
from workspace_chat.application.services.chat_stream_service import (
    ChatStreamService,
    RateLimitedError,
    _pending_writes,
)
from workspace_chat.boundary.cache.query_cache import InMemoryQueryCache
from workspace_chat.boundary.db.CRUD import message_crud, thread_crud
from workspace_chat.configs.rate_limit import RateLimitSettings
from workspace_chat.configs.settings import Settings
from workspace_chat.configs.streaming import StreamingSettings
from workspace_chat.configs.tools import ToolSettings
from workspace_chat.core.agentic_system.tool_orchestrator import ToolOrchestrator
from workspace_chat.core.agentic_system.tools.registry import ToolRegistry
from workspace_chat.core.exceptions import (
    LLMError,
    SessionExpiredError,
    SessionNotFoundError,
    ValidationError,
    WorkspaceDisabledError,
    WorkspaceNotFoundError,
)
from workspace_chat.core.history.history_resolver import HistoryResolver
from workspace_chat.core.history.summarizer import ConversationSummarizer
from workspace_chat.core.rag.rag_assembler import RAGAssembler
from workspace_chat.core.rate_limit.rate_limiter import RateLimiter
from workspace_chat.models.chat import ChatStreamRequest

LEAVE_CHUNK = make_chunk(
    "leave-1",
    0.92,
    document_id="leave-policy",
    text="Employees receive 25 days of paid annual leave per calendar year.",
    document_name="Leave Policy.pdf",
    page_number=3,
)


@tool("web_search")
async def slow_web_search(query: str) -> str:
    """Search the web."""
    await asyncio.sleep(5)
    return "never"


class SlowAnswerAdapter(ConversationAdapter):
    """Conversation adapter whose assistant writes take a while to land."""

    def __init__(self, writer, delay: float) -> None:
        super().__init__(writer)
        self.delay = delay
        self.answer_writes = 0

    async def append_message(self, db, scope, role, content, **kwargs):
        if role == "assistant":
            self.answer_writes += 1
            await asyncio.sleep(self.delay)
        return await super().append_message(db, scope, role, content, **kwargs)


def parse_events(frames: list[str]) -> list[dict]:
    return [json.loads(f[len("data: "):-2]) for f in frames if f.startswith("data: ")]


def event_types(events: list[dict]) -> list[str]:
    labels = []
    for event in events:
        if event["type"] == "status" and event.get("level", "info") == "info":
            labels.append(f"status:{event['phase']}")
        else:
            labels.append(event["type"])
    return labels


@pytest.fixture
def settings() -> Settings:
    return Settings(
        streaming=StreamingSettings(chunk_delay_ms=0, chunk_size=20, keepalive_interval_seconds=5.0),
        tools=ToolSettings(tool_timeout_seconds=0.05),
        rate_limit=RateLimitSettings(cleanup_probability=0.0),
    )


@pytest.fixture
def build_service(test_async_db, session_factory, writer, settings):
    """Factory wiring a ChatStreamService around a scripted chat model."""

    def _build(
        script: list,
        tools: list | None = None,
        retriever: FakeRetriever | None = None,
        conversations: ConversationAdapter | None = None,
    ):
        provider = ScriptedProvider(script)
        service = ChatStreamService(
            db=test_async_db,
            settings=settings,
            session_factory=session_factory,
            assembler=RAGAssembler(
                retriever or FakeRetriever({"hr": [LEAVE_CHUNK]}),
                FakeEmbeddings(),
                InMemoryQueryCache(),
            ),
            orchestrator=ToolOrchestrator(provider),
            history=HistoryResolver(ConversationSummarizer(ScriptedProvider([])), writer),
            rate_limiter=RateLimiter(settings.rate_limit, writer, rng=lambda: 1.0),
            tools=ToolRegistry(tools or []),
            conversations=conversations or ConversationAdapter(writer),
        )
        return service, provider

    return _build


async def run_turn(service: ChatStreamService, slug: str, request: ChatStreamRequest) -> list[dict]:
    prepared = await service.prepare(slug, request, "203.0.113.7")
    stream = service.open_stream(prepared)

    async def pipeline(s):
        await service.run(prepared, s)

    return parse_events([frame async for frame in stream.frames(pipeline)])


class TestPrepareValidation:
    """Test suite for pre-stream validation."""

    @pytest.mark.asyncio
    async def test_missing_message_should_raise_validation_error(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace)
        service, _ = build_service([])

        with pytest.raises(ValidationError) as exc_info:
            await service.prepare("acme", ChatStreamRequest(message="   ", session_id=str(session.id)), None)

        assert exc_info.value.details["field"] == "message"

    @pytest.mark.asyncio
    async def test_missing_session_id_should_raise_validation_error(self, build_service, make_workspace) -> None:
        await make_workspace()
        service, _ = build_service([])

        with pytest.raises(ValidationError):
            await service.prepare("acme", ChatStreamRequest(message="hi"), None)

    @pytest.mark.asyncio
    async def test_malformed_session_id_should_raise_validation_error(
        self, build_service, make_workspace
    ) -> None:
        await make_workspace()
        service, _ = build_service([])

        with pytest.raises(ValidationError):
            await service.prepare("acme", ChatStreamRequest(message="hi", session_id="not-a-uuid"), None)

    @pytest.mark.asyncio
    async def test_unknown_workspace_should_raise_not_found(self, build_service) -> None:
        service, _ = build_service([])

        with pytest.raises(WorkspaceNotFoundError):
            await service.prepare("ghost", ChatStreamRequest(message="hi", session_id=str(uuid4())), None)

    @pytest.mark.asyncio
    async def test_disabled_workspace_should_raise_disabled(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace(is_enabled=False)
        session = await make_session(workspace)
        service, _ = build_service([])

        with pytest.raises(WorkspaceDisabledError):
            await service.prepare("acme", ChatStreamRequest(message="hi", session_id=str(session.id)), None)

    @pytest.mark.asyncio
    async def test_session_of_other_workspace_should_be_invalid(
        self, build_service, make_workspace, make_session
    ) -> None:
        await make_workspace(slug="acme")
        other = await make_workspace(slug="globex")
        foreign_session = await make_session(other)
        service, _ = build_service([])

        with pytest.raises(SessionNotFoundError):
            await service.prepare(
                "acme", ChatStreamRequest(message="hi", session_id=str(foreign_session.id)), None
            )

    @pytest.mark.asyncio
    async def test_expired_session_should_raise_session_expired(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(
            workspace, started_at=datetime.now(timezone.utc) - timedelta(hours=48), ttl_hours=24
        )
        service, _ = build_service([])

        with pytest.raises(SessionExpiredError):
            await service.prepare("acme", ChatStreamRequest(message="hi", session_id=str(session.id)), None)


class TestEmbedRateLimit:
    """Test suite for quota enforcement in prepare."""

    @pytest.mark.asyncio
    async def test_sixth_request_should_be_rate_limited(
        self, build_service, make_workspace, make_session
    ) -> None:
        """Test daily_limit=5: five turns are accepted, the sixth is rejected before streaming."""
        # Arrange
        workspace = await make_workspace(daily_limit=5, session_limit=100)
        session = await make_session(workspace)
        service, _ = build_service([])
        request = ChatStreamRequest(message="hi", session_id=str(session.id))

        # Act
        accepted = [await service.prepare("acme", request, "203.0.113.7") for _ in range(5)]
        with pytest.raises(RateLimitedError) as exc_info:
            await service.prepare("acme", request, "203.0.113.7")

        # Assert
        assert [p.rate_limit.remaining for p in accepted] == [4, 3, 2, 1, 0]
        decision = exc_info.value.decision
        assert decision.allowed is False
        assert decision.reset_at > datetime.now(timezone.utc)
        headers = decision.headers()
        assert headers["X-RateLimit-Limit"] == "5"
        assert headers["X-RateLimit-Remaining"] == "0"
        assert int(headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_standalone_workspace_should_not_be_rate_limited(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace(slug="docs", embed=False, daily_limit=0, session_limit=0)
        session = await make_session(workspace, ttl_hours=None)
        service, _ = build_service([])

        prepared = await service.prepare("docs", ChatStreamRequest(message="hi", session_id=str(session.id)), None)

        assert prepared.rate_limit is None


class TestChatTurn:
    """Test suite for complete streamed turns."""

    @pytest.mark.asyncio
    async def test_leave_policy_question_should_stream_full_sequence(
        self, build_service, make_workspace, make_session, test_async_db
    ) -> None:
        """Test an embed turn: status, sources, chunks, done, and both messages persisted."""
        # Arrange
        workspace = await make_workspace(category_ids=["hr"])
        session = await make_session(workspace)
        answer = "You receive 25 days of paid annual leave each year [Leave Policy.pdf, p.3]."
        service, provider = build_service([AIMessage(content=answer)])

        # Act
        events = await run_turn(
            service, "acme", ChatStreamRequest(message="What is the leave policy?", session_id=str(session.id))
        )

        # Assert
        types = event_types(events)
        assert types[:4] == ["status:init", "status:rag", "sources", "status:generating"]
        assert types[-1] == "done"
        assert set(types[4:-1]) == {"chunk"}
        assert "".join(e["content"] for e in events if e["type"] == "chunk") == answer

        sources = events[2]["data"]
        assert sources[0]["documentName"] == "Leave Policy.pdf"
        assert sources[0]["pageNumber"] == 3

        done = events[-1]
        assert done["threadId"] == str(session.id)

        stored = await message_crud.get_recent(test_async_db, 10, session_id=session.id)
        assert [m.role for m in stored] == ["user", "assistant"]
        assert stored[0].content == "What is the leave policy?"
        assert stored[1].content == answer
        assert str(stored[1].id) == done["messageId"]
        assert stored[1].sources[0]["documentName"] == "Leave Policy.pdf"

        prompt = provider.calls[0]["messages"]
        assert "25 days of paid annual leave" in prompt[-1].content

    @pytest.mark.asyncio
    async def test_second_turn_should_see_previous_exchange(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace)
        service, provider = build_service([AIMessage(content="First answer"), AIMessage(content="Second answer")])
        request_one = ChatStreamRequest(message="First question", session_id=str(session.id))
        request_two = ChatStreamRequest(message="Second question", session_id=str(session.id))

        await run_turn(service, "acme", request_one)
        await run_turn(service, "acme", request_two)

        messages = provider.calls[1]["messages"]
        assert [m.content for m in messages[1:3]] == ["First question", "First answer"]
        assert len(messages) == 4
        assert "Second question" in messages[-1].content

    @pytest.mark.asyncio
    async def test_web_search_timeout_should_still_complete(
        self, build_service, make_workspace, make_session
    ) -> None:
        """Test a tool that exceeds its timeout: paired tool events, then a normal answer."""
        # Arrange
        workspace = await make_workspace(enabled_tools=["web_search"])
        session = await make_session(workspace)
        service, provider = build_service(
            [
                tool_call_message("web_search", {"query": "public holidays 2026"}),
                AIMessage(content="I could not reach the web, but the handbook says 25 days."),
            ],
            tools=[slow_web_search],
        )

        # Act
        events = await run_turn(
            service, "acme", ChatStreamRequest(message="Any holidays?", session_id=str(session.id))
        )

        # Assert
        types = event_types(events)
        assert types[:6] == [
            "status:init",
            "status:rag",
            "sources",
            "status:tools",
            "tool_start",
            "tool_end",
        ]
        assert types[-1] == "done"
        tool_end = events[5]
        assert tool_end["success"] is False
        assert "timed out" in tool_end["error"]
        assert provider.calls[1]["messages"][-1].status == "error"

    @pytest.mark.asyncio
    async def test_model_failure_should_end_with_llm_error(
        self, build_service, make_workspace, make_session, test_async_db
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace)
        service, _ = build_service([LLMError("provider unavailable")])

        events = await run_turn(service, "acme", ChatStreamRequest(message="hi", session_id=str(session.id)))

        assert events[-1]["type"] == "error"
        assert events[-1]["code"] == "LLM_ERROR"
        assert not any(e["type"] == "done" for e in events)
        stored = await message_crud.get_recent(test_async_db, 10, session_id=session.id)
        assert [m.role for m in stored] == ["user"]

    @pytest.mark.asyncio
    async def test_vector_outage_should_warn_and_answer(
        self, build_service, make_workspace, make_session
    ) -> None:
        workspace = await make_workspace()
        session = await make_session(workspace)
        service, _ = build_service(
            [AIMessage(content="General answer.")],
            retriever=FakeRetriever(failing={"hr"}),
        )

        events = await run_turn(service, "acme", ChatStreamRequest(message="hi", session_id=str(session.id)))

        warnings = [e for e in events if e["type"] == "status" and e.get("level") == "warning"]
        assert warnings
        assert events[-1]["type"] == "done"

    @pytest.mark.asyncio
    async def test_standalone_turn_without_thread_should_create_one(
        self, build_service, make_workspace, make_session, test_async_db
    ) -> None:
        workspace = await make_workspace(slug="docs", embed=False)
        session = await make_session(workspace, ttl_hours=None)
        message = "How do I request parental leave when I am working part time?"
        service, _ = build_service([AIMessage(content="Submit the form to HR.")])

        events = await run_turn(service, "docs", ChatStreamRequest(message=message, session_id=str(session.id)))

        done = events[-1]
        assert done["type"] == "done"
        thread = await thread_crud.get_for_session(test_async_db, UUID(done["threadId"]), session.id)
        assert thread is not None
        assert thread.title.startswith(message[:40])
        stored = await message_crud.get_recent(test_async_db, 10, thread_id=thread.id)
        assert [m.role for m in stored] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_disconnect_during_model_call_should_not_persist_answer(
        self, build_service, make_workspace, make_session, test_async_db
    ) -> None:
        """Test that closing the consumer mid-generation cancels the turn."""
        # Arrange
        workspace = await make_workspace()
        session = await make_session(workspace)
        service, provider = build_service([AIMessage(content="too late")])
        provider.delay = 2.0
        prepared = await service.prepare(
            "acme", ChatStreamRequest(message="hi", session_id=str(session.id)), "203.0.113.7"
        )
        stream = service.open_stream(prepared)

        async def pipeline(s):
            await service.run(prepared, s)

        # Act
        frames = stream.frames(pipeline)
        seen = []
        async for frame in frames:
            seen.extend(parse_events([frame]))
            if seen and seen[-1]["type"] == "sources":
                break
        await frames.aclose()
        await asyncio.sleep(0)

        # Assert
        assert provider.calls
        assert not stream.is_finished
        stored = await message_crud.get_recent(test_async_db, 10, session_id=session.id)
        assert [m.role for m in stored] == ["user"]

    @pytest.mark.asyncio
    async def test_disconnect_after_generation_should_still_persist_answer(
        self, build_service, make_workspace, make_session, writer, test_async_db
    ) -> None:
        """Test that a client leaving after the last chunk still gets its answer saved once."""
        # Arrange
        workspace = await make_workspace()
        session = await make_session(workspace)
        answer = "Employees receive 25 days of paid annual leave."
        adapter = SlowAnswerAdapter(writer, delay=0.3)
        service, _ = build_service([AIMessage(content=answer)], conversations=adapter)
        prepared = await service.prepare(
            "acme",
            ChatStreamRequest(message="How much leave do I get?", session_id=str(session.id)),
            "203.0.113.7",
        )
        stream = service.open_stream(prepared)

        async def pipeline(s):
            await service.run(prepared, s)

        # Act
        frames = stream.frames(pipeline)
        streamed = ""
        async for frame in frames:
            for event in parse_events([frame]):
                if event["type"] == "chunk":
                    streamed += event["content"]
            if streamed == answer:
                break
        await frames.aclose()
        in_flight = list(_pending_writes)
        await asyncio.wait_for(asyncio.gather(*in_flight), timeout=2.0)

        # Assert
        assert adapter.answer_writes == 1
        assert in_flight
        assert not stream.is_finished
        stored = await message_crud.get_recent(test_async_db, 10, session_id=session.id)
        assert [m.role for m in stored] == ["user", "assistant"]
        assert stored[-1].content == answer
