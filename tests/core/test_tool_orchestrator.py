"""
Test suite for ToolOrchestrator.

Tests tool lifecycle pairing, per-tool timeouts, unknown tools, the
iteration cap, and artifact routing. Uses a scripted chat provider and a
recording event sink.

System role: Verification of the model/tool loop
"""

import asyncio

import pytest
from langchain_core.messages import AIMessage, ToolMessage
from langchain_core.tools import tool

from tests.conftest import ScriptedProvider, tool_call_message
from workspace_chat.core.agentic_system.tool_orchestrator import (
    ITERATION_LIMIT_WARNING,
    ToolOrchestrator,
)
from workspace_chat.core.agentic_system.tools.chart_tool import create_chart_tool
from workspace_chat.core.exceptions import LLMError
from workspace_chat.core.request_config import ToolConfig
from workspace_chat.models.source import Source
from workspace_chat.models.streaming import ArtifactEvent, ToolEndEvent, ToolStartEvent
from workspace_chat.models.tools import ToolArtifact


class RecordingSink:
    """Event sink collecting emitted events and warnings."""

    def __init__(self) -> None:
        self.events: list = []
        self.warnings: list[str] = []

    async def emit(self, event) -> bool:
        self.events.append(event)
        return True

    async def warn(self, message: str) -> None:
        self.warnings.append(message)


@tool
async def slow_lookup(query: str) -> str:
    """Look something up slowly.

    Args:
        query: What to look up
    """
    await asyncio.sleep(5)
    return "never"


@tool
async def echo(text: str) -> str:
    """Echo the text back.

    Args:
        text: Text to echo
    """
    return f"echo: {text}"


@tool("web_search", response_format="content_and_artifact")
async def fake_web_search(query: str) -> tuple[str, ToolArtifact]:
    """Search the web.

    Args:
        query: Search query
    """
    source = Source(document_name="[WEB] Leave guide", chunk_text="Leave...", score=0.7)
    return '{"results": 1}', ToolArtifact(kind="web_sources", sources=[source])


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def tool_config() -> ToolConfig:
    return ToolConfig(max_iterations=3, tool_timeout_seconds=1.0, max_result_chars=1000)


async def _run(provider: ScriptedProvider, tools, config: ToolConfig, sink: RecordingSink):
    return await ToolOrchestrator(provider).run(
        system_prompt="You are helpful.",
        history=[],
        context="=== KNOWLEDGE BASE DOCUMENTS ===",
        user_message="What is the leave policy?",
        tools=tools,
        config=config,
        sink=sink,
    )


class TestDirectAnswer:
    """Test suite for answers without tool calls."""

    @pytest.mark.asyncio
    async def test_should_return_model_content_without_tool_events(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([AIMessage(content="25 days.")])

        result = await _run(provider, [echo], tool_config, sink)

        assert result.content == "25 days."
        assert result.iterations == 0
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_prompt_should_contain_context_and_question(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([AIMessage(content="ok")])

        await _run(provider, [], tool_config, sink)

        messages = provider.calls[0]["messages"]
        assert messages[0].content == "You are helpful."
        assert "KNOWLEDGE BASE" in messages[-1].content
        assert "What is the leave policy?" in messages[-1].content
        assert provider.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_model_failure_should_propagate(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([LLMError("quota exceeded")])

        with pytest.raises(LLMError):
            await _run(provider, [], tool_config, sink)


class TestToolLifecycle:
    """Test suite for tool_start/tool_end pairing."""

    @pytest.mark.asyncio
    async def test_successful_tool_should_emit_start_then_end(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([
            tool_call_message("echo", {"text": "hi"}),
            AIMessage(content="done"),
        ])

        result = await _run(provider, [echo], tool_config, sink)

        assert [type(e) for e in sink.events] == [ToolStartEvent, ToolEndEvent]
        assert sink.events[1].success is True
        assert result.content == "done"
        tool_message = provider.calls[1]["messages"][-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.content == "echo: hi"

    @pytest.mark.asyncio
    async def test_timed_out_tool_should_end_unsuccessfully_and_continue(
        self, sink: RecordingSink
    ) -> None:
        config = ToolConfig(max_iterations=3, tool_timeout_seconds=0.05)
        provider = ScriptedProvider([
            tool_call_message("slow_lookup", {"query": "leave"}),
            AIMessage(content="Answer without the lookup."),
        ])

        result = await _run(provider, [slow_lookup], config, sink)

        start, end = sink.events
        assert isinstance(start, ToolStartEvent)
        assert isinstance(end, ToolEndEvent)
        assert end.success is False
        assert "timed out" in end.error
        assert result.content == "Answer without the lookup."
        assert result.tool_states[0].success is False

    @pytest.mark.asyncio
    async def test_unknown_tool_should_be_reported_to_model(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([
            tool_call_message("does_not_exist", {}),
            AIMessage(content="Sorry."),
        ])

        await _run(provider, [echo], tool_config, sink)

        assert sink.events[1].success is False
        tool_message = provider.calls[1]["messages"][-1]
        assert tool_message.status == "error"

    @pytest.mark.asyncio
    async def test_every_start_should_be_followed_by_its_end(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([
            AIMessage(
                content="",
                tool_calls=[
                    {"name": "echo", "args": {"text": "a"}, "id": "c1", "type": "tool_call"},
                    {"name": "missing", "args": {}, "id": "c2", "type": "tool_call"},
                ],
            ),
            AIMessage(content="done"),
        ])

        await _run(provider, [echo], tool_config, sink)

        kinds = [(type(e).__name__, e.name) for e in sink.events]
        assert kinds == [
            ("ToolStartEvent", "echo"),
            ("ToolEndEvent", "echo"),
            ("ToolStartEvent", "missing"),
            ("ToolEndEvent", "missing"),
        ]


class TestIterationCap:
    """Test suite for the max_iterations bound."""

    @pytest.mark.asyncio
    async def test_cap_should_finalize_with_warning(self, sink: RecordingSink) -> None:
        config = ToolConfig(max_iterations=2, tool_timeout_seconds=1.0)
        provider = ScriptedProvider([
            tool_call_message("echo", {"text": "1"}, call_id="c1"),
            tool_call_message("echo", {"text": "2"}, call_id="c2"),
            tool_call_message("echo", {"text": "3"}, call_id="c3", content="Partial answer."),
        ])

        result = await _run(provider, [echo], config, sink)

        assert result.iterations == 2
        assert result.iteration_limit_reached is True
        assert result.content == "Partial answer."
        assert sink.warnings == [ITERATION_LIMIT_WARNING]
        assert len(provider.calls) == 3


class TestArtifacts:
    """Test suite for artifact routing."""

    @pytest.mark.asyncio
    async def test_web_sources_should_be_collected_not_emitted(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        provider = ScriptedProvider([
            tool_call_message("web_search", {"query": "leave"}),
            AIMessage(content="From the web."),
        ])

        result = await _run(provider, [fake_web_search], tool_config, sink)

        assert [s.document_name for s in result.web_sources] == ["[WEB] Leave guide"]
        assert not any(isinstance(e, ArtifactEvent) for e in sink.events)

    @pytest.mark.asyncio
    async def test_chart_artifact_should_be_forwarded_when_enabled(
        self, sink: RecordingSink, tool_config: ToolConfig
    ) -> None:
        args = {
            "title": "Leave by team",
            "chart_type": "bar",
            "labels": ["Ops", "Sales"],
            "series": [{"name": "Days", "values": [10, 12]}],
        }
        provider = ScriptedProvider([tool_call_message("chart_gen", args), AIMessage(content="Here.")])

        result = await _run(provider, [create_chart_tool()], tool_config, sink)

        artifacts = [e for e in sink.events if isinstance(e, ArtifactEvent)]
        assert len(artifacts) == 1
        assert artifacts[0].data["labels"] == ["Ops", "Sales"]
        assert isinstance(sink.events[-1], ToolEndEvent)
        assert result.artifacts[0].kind == "visualization"

    @pytest.mark.asyncio
    async def test_artifacts_should_not_be_forwarded_in_embed_mode(self, sink: RecordingSink) -> None:
        config = ToolConfig(max_iterations=3, tool_timeout_seconds=1.0, forward_artifacts=False)
        args = {
            "title": "Leave",
            "chart_type": "pie",
            "labels": ["Used", "Left"],
            "series": [{"name": "Days", "values": [5, 20]}],
        }
        provider = ScriptedProvider([tool_call_message("chart_gen", args), AIMessage(content="Here.")])

        result = await _run(provider, [create_chart_tool()], config, sink)

        assert not any(isinstance(e, ArtifactEvent) for e in sink.events)
        assert len(result.artifacts) == 1
