"""
Tool orchestrator.

Drives the model <-> tool loop for one chat turn:

    awaiting_model -> (tool_requested -> tool_running -> tool_done)* -> awaiting_model -> final

Every tool call gets its own timeout, a tool_start event before it runs
and exactly one tool_end event after it settles. Tool failures are fed
back to the model as tool results and never abort the turn. The number of
round trips is capped by ``ToolConfig.max_iterations``; hitting the cap
finalizes with the content the model produced so far and a warning.

Dependencies: langchain_core, workspace_chat.boundary.llm, workspace_chat.models
System role: Tool-augmented answer generation
"""

import asyncio
import logging
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, ToolCall, ToolMessage
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field

from workspace_chat.boundary.llm.providers import ChatCompletionProvider
from workspace_chat.core.agentic_system.event_sink import EventSink
from workspace_chat.core.agentic_system.prompts import build_initial_messages
from workspace_chat.core.agentic_system.tools.registry import display_name_for
from workspace_chat.core.exceptions import ToolExecutionError, ToolTimeoutError
from workspace_chat.core.request_config import ToolConfig
from workspace_chat.models.source import Source
from workspace_chat.models.streaming import ArtifactEvent, ToolEndEvent, ToolStartEvent
from workspace_chat.models.tools import ToolArtifact, ToolExecutionState

logger = logging.getLogger(__name__)

ITERATION_LIMIT_WARNING = (
    "Tool iteration limit reached; answering with the information gathered so far."
)


class OrchestrationResult(BaseModel):
    """
    Final output of the tool loop.

    Attributes:
        content: Final assistant content
        artifacts: Client-facing artifacts in production order
        web_sources: Citations collected from web search results
        tool_states: One state per tool invocation, in invocation order
        iterations: Model/tool round trips performed
        iteration_limit_reached: Whether the cap forced finalization
        tokens_used: Model-reported tokens across all calls (0 when unreported)
    """

    content: str
    artifacts: list[ToolArtifact] = Field(default_factory=list)
    web_sources: list[Source] = Field(default_factory=list)
    tool_states: list[ToolExecutionState] = Field(default_factory=list)
    iterations: int = 0
    iteration_limit_reached: bool = False
    tokens_used: int = 0


def message_text(message: AIMessage) -> str:
    """Plain text of a model response (content may be a list of parts)."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _usage_tokens(message: AIMessage) -> int:
    usage = message.usage_metadata or {}
    return int(usage.get("total_tokens", 0) or 0)


class ToolOrchestrator:
    """Runs the tool-calling loop against a chat completion provider."""

    def __init__(self, provider: ChatCompletionProvider) -> None:
        """
        Initialize orchestrator.

        Args:
            provider: Chat completion provider with tool support
        """
        self._provider = provider

    async def run(
        self,
        *,
        system_prompt: str,
        history: list[BaseMessage],
        context: str,
        user_message: str,
        tools: list[BaseTool],
        config: ToolConfig,
        sink: EventSink,
    ) -> OrchestrationResult:
        """
        Generate the final answer, calling tools as the model requests.

        Args:
            system_prompt: Full system prompt
            history: Bounded prior conversation, oldest first
            context: Assembled RAG context
            user_message: Current user message
            tools: Tools the model may call
            config: Per-request tool configuration
            sink: Receives tool lifecycle and artifact events

        Returns:
            OrchestrationResult

        Raises:
            LLMError: If a model call fails
        """
        messages = build_initial_messages(system_prompt, history, context, user_message)
        tools_by_name = {tool.name: tool for tool in tools}
        result = OrchestrationResult(content="")

        logger.info(
            f"{__name__}:run - START tools={list(tools_by_name)}, history={len(history)}, "
            f"max_iterations={config.max_iterations}"
        )

        while True:
            response = await self._provider.complete(messages, tools or None)
            result.tokens_used += _usage_tokens(response)

            if not response.tool_calls:
                result.content = message_text(response)
                break

            if result.iterations >= config.max_iterations:
                logger.warning(
                    f"{__name__}:run - Iteration cap {config.max_iterations} reached with "
                    f"{len(response.tool_calls)} pending tool calls"
                )
                result.content = message_text(response)
                result.iteration_limit_reached = True
                await sink.warn(ITERATION_LIMIT_WARNING)
                break

            result.iterations += 1
            messages.append(response)
            for call in response.tool_calls:
                tool_message = await self._execute_tool(call, tools_by_name, config, sink, result)
                messages.append(tool_message)

        logger.info(
            f"{__name__}:run - END iterations={result.iterations}, content_len={len(result.content)}, "
            f"tool_calls={len(result.tool_states)}"
        )
        return result

    async def _execute_tool(
        self,
        call: ToolCall,
        tools_by_name: dict[str, BaseTool],
        config: ToolConfig,
        sink: EventSink,
        result: OrchestrationResult,
    ) -> ToolMessage:
        """Run one tool call with its own timeout; always pair start with end."""
        loop = asyncio.get_running_loop()
        name = call["name"]
        call_id = call.get("id") or f"call_{len(result.tool_states)}"
        state = ToolExecutionState(tool_call_id=call_id, name=name, display_name=display_name_for(name))
        result.tool_states.append(state)

        state.start(loop.time())
        await sink.emit(ToolStartEvent(name=name, display_name=state.display_name))

        content = ""
        artifact: Any = None
        error: str | None = None
        try:
            tool = tools_by_name.get(name)
            if tool is None:
                raise ToolExecutionError(name, f"Unknown tool: {name}")
            output = await asyncio.wait_for(
                tool.ainvoke({"name": name, "args": call.get("args", {}), "id": call_id, "type": "tool_call"}),
                timeout=config.tool_timeout_seconds,
            )
            if isinstance(output, ToolMessage):
                content = output.content if isinstance(output.content, str) else str(output.content)
                artifact = output.artifact
            else:
                content = str(output)
        except asyncio.TimeoutError:
            error = ToolTimeoutError(name, config.tool_timeout_seconds).message
        except ToolExecutionError as e:
            error = e.message
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        if error is None and isinstance(artifact, ToolArtifact):
            await self._collect_artifact(artifact, config, sink, result)

        state.finish(loop.time(), error)
        await sink.emit(
            ToolEndEvent(
                name=name,
                success=state.success,
                duration=state.duration_ms,
                error=error,
            )
        )

        if error is not None:
            logger.warning(
                f"{__name__}:_execute_tool - Tool {name} failed",
                extra={"tool_name": name, "error": error, "duration_ms": state.duration_ms},
            )
            return ToolMessage(
                content=f"Error executing {name}: {error}",
                tool_call_id=call_id,
                name=name,
                status="error",
            )

        if len(content) > config.max_result_chars:
            content = content[: config.max_result_chars] + "\n[truncated]"
        return ToolMessage(content=content, tool_call_id=call_id, name=name)

    @staticmethod
    async def _collect_artifact(
        artifact: ToolArtifact,
        config: ToolConfig,
        sink: EventSink,
        result: OrchestrationResult,
    ) -> None:
        if artifact.kind == "web_sources":
            result.web_sources.extend(artifact.sources)
            return
        result.artifacts.append(artifact)
        if config.forward_artifacts:
            await sink.emit(ArtifactEvent(subtype=artifact.kind, data=artifact.data))
