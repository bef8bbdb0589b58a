"""
Event sink contract used by the tool orchestrator.

Dependencies: workspace_chat.models.streaming
System role: Decouples tool lifecycle emission from the stream transport
"""

from typing import Protocol

from workspace_chat.models.streaming import StreamEvent


class EventSink(Protocol):
    """Single-producer event channel (implemented by StreamSession)."""

    async def emit(self, event: StreamEvent) -> bool: ...

    async def warn(self, message: str) -> None: ...
