"""
Tool execution schemas.

Dependencies: pydantic
System role: Tool lifecycle state and artifacts
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, PrivateAttr

from workspace_chat.models.source import Source


class ToolStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_TOOL_STATUSES = frozenset({ToolStatus.SUCCESS, ToolStatus.ERROR})


class ToolExecutionState(BaseModel):
    """
    Lifecycle of one tool invocation.

    Terminal status is write-once: ``finish`` raises if the state has
    already reached success or error.
    """

    tool_call_id: str
    name: str
    display_name: str
    status: ToolStatus = ToolStatus.PENDING
    duration_ms: int = 0
    error: str | None = None

    _started_at: float | None = PrivateAttr(default=None)

    def start(self, now: float) -> None:
        if self.status != ToolStatus.PENDING:
            raise RuntimeError(f"Tool {self.name} already started")
        self.status = ToolStatus.RUNNING
        self._started_at = now

    def finish(self, now: float, error: str | None = None) -> None:
        if self.status in TERMINAL_TOOL_STATUSES:
            raise RuntimeError(f"Tool {self.name} already finished with {self.status.value}")
        started = self._started_at if self._started_at is not None else now
        self.duration_ms = max(0, int((now - started) * 1000))
        self.error = error
        self.status = ToolStatus.ERROR if error else ToolStatus.SUCCESS

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS


class ToolArtifact(BaseModel):
    """
    Side output of a tool call.

    ``web_sources`` artifacts are kept server-side as citations; the other
    kinds are forwarded to the client as artifact events.
    """

    kind: Literal["visualization", "document", "image", "web_sources"]
    data: dict[str, Any] = Field(default_factory=dict)
    sources: list[Source] = Field(default_factory=list)
