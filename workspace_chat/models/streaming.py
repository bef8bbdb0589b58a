"""
Streaming event schemas for SSE chat.

Defines the tagged union of server-to-client events. Every event is a
frozen pydantic model with a literal ``type`` discriminator and camelCase
wire names.

Dependencies: pydantic
System role: Streaming protocol schemas
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from workspace_chat.models.source import Source


class StreamPhase(str, Enum):
    """Pipeline phases, in the only order a stream may visit them."""

    INIT = "init"
    RAG = "rag"
    TOOLS = "tools"
    GENERATING = "generating"


PHASE_ORDER: tuple[StreamPhase, ...] = (
    StreamPhase.INIT,
    StreamPhase.RAG,
    StreamPhase.TOOLS,
    StreamPhase.GENERATING,
)

PHASE_MESSAGES: dict[StreamPhase, str] = {
    StreamPhase.INIT: "Starting...",
    StreamPhase.RAG: "Searching knowledge base...",
    StreamPhase.TOOLS: "Processing tools...",
    StreamPhase.GENERATING: "Generating response...",
}


class ErrorCode(str, Enum):
    """Machine-readable error codes shared by pre-stream and stream errors."""

    AUTH_ERROR = "AUTH_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RAG_ERROR = "RAG_ERROR"
    TOOL_ERROR = "TOOL_ERROR"
    LLM_ERROR = "LLM_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    FEATURE_DISABLED = "FEATURE_DISABLED"
    NOT_FOUND = "NOT_FOUND"
    DISABLED = "DISABLED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_INVALID = "SESSION_INVALID"
    RATE_LIMITED = "RATE_LIMITED"


class ArtifactSubtype(str, Enum):
    """Kinds of tool side-output forwarded to the client."""

    VISUALIZATION = "visualization"
    DOCUMENT = "document"
    IMAGE = "image"


class _StreamEventBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class StatusEvent(_StreamEventBase):
    """Phase transition, or an advisory message within the current phase."""

    type: Literal["status"] = "status"
    phase: StreamPhase
    content: str
    level: Literal["info", "warning"] = "info"


class SourcesEvent(_StreamEventBase):
    type: Literal["sources"] = "sources"
    data: list[Source]


class ToolStartEvent(_StreamEventBase):
    type: Literal["tool_start"] = "tool_start"
    name: str
    display_name: str


class ToolEndEvent(_StreamEventBase):
    """End of one tool invocation. ``duration`` is in milliseconds."""

    type: Literal["tool_end"] = "tool_end"
    name: str
    success: bool
    duration: int
    error: str | None = None


class ArtifactEvent(_StreamEventBase):
    type: Literal["artifact"] = "artifact"
    subtype: ArtifactSubtype
    data: dict[str, Any]


class ChunkEvent(_StreamEventBase):
    type: Literal["chunk"] = "chunk"
    content: str


class DoneEvent(_StreamEventBase):
    """Terminal success event carrying the persisted assistant message id."""

    type: Literal["done"] = "done"
    message_id: str
    thread_id: str


class ErrorEvent(_StreamEventBase):
    """Terminal failure event. Also the body shape of pre-stream HTTP errors."""

    type: Literal["error"] = "error"
    code: ErrorCode
    message: str
    recoverable: bool = False
    reset_at: datetime | None = None


class KeepaliveEvent(_StreamEventBase):
    """Heartbeat. Encoded as an SSE comment with no payload."""

    type: Literal["keepalive"] = "keepalive"


StreamEvent = Annotated[
    Union[
        StatusEvent,
        SourcesEvent,
        ToolStartEvent,
        ToolEndEvent,
        ArtifactEvent,
        ChunkEvent,
        DoneEvent,
        ErrorEvent,
        KeepaliveEvent,
    ],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)
