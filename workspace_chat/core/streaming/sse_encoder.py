"""
SSE wire encoding.

Every event becomes one ``data: {json}\n\n`` frame with camelCase keys;
the heartbeat becomes a comment frame with no payload.

Dependencies: workspace_chat.models.streaming
System role: Event-to-wire encoding at the stream boundary
"""

from workspace_chat.models.streaming import (
    ArtifactEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    KeepaliveEvent,
    SourcesEvent,
    StatusEvent,
    StreamEvent,
    ToolEndEvent,
    ToolStartEvent,
)

KEEPALIVE_FRAME = ": keep-alive\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_DATA_EVENTS = (
    StatusEvent,
    SourcesEvent,
    ToolStartEvent,
    ToolEndEvent,
    ArtifactEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
)


def encode_event(event: StreamEvent) -> str:
    """
    Encode one event as an SSE frame.

    Args:
        event: Any stream event variant

    Returns:
        str: Wire frame

    Raises:
        TypeError: For objects that are not stream events
    """
    if isinstance(event, KeepaliveEvent):
        return KEEPALIVE_FRAME
    if isinstance(event, _DATA_EVENTS):
        payload = event.model_dump_json(by_alias=True, exclude_none=True)
        return f"data: {payload}\n\n"
    raise TypeError(f"Not a stream event: {type(event).__name__}")


def split_content(content: str, chunk_size: int) -> list[str]:
    """Split content into ordered pieces whose concatenation is the input."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [content[i : i + chunk_size] for i in range(0, len(content), chunk_size)]
