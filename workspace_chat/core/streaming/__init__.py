"""
Server-sent event streaming: event encoding and per-request stream sessions.
"""

from workspace_chat.core.streaming.sse_encoder import (
    KEEPALIVE_FRAME,
    SSE_HEADERS,
    encode_event,
    split_content,
)
from workspace_chat.core.streaming.stream_session import StreamSession

__all__ = ["KEEPALIVE_FRAME", "SSE_HEADERS", "encode_event", "split_content", "StreamSession"]
