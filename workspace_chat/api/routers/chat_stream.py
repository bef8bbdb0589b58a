"""
Streaming chat endpoint.

Routes: POST /w/{slug}/chat/stream

Validation, workspace/session checks and rate limiting complete before the
response starts; their failures are plain JSON errors. Everything after
that is reported inside the event stream.

Dependencies: workspace_chat.application.services.chat_stream_service
System role: SSE streaming HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from workspace_chat.api.deps import get_chat_stream_service
from workspace_chat.api.routers.router_utils import client_ip, error_response
from workspace_chat.application.services import ChatStreamService, RateLimitedError
from workspace_chat.core.exceptions import WorkspaceChatException
from workspace_chat.core.streaming import SSE_HEADERS
from workspace_chat.models.chat import ChatStreamRequest

logger = logging.getLogger(__name__)
router = APIRouter(tags=["streaming"])


@router.post("/w/{slug}/chat/stream", response_model=None)
async def chat_stream(
    slug: str,
    body: ChatStreamRequest,
    request: Request,
    chat_service: ChatStreamService = Depends(get_chat_stream_service),
):
    """
    Stream a chat answer as server-sent events.

    Event order: status(init) -> status(rag) -> sources -> [status(tools),
    tool_start/tool_end/artifact...] -> status(generating) -> chunk... -> done.
    A terminal error event replaces done when generation fails.

    Args:
        slug: Workspace slug
        body: {message, sessionId, threadId?}
        request: Raw request for the client address
        chat_service: Injected ChatStreamService

    Returns:
        StreamingResponse on success, JSON error (400/403/404/429) otherwise
    """
    try:
        prepared = await chat_service.prepare(slug, body, client_ip(request))
    except RateLimitedError as e:
        return error_response(e, headers=e.decision.headers())
    except WorkspaceChatException as e:
        return error_response(e)

    headers = dict(SSE_HEADERS)
    if prepared.rate_limit is not None:
        headers.update(prepared.rate_limit.headers())

    stream = chat_service.open_stream(prepared)

    async def pipeline(session):
        await chat_service.run(prepared, session)

    return StreamingResponse(
        stream.frames(pipeline),
        media_type="text/event-stream",
        headers=headers,
    )
