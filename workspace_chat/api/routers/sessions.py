"""
Session and thread API endpoints.

Routes:
- POST /w/{slug}/sessions - Start a session
- POST /w/{slug}/threads - Create a thread (standalone workspaces)
- GET /w/{slug}/threads/{thread_id}/messages - Active thread messages
- GET /w/{slug}/threads/{thread_id}/archived - Messages moved out by summarization

Dependencies: workspace_chat.application.services.session_service, workspace_chat.models
System role: Conversation management HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from workspace_chat.api.deps import get_session_service
from workspace_chat.api.routers.router_utils import client_ip, error_response
from workspace_chat.application.services import SessionService
from workspace_chat.core.exceptions import WorkspaceChatException
from workspace_chat.models.chat import (
    ArchivedMessageResponse,
    CreateSessionRequest,
    CreateThreadRequest,
    MessageResponse,
    SessionResponse,
    ThreadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/w/{slug}", tags=["sessions"])


@router.post("/sessions", response_model=SessionResponse)
async def create_session(
    slug: str,
    body: CreateSessionRequest,
    request: Request,
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse | JSONResponse:
    """
    Start a session in a workspace.

    Args:
        slug: Workspace slug
        body: Optional authenticated user id
        request: Raw request for the client address
        session_service: Injected SessionService

    Returns:
        SessionResponse: Created session, with expiry for embed workspaces
    """
    try:
        session = await session_service.create_session(slug, client_ip(request), body.user_id)
    except WorkspaceChatException as e:
        return error_response(e)
    return SessionResponse.model_validate(session)


@router.post("/threads", response_model=ThreadResponse)
async def create_thread(
    slug: str,
    body: CreateThreadRequest,
    session_service: SessionService = Depends(get_session_service),
) -> ThreadResponse | JSONResponse:
    """Create an empty thread owned by the given session."""
    try:
        thread = await session_service.create_thread(slug, body.session_id, body.title)
    except WorkspaceChatException as e:
        return error_response(e)
    return ThreadResponse.model_validate(thread)


@router.get("/threads/{thread_id}/messages", response_model=list[MessageResponse])
async def get_thread_messages(
    slug: str,
    thread_id: str,
    session_id: str = Query(alias="sessionId"),
    limit: int = Query(default=100, ge=1, le=200),
    session_service: SessionService = Depends(get_session_service),
) -> list[MessageResponse] | JSONResponse:
    """
    Active thread messages, oldest first.

    Args:
        slug: Workspace slug
        thread_id: Thread UUID
        session_id: Owning session UUID
        limit: Maximum number of most recent messages
        session_service: Injected SessionService

    Returns:
        list[MessageResponse]
    """
    try:
        messages = await session_service.get_thread_messages(slug, session_id, thread_id, limit)
    except WorkspaceChatException as e:
        return error_response(e)
    return [MessageResponse.model_validate(m) for m in messages]


@router.get("/threads/{thread_id}/archived", response_model=list[ArchivedMessageResponse])
async def get_archived_messages(
    slug: str,
    thread_id: str,
    session_id: str = Query(alias="sessionId"),
    session_service: SessionService = Depends(get_session_service),
) -> list[ArchivedMessageResponse] | JSONResponse:
    """Archived thread messages in original order."""
    try:
        messages = await session_service.get_archived_messages(slug, session_id, thread_id)
    except WorkspaceChatException as e:
        return error_response(e)
    return [ArchivedMessageResponse.model_validate(m) for m in messages]
