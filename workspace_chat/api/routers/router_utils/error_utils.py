"""
Error response helpers.

Pre-stream failures use the same JSON body as the stream's ``error`` event
so clients parse one shape.

Dependencies: fastapi, workspace_chat.models.streaming
System role: HTTP error rendering
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from workspace_chat.core.exceptions import RateLimitExceededError, WorkspaceChatException
from workspace_chat.models.streaming import ErrorCode, ErrorEvent

logger = logging.getLogger(__name__)


def error_response(exc: WorkspaceChatException, headers: dict[str, str] | None = None) -> JSONResponse:
    """
    Render a domain exception as an HTTP error.

    Args:
        exc: Domain exception carrying code and status
        headers: Extra response headers (rate limit headers)

    Returns:
        JSONResponse: ErrorEvent-shaped body with the exception's status code
    """
    try:
        code = ErrorCode(exc.code)
    except ValueError:
        code = ErrorCode.UNKNOWN_ERROR
    event = ErrorEvent(
        code=code,
        message=exc.message,
        recoverable=isinstance(exc, RateLimitExceededError),
        reset_at=getattr(exc, "reset_at", None),
    )
    logger.info(
        f"{__name__}:error_response - {exc.status_code} {code.value}",
        extra={"error_code": code.value, "details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=event.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


def client_ip(request: Request) -> str | None:
    """Caller address, honoring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
