"""
Admin API endpoints.

Routes:
- POST /admin/cache/invalidate - Drop cached entries by key prefix
- GET /admin/w/{slug}/rate-limits - 24h usage stats
- DELETE /admin/w/{slug}/rate-limits - Reset counters (optionally one visitor)

Dependencies: workspace_chat.core.rate_limit, workspace_chat.boundary.cache
System role: Operational HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from workspace_chat.api.deps import ServiceCache, get_service_cache, get_session_service
from workspace_chat.api.routers.router_utils import error_response
from workspace_chat.application.services import SessionService
from workspace_chat.core.exceptions import ValidationError, WorkspaceChatException
from workspace_chat.models.chat import CacheInvalidateRequest, CacheInvalidateResponse
from workspace_chat.models.rate_limit import RateLimitStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class RateLimitResetResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workspace_id: str
    visitor_hash: str | None = None
    removed: int


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
async def invalidate_cache(
    body: CacheInvalidateRequest,
    services: ServiceCache = Depends(get_service_cache),
) -> CacheInvalidateResponse | JSONResponse:
    """
    Invalidate cached entries after a settings or content change.

    Args:
        body: Key prefix ("rag:" for retrievals, "tavily:" for web results)
        services: Shared component cache

    Returns:
        CacheInvalidateResponse: Prefix and number of removed entries
    """
    if not body.prefix:
        return error_response(ValidationError("prefix must not be empty", field="prefix"))
    deleted = await services.query_cache.invalidate(body.prefix)
    logger.info(f"{__name__}:invalidate_cache - Removed {deleted} entries", extra={"prefix": body.prefix})
    return CacheInvalidateResponse(prefix=body.prefix, deleted=deleted)


@router.get("/w/{slug}/rate-limits", response_model=RateLimitStats)
async def get_rate_limit_stats(
    slug: str,
    session_service: SessionService = Depends(get_session_service),
    services: ServiceCache = Depends(get_service_cache),
) -> RateLimitStats | JSONResponse:
    """Unique visitors and requests over the last 24 hours."""
    try:
        workspace = await session_service.resolve_workspace(slug)
    except WorkspaceChatException as e:
        return error_response(e)
    return await services.rate_limiter.stats(session_service.db, workspace.id)


@router.delete("/w/{slug}/rate-limits", response_model=RateLimitResetResponse)
async def reset_rate_limits(
    slug: str,
    visitor_hash: str | None = Query(default=None, alias="visitorHash"),
    session_service: SessionService = Depends(get_session_service),
    services: ServiceCache = Depends(get_service_cache),
) -> RateLimitResetResponse | JSONResponse:
    """
    Reset daily counters for a workspace or a single visitor.

    Args:
        slug: Workspace slug
        visitor_hash: Limit the reset to one anonymized visitor
        session_service: Injected SessionService
        services: Shared component cache

    Returns:
        RateLimitResetResponse
    """
    try:
        workspace = await session_service.resolve_workspace(slug)
    except WorkspaceChatException as e:
        return error_response(e)
    removed = await services.rate_limiter.reset(session_service.db, workspace.id, visitor_hash)
    return RateLimitResetResponse(
        workspace_id=str(workspace.id),
        visitor_hash=visitor_hash,
        removed=removed,
    )
