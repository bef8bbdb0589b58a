"""
FastAPI application with assembled routers.

Initializes the FastAPI app, its shared components and middleware, and
configures the uvicorn server.

Dependencies: fastapi, workspace_chat.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import workspace_chat.boundary.db.models  # noqa: F401  (registers tables on Base.metadata)
from workspace_chat.api.deps.dependencies import get_service_cache
from workspace_chat.api.routers import (
    admin_router,
    chat_stream_router,
    health_router,
    sessions_router,
)
from workspace_chat.api.routers.router_utils import error_response
from workspace_chat.boundary.db import Base, get_async_engine
from workspace_chat.configs import get_settings
from workspace_chat.core.exceptions import ValidationError
from workspace_chat.observability.logger import configure_logging, get_logger
from workspace_chat.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup
    engine = get_async_engine()
    if settings.create_schema_on_startup:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    logger.info("Pre-warming service cache...")
    cache = get_service_cache()
    # Trigger property access to load instances
    _ = cache.assembler
    _ = cache.orchestrator
    _ = cache.history_resolver
    _ = cache.rate_limiter
    _ = cache.tool_registry
    logger.info(f"Service cache pre-warmed, tools={cache.tool_registry.names}")

    yield

    # Shutdown
    await cache.aclose()
    await engine.dispose()
    logger.info("Service cache cleared")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies use the same error shape as every other rejection."""
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else None
    message = errors[0]["msg"] if errors else "Invalid request"
    return error_response(ValidationError(message, field=field or None))


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    settings = get_settings()
    app = FastAPI(
        title="Workspace Chat API",
        description="Multi-tenant conversational RAG with streamed answers",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Correlation-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health_router)
    app.include_router(chat_stream_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "workspace_chat.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
