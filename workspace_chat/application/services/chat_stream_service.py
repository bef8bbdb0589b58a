"""
Chat stream service.

Entry point for one chat turn. Validation, workspace/session resolution
and rate limiting happen in ``prepare`` before any stream is opened; the
rest runs as the stream producer:

    init -> persist user message -> rag -> tools -> generating -> persist answer -> done

The producer opens its own database sessions from the session factory so
it never depends on the request-scoped session outliving the response.

Dependencies: workspace_chat.core, workspace_chat.application.adapters
System role: Chat turn orchestration over the SSE stream
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workspace_chat.application.adapters.conversation_adapter import (
    ConversationAdapter,
    ConversationScope,
)
from workspace_chat.application.services.session_service import SessionService
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.boundary.db.models.session_model import SessionModel
from workspace_chat.boundary.db.models.thread_model import ThreadModel
from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel
from workspace_chat.configs.settings import Settings
from workspace_chat.core.agentic_system.prompts import build_system_prompt
from workspace_chat.core.agentic_system.tool_orchestrator import ToolOrchestrator
from workspace_chat.core.agentic_system.tools.registry import ToolRegistry
from workspace_chat.core.exceptions import LLMError, RateLimitExceededError, ValidationError
from workspace_chat.core.history.history_resolver import HistoryResolver
from workspace_chat.core.rag.rag_assembler import RAGAssembler
from workspace_chat.core.rate_limit.rate_limiter import RateLimiter, hash_visitor
from workspace_chat.core.request_config import RequestConfig
from workspace_chat.core.streaming.stream_session import StreamSession
from workspace_chat.models.chat import ChatStreamRequest
from workspace_chat.models.rate_limit import RateLimitDecision
from workspace_chat.models.retrieval import AuxiliaryContext
from workspace_chat.models.source import Source
from workspace_chat.models.streaming import ErrorCode, SourcesEvent, StreamPhase
from workspace_chat.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)

LLM_ERROR_MESSAGE = "The assistant could not generate a response. Please try again."

# Answer writes still running after their stream was cancelled.
_pending_writes: set[asyncio.Task] = set()


class PreparedChat(BaseModel):
    """
    A validated chat turn, ready to stream.

    Attributes:
        workspace: Resolved workspace
        session: Live session owned by the workspace
        thread: Existing thread (standalone), None to create one or in embed mode
        message: Trimmed user message
        config: Per-request configuration snapshot
        rate_limit: Quota decision for embed requests
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    workspace: WorkspaceModel
    session: SessionModel
    thread: ThreadModel | None = None
    message: str
    config: RequestConfig
    rate_limit: RateLimitDecision | None = None


class RateLimitedError(RateLimitExceededError):
    """Quota denial carrying the full decision for response headers."""

    def __init__(self, decision: RateLimitDecision) -> None:
        super().__init__(decision.reason or "daily", decision.limit, decision.reset_at)
        self.decision = decision


class ChatStreamService:
    """
    Chat stream service.

    Coordinates validation, quota, history, retrieval, tool calling,
    streaming and persistence for one chat turn.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        assembler: RAGAssembler,
        orchestrator: ToolOrchestrator,
        history: HistoryResolver,
        rate_limiter: RateLimiter,
        tools: ToolRegistry,
        conversations: ConversationAdapter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """
        Initialize chat stream service.

        Args:
            db: Request-scoped async session, used only by ``prepare``
            settings: Application settings
            session_factory: Factory for sessions owned by the stream producer
            assembler: RAG assembler
            orchestrator: Tool-calling loop
            history: Conversation history resolver
            rate_limiter: Embed quota guard
            tools: Application tool registry
            conversations: Conversation persistence adapter
            clock: UTC clock
        """
        self.db = db
        self.settings = settings
        self.session_factory = session_factory
        self.assembler = assembler
        self.orchestrator = orchestrator
        self.history = history
        self.rate_limiter = rate_limiter
        self.tools = tools
        self.conversations = conversations
        self.sessions = SessionService(db, conversations, settings.rate_limit.visitor_hash_salt, clock)

    async def prepare(self, slug: str, request: ChatStreamRequest, client_ip: str | None) -> PreparedChat:
        """
        Validate a chat request before any stream phase begins.

        Flow:
        1. Validate message and sessionId
        2. Resolve enabled workspace
        3. Validate session ownership and expiry
        4. Validate thread ownership (standalone)
        5. Check and count the embed quota

        Args:
            slug: Workspace slug from the path
            request: Request body
            client_ip: Caller address for visitor hashing

        Returns:
            PreparedChat

        Raises:
            ValidationError: Missing or malformed fields
            WorkspaceNotFoundError / WorkspaceDisabledError: Workspace problems
            SessionNotFoundError / SessionExpiredError: Session problems
            ThreadNotFoundError: Thread not owned by the session
            RateLimitedError: Embed quota exhausted
        """
        message = (request.message or "").strip()
        if not message:
            raise ValidationError("message is required", field="message")
        if not request.session_id:
            raise ValidationError("sessionId is required", field="sessionId")

        workspace = await self.sessions.resolve_workspace(slug)
        session = await self.sessions.resolve_session(workspace, request.session_id)

        thread = None
        if not workspace.is_embed and request.thread_id:
            thread = await self.sessions.resolve_thread(session, request.thread_id)

        decision = None
        if workspace.is_embed:
            visitor_hash = hash_visitor(client_ip or "unknown", self.settings.rate_limit.visitor_hash_salt)
            decision = await self.rate_limiter.check_and_increment(self.db, workspace, session, visitor_hash)
            if not decision.allowed:
                raise RateLimitedError(decision)

        config = RequestConfig.build(self.settings, workspace)
        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:prepare - Accepted chat turn",
            workspace=slug,
            session_id=session.id,
            thread_id=thread.id if thread else None,
            embed=workspace.is_embed,
            remaining=decision.remaining if decision else None,
        )
        return PreparedChat(
            workspace=workspace,
            session=session,
            thread=thread,
            message=message,
            config=config,
            rate_limit=decision,
        )

    def open_stream(self, prepared: PreparedChat) -> StreamSession:
        return StreamSession(prepared.config.stream)

    async def run(self, prepared: PreparedChat, stream: StreamSession) -> None:
        """
        Stream producer for one chat turn.

        Model failures end the stream with LLM_ERROR; anything unexpected
        propagates to the stream session, which reports UNKNOWN_ERROR.

        Args:
            prepared: Validated turn
            stream: Event channel
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        config = prepared.config

        await stream.enter_phase(StreamPhase.INIT)
        scope, view = await self._record_user_turn(prepared)

        await stream.enter_phase(StreamPhase.RAG)
        retrieval = await self.assembler.assemble(
            prepared.message,
            config.category_ids,
            config.rag,
            AuxiliaryContext(summary=view.summary),
        )
        for warning in retrieval.warnings:
            await stream.warn(warning)
        sources: list[Source] = list(retrieval.sources)
        await stream.emit(SourcesEvent(data=sources))

        tools = self.tools.select(config.tools.enabled_tools)
        if tools:
            await stream.enter_phase(StreamPhase.TOOLS)

        try:
            result = await self.orchestrator.run(
                system_prompt=build_system_prompt(config.system_prompt, retrieval.system_context),
                history=view.to_langchain(),
                context=retrieval.context,
                user_message=prepared.message,
                tools=tools,
                config=config.tools,
                sink=stream,
            )
        except LLMError as e:
            log_exception_with_context(
                logger,
                f"{__name__}:run - Model call failed",
                e,
                session_id=scope.session_id,
                thread_id=scope.thread_id,
                phase=stream.phase,
            )
            await stream.fail(ErrorCode.LLM_ERROR, LLM_ERROR_MESSAGE)
            return

        if result.web_sources:
            sources = sources + result.web_sources
            await stream.emit(SourcesEvent(data=sources))

        await stream.enter_phase(StreamPhase.GENERATING)
        await stream.stream_content(result.content)

        latency_ms = int((loop.time() - started) * 1000)
        persist = asyncio.ensure_future(
            self._persist_answer(scope, result.content, sources, latency_ms, result.tokens_used or None)
        )
        _pending_writes.add(persist)
        persist.add_done_callback(_pending_writes.discard)
        # Once content is fully generated the answer is saved even if the client leaves.
        message = await asyncio.shield(persist)

        await stream.done(str(message.id), scope.stream_id)
        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:run - Turn complete",
            session_id=scope.session_id,
            message_id=message.id,
            latency_ms=latency_ms,
            tool_calls=len(result.tool_states),
            sources=len(sources),
        )

    async def _record_user_turn(self, prepared: PreparedChat):
        """Persist the user message (creating a thread if needed) and resolve history."""
        config = prepared.config
        async with self.session_factory() as db:
            thread_id = prepared.thread.id if prepared.thread is not None else None
            if not config.is_embed and thread_id is None:
                thread = await self.conversations.create_thread(db, prepared.session.id, prepared.message)
                thread_id = thread.id
            scope = ConversationScope(session_id=prepared.session.id, thread_id=thread_id)

            await self.conversations.append_message(db, scope, "user", prepared.message)
            view = await self.history.resolve(
                db,
                scope.session_id,
                scope.thread_id,
                config.history,
                exclude_latest=True,
            )
        return scope, view

    async def _persist_answer(
        self,
        scope: ConversationScope,
        content: str,
        sources: list[Source],
        latency_ms: int,
        tokens_used: int | None,
    ) -> MessageModel:
        async with self.session_factory() as db:
            return await self.conversations.append_message(
                db,
                scope,
                "assistant",
                content,
                sources=[s.model_dump(mode="json", by_alias=True) for s in sources],
                latency_ms=latency_ms,
                tokens_used=tokens_used,
            )
