"""
Per-request stream session.

Owns the single outbound event channel of a chat request. The pipeline
runs as one producer task that calls ``emit``; ``frames`` is the sole
consumer and turns queued events into SSE frames, inserting heartbeats
on a fixed period.

Ordering rules enforced here:
- phases only move forward: init -> rag -> tools -> generating
- sources, tool and artifact events only inside rag/tools
- chunk and done events only inside generating
- error and done are terminal; anything emitted afterwards is dropped

Closing the consumer (client disconnect) cancels the producer task, so
cancellation reaches whatever the pipeline is awaiting.

Dependencies: asyncio, workspace_chat.models.streaming
System role: Stream lifecycle, phase sequencing, heartbeat, cancellation
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from workspace_chat.core.exceptions import StreamPhaseError, StreamTimeoutError
from workspace_chat.core.request_config import StreamConfig
from workspace_chat.core.streaming.sse_encoder import KEEPALIVE_FRAME, encode_event, split_content
from workspace_chat.models.streaming import (
    PHASE_MESSAGES,
    PHASE_ORDER,
    TERMINAL_EVENTS,
    ArtifactEvent,
    ChunkEvent,
    DoneEvent,
    ErrorCode,
    ErrorEvent,
    SourcesEvent,
    StatusEvent,
    StreamEvent,
    StreamPhase,
    ToolEndEvent,
    ToolStartEvent,
)
from workspace_chat.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

Producer = Callable[["StreamSession"], Awaitable[None]]

_RETRIEVAL_PHASES = (StreamPhase.RAG, StreamPhase.TOOLS)


class StreamSession:
    """
    Single-producer, single-consumer event channel for one request.

    Usage:
        session = StreamSession(config.stream)
        return StreamingResponse(session.frames(pipeline), media_type="text/event-stream")
    """

    def __init__(self, config: StreamConfig) -> None:
        self._config = config
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._phase: StreamPhase | None = None
        self._terminal: StreamEvent | None = None

    @property
    def phase(self) -> StreamPhase | None:
        return self._phase

    @property
    def is_finished(self) -> bool:
        """True once a terminal event (done or error) has been emitted."""
        return self._terminal is not None

    async def emit(self, event: StreamEvent) -> bool:
        """
        Queue an event for the client.

        Args:
            event: Event to send

        Returns:
            bool: False when the stream already ended and the event was dropped

        Raises:
            StreamPhaseError: If the event breaks phase ordering
        """
        if self._terminal is not None:
            logger.debug(
                f"{__name__}:emit - Dropping {event.type} after terminal {self._terminal.type}"
            )
            return False
        self._check_order(event)
        if isinstance(event, TERMINAL_EVENTS):
            self._terminal = event
        await self._queue.put(event)
        return True

    def _check_order(self, event: StreamEvent) -> None:
        if isinstance(event, StatusEvent):
            if self._phase is not None and PHASE_ORDER.index(event.phase) < PHASE_ORDER.index(self._phase):
                raise StreamPhaseError(
                    f"Phase {event.phase.value} cannot follow {self._phase.value}"
                )
            self._phase = event.phase
        elif isinstance(event, (SourcesEvent, ToolStartEvent, ToolEndEvent, ArtifactEvent)):
            if self._phase not in _RETRIEVAL_PHASES:
                raise StreamPhaseError(f"{event.type} is only allowed during rag or tools")
        elif isinstance(event, (ChunkEvent, DoneEvent)):
            if self._phase != StreamPhase.GENERATING:
                raise StreamPhaseError(f"{event.type} is only allowed during generating")

    async def enter_phase(self, phase: StreamPhase) -> None:
        await self.emit(StatusEvent(phase=phase, content=PHASE_MESSAGES[phase]))

    async def warn(self, message: str) -> None:
        """Advisory status within the current phase. Not terminal."""
        if self._phase is None:
            raise StreamPhaseError("warn requires an active phase")
        await self.emit(StatusEvent(phase=self._phase, content=message, level="warning"))

    async def stream_content(self, content: str) -> None:
        """
        Emit content as ordered chunk events with a small delay between them.

        The concatenation of the emitted chunks equals ``content``.
        """
        pieces = split_content(content, self._config.chunk_size)
        for index, piece in enumerate(pieces):
            if index and self._config.chunk_delay_seconds:
                await asyncio.sleep(self._config.chunk_delay_seconds)
            await self.emit(ChunkEvent(content=piece))

    async def done(self, message_id: str, thread_id: str) -> None:
        await self.emit(DoneEvent(message_id=message_id, thread_id=thread_id))

    async def fail(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        await self.emit(ErrorEvent(code=code, message=message, recoverable=recoverable))

    async def _run_producer(self, producer: Producer) -> None:
        """Run the pipeline with the stream deadline; always close the channel."""
        limit = self._config.max_stream_duration_seconds
        try:
            await asyncio.wait_for(producer(self), timeout=limit)
        except asyncio.TimeoutError:
            error = StreamTimeoutError(limit)
            logger.warning(f"{__name__}:_run_producer - Stream exceeded {limit:g}s", extra=error.details)
            await self.fail(ErrorCode(error.code), error.message)
        except Exception as e:
            log_exception_with_context(
                logger, f"{__name__}:_run_producer - Unhandled pipeline error", e, phase=self._phase
            )
            await self.fail(ErrorCode.UNKNOWN_ERROR, "An unexpected error occurred")
        finally:
            self._queue.put_nowait(None)

    async def frames(self, producer: Producer) -> AsyncIterator[str]:
        """
        Run ``producer`` and yield SSE frames until the stream ends.

        A heartbeat frame is yielded every keepalive interval on a fixed
        schedule, regardless of phase or event traffic. Missed ticks are not
        replayed. If the consumer stops early, the producer task is cancelled
        and awaited before this generator finishes.

        Args:
            producer: Pipeline coroutine function receiving this session

        Yields:
            str: SSE frames
        """
        loop = asyncio.get_running_loop()
        task = asyncio.create_task(self._run_producer(producer))
        interval = self._config.keepalive_interval_seconds
        next_keepalive = loop.time() + interval
        try:
            while True:
                if loop.time() >= next_keepalive:
                    yield KEEPALIVE_FRAME
                    while next_keepalive <= loop.time():
                        next_keepalive += interval
                    continue
                try:
                    event = await asyncio.wait_for(
                        self._queue.get(), timeout=next_keepalive - loop.time()
                    )
                except asyncio.TimeoutError:
                    continue
                if event is None:
                    break
                yield encode_event(event)
                if isinstance(event, TERMINAL_EVENTS):
                    break
        finally:
            if not task.done():
                logger.info(f"{__name__}:frames - Consumer closed, cancelling pipeline")
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
