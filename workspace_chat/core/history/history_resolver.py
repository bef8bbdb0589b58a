"""
Conversation history resolver.

Produces the bounded prior-conversation view for a chat turn. Embed
sessions get a raw window; standalone threads get the raw tail and, once
the thread's token estimate passes the threshold, a summary of everything
older.

Summarization flow:
    1. Generate the summary outside the writer lock (slow model call)
    2. In one write transaction: store summary, archive originals,
       delete them from active messages, reset the thread token estimate

Dependencies: langchain_core.messages, workspace_chat.boundary.db
System role: Prior-conversation context for each chat turn
"""

import logging
from typing import Sequence
from uuid import UUID

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.connection import DatabaseWriter
from workspace_chat.boundary.db.CRUD.message_crud import message_crud
from workspace_chat.boundary.db.CRUD.summary_crud import archived_message_crud, summary_crud
from workspace_chat.boundary.db.CRUD.thread_crud import thread_crud
from workspace_chat.boundary.db.models.message_model import MessageModel
from workspace_chat.core.exceptions import SummarizationError
from workspace_chat.core.history.summarizer import ConversationSummarizer
from workspace_chat.core.history.token_counter import count_message_tokens, count_tokens
from workspace_chat.core.request_config import HistoryConfig

logger = logging.getLogger(__name__)

MIN_MESSAGES_TO_SUMMARIZE = 2


def to_langchain_messages(rows: Sequence[MessageModel]) -> list[BaseMessage]:
    """Persisted rows as langchain messages, oldest first."""
    messages: list[BaseMessage] = []
    for row in rows:
        if row.role == "user":
            messages.append(HumanMessage(content=row.content))
        elif row.role == "assistant":
            messages.append(AIMessage(content=row.content))
    return messages


class ConversationView(BaseModel):
    """
    Prior conversation for one turn.

    Attributes:
        messages: Raw messages, oldest first
        summary: Summary of older messages, None when not summarized
        summarized_now: Whether this call produced a new summary
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[MessageModel] = Field(default_factory=list)
    summary: str | None = None
    summarized_now: bool = False

    def to_langchain(self) -> list[BaseMessage]:
        return to_langchain_messages(self.messages)


class HistoryResolver:
    """Resolves and, when needed, compacts conversation history."""

    def __init__(self, summarizer: ConversationSummarizer, writer: DatabaseWriter) -> None:
        """
        Initialize resolver.

        Args:
            summarizer: Summary generator
            writer: Single-writer guard for the summarization transaction
        """
        self._summarizer = summarizer
        self._writer = writer

    async def resolve(
        self,
        db: AsyncSession,
        session_id: UUID,
        thread_id: UUID | None,
        config: HistoryConfig,
        exclude_latest: bool = False,
    ) -> ConversationView:
        """
        Build the history view for a session or thread.

        Args:
            db: Async database session
            session_id: Owning session
            thread_id: Thread in standalone mode, None in embed mode
            config: History window and summarization settings
            exclude_latest: Drop the newest message (the just-persisted user turn)

        Returns:
            ConversationView
        """
        if thread_id is None:
            messages = await self._window(db, config.history_limit, session_id=session_id, exclude_latest=exclude_latest)
            return ConversationView(messages=messages)

        thread = await thread_crud.get_by_id(db, thread_id)
        if thread is None:
            return ConversationView()

        summarized_now = False
        if config.summarization_enabled and thread.total_tokens > config.token_threshold:
            try:
                summarized_now = await self.summarize_thread(db, thread_id, config)
            except SummarizationError as e:
                logger.warning(
                    f"{__name__}:resolve - Summarization failed, using raw window",
                    extra={"thread_id": str(thread_id), "error": e.message},
                )

        latest_summary = await summary_crud.get_latest(db, thread_id)
        if latest_summary is None:
            messages = await self._window(db, config.history_limit, thread_id=thread_id, exclude_latest=exclude_latest)
            return ConversationView(messages=messages, summarized_now=summarized_now)

        tail_limit = max(config.history_limit, config.keep_recent_messages)
        messages = await self._window(db, tail_limit, thread_id=thread_id, exclude_latest=exclude_latest)
        return ConversationView(
            messages=messages,
            summary=latest_summary.summary,
            summarized_now=summarized_now,
        )

    async def summarize_thread(
        self,
        db: AsyncSession,
        thread_id: UUID,
        config: HistoryConfig,
    ) -> bool:
        """
        Summarize every active message except the most recent ones.

        Args:
            db: Async database session
            thread_id: Thread to compact
            config: keep_recent_messages, summary_max_tokens, archive flag

        Returns:
            bool: True if a summary was stored

        Raises:
            SummarizationError: If summary generation fails
        """
        active = list(await message_crud.get_for_thread(db, thread_id))
        to_summarize = active[: max(len(active) - config.keep_recent_messages, 0)]
        if len(to_summarize) < MIN_MESSAGES_TO_SUMMARIZE:
            logger.info(
                f"{__name__}:summarize_thread - Nothing to summarize",
                extra={"thread_id": str(thread_id), "active": len(active)},
            )
            return False

        previous = await summary_crud.get_latest(db, thread_id)
        thread = await thread_crud.get_by_id(db, thread_id)
        tokens_before = thread.total_tokens if thread is not None else 0

        logger.info(
            f"{__name__}:summarize_thread - START thread={thread_id}, messages={len(to_summarize)}, "
            f"tokens_before={tokens_before}"
        )
        summary_text = await self._summarizer.summarize(
            [(m.role, m.content) for m in to_summarize],
            previous.summary if previous is not None else None,
            config.summary_max_tokens,
        )

        retained = active[len(to_summarize):]
        tokens_after = count_tokens(summary_text) + sum(count_message_tokens(m.content) for m in retained)
        ids = [m.id for m in to_summarize]

        async with self._writer.transaction(db):
            # A concurrent turn may have compacted the same messages while
            # the summary was being generated.
            stmt = select(MessageModel.id).where(MessageModel.id.in_(ids))
            still_active = set((await db.execute(stmt)).scalars().all())
            if len(still_active) != len(ids):
                logger.info(f"{__name__}:summarize_thread - Messages already summarized, skipping")
                return False

            summary = await summary_crud.create(
                db,
                thread_id=thread_id,
                summary=summary_text,
                messages_summarized=len(to_summarize),
                tokens_before=tokens_before,
                tokens_after=tokens_after,
            )
            if config.archive_original_messages:
                await archived_message_crud.archive(db, to_summarize, thread_id, summary.id)
            await message_crud.delete_many(db, ids)
            await thread_crud.mark_summarized(db, thread_id, tokens_after)

        logger.info(
            f"{__name__}:summarize_thread - END thread={thread_id}, tokens_after={tokens_after}"
        )
        return True

    async def get_archived_messages(self, db: AsyncSession, thread_id: UUID) -> Sequence:
        """Archived messages of a thread in original conversation order."""
        return await archived_message_crud.get_for_thread(db, thread_id)

    async def _window(
        self,
        db: AsyncSession,
        limit: int,
        session_id: UUID | None = None,
        thread_id: UUID | None = None,
        exclude_latest: bool = False,
    ) -> list[MessageModel]:
        fetch = limit + 1 if exclude_latest else limit
        messages = await message_crud.get_recent(db, fetch, session_id=session_id, thread_id=thread_id)
        if exclude_latest and messages:
            messages = messages[:-1]
        return messages[-limit:] if limit > 0 else []
