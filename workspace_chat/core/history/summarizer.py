"""
Conversation summarizer.

Condenses older thread messages (and any earlier summary) into a single
summary with the chat model.

Dependencies: langchain_core.messages, workspace_chat.boundary.llm
System role: Summary generation for long threads
"""

import asyncio
import logging
from typing import Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from workspace_chat.boundary.llm.providers import ChatCompletionProvider
from workspace_chat.core.agentic_system.tool_orchestrator import message_text
from workspace_chat.core.exceptions import LLMError, SummarizationError

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You summarize conversations so they can continue without the full transcript.

Write a concise summary (at most about {max_words} words) that keeps:
- the user's goals and questions
- facts, decisions, and answers already given
- documents, names, and numbers that were referenced
- open questions or pending follow-ups

Write in third person. Do not invent details."""


class ConversationSummarizer:
    """Summarizes (role, content) transcripts with a chat model."""

    def __init__(self, provider: ChatCompletionProvider) -> None:
        self._provider = provider

    async def summarize(
        self,
        transcript: Sequence[tuple[str, str]],
        previous_summary: str | None,
        max_tokens: int,
    ) -> str:
        """
        Produce a summary of the transcript.

        Args:
            transcript: (role, content) pairs, oldest first
            previous_summary: Summary of even older messages, folded in
            max_tokens: Target summary length

        Returns:
            str: Summary text

        Raises:
            SummarizationError: If the model fails or returns nothing
        """
        lines = []
        if previous_summary:
            lines.append(f"Earlier summary:\n{previous_summary}\n")
        for role, content in transcript:
            speaker = "User" if role == "user" else "Assistant"
            lines.append(f"{speaker}: {content}")

        messages = [
            SystemMessage(content=SUMMARY_SYSTEM_PROMPT.format(max_words=int(max_tokens * 0.75))),
            HumanMessage(content="Summarize this conversation:\n\n" + "\n\n".join(lines)),
        ]
        try:
            response = await self._provider.complete(messages)
        except asyncio.CancelledError:
            raise
        except LLMError as e:
            raise SummarizationError(f"Summary generation failed: {e.message}") from e

        summary = message_text(response).strip()
        if not summary:
            raise SummarizationError("Summary generation returned no text")
        logger.info(
            f"{__name__}:summarize - Summarized {len(transcript)} messages into {len(summary)} chars"
        )
        return summary
