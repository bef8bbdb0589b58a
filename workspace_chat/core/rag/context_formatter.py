"""
Context and citation formatting for retrieved chunks.

Dependencies: workspace_chat.models
System role: Turns ranked chunks into model context and client citations
"""

from workspace_chat.models.retrieval import DocumentExcerpt, RetrievedChunk
from workspace_chat.models.source import Source

KB_HEADER = "=== KNOWLEDGE BASE DOCUMENTS ==="
USER_DOCUMENT_HEADER = "=== USER UPLOADED DOCUMENT ==="
NO_RESULTS_CONTEXT = "No relevant documents found in the knowledge base."
CHUNK_SEPARATOR = "\n\n---\n\n"


def format_knowledge_base_context(chunks: list[RetrievedChunk]) -> str:
    """Concatenate chunk texts in their final order under the KB header."""
    if not chunks:
        return NO_RESULTS_CONTEXT
    parts = [
        f"[Source: {chunk.document_name}, Page {chunk.page_number}]\n{chunk.text}"
        for chunk in chunks
    ]
    return f"{KB_HEADER}\n\n" + CHUNK_SEPARATOR.join(parts)


def format_user_documents(excerpts: list[DocumentExcerpt]) -> str:
    parts = [
        f"[Document: {excerpt.document_name}, Page {excerpt.page_number}]\n{excerpt.text}"
        for excerpt in excerpts
    ]
    return f"{USER_DOCUMENT_HEADER}\n\n" + CHUNK_SEPARATOR.join(parts)


def build_sources(chunks: list[RetrievedChunk], preview_length: int = 200) -> list[Source]:
    """One citation per chunk, same order, chunk text cut to a preview."""
    sources = []
    for chunk in chunks:
        preview = chunk.text
        if len(preview) > preview_length:
            preview = preview[:preview_length] + "..."
        sources.append(
            Source(
                document_name=chunk.document_name,
                page_number=chunk.page_number,
                chunk_text=preview,
                score=chunk.score,
            )
        )
    return sources


def format_system_context(memory: str | None, summary: str | None) -> str:
    """Memory and conversation summary sections appended to the system prompt."""
    sections = []
    if memory:
        sections.append(f"## What you remember about this user\n{memory.strip()}")
    if summary:
        sections.append(
            "## Previous Conversation Summary\n"
            "The following is a summary of earlier parts of this conversation:\n\n"
            f"{summary.strip()}\n\n"
            "Use this context to maintain continuity with the earlier discussion."
        )
    return "\n\n".join(sections)
