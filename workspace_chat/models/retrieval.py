"""
Retrieval schemas for the RAG assembler.

Dependencies: pydantic
System role: Retrieval data transfer objects
"""

from pydantic import BaseModel, Field

from workspace_chat.models.source import Source


class RetrievedChunk(BaseModel):
    """
    A scored chunk returned by the vector retriever.

    Attributes:
        chunk_id: Unique chunk identifier within the category index
        document_id: Parent document identifier
        chunk_index: Position of the chunk within its document
        document_name: Document display name
        page_number: Page the chunk came from (0 when unknown)
        text: Chunk text
        score: Similarity score (higher is closer)
    """

    chunk_id: str
    document_id: str = ""
    chunk_index: int = 0
    document_name: str
    page_number: int = 0
    text: str
    score: float


class DocumentExcerpt(BaseModel):
    """Excerpt of a document the user uploaded into the conversation."""

    document_name: str
    text: str
    page_number: int = 0


class AuxiliaryContext(BaseModel):
    """Request-specific context that is never cached."""

    document_excerpts: list[DocumentExcerpt] = Field(default_factory=list)
    memory: str | None = None
    summary: str | None = None


class RetrievalResult(BaseModel):
    """
    Assembled retrieval output.

    Attributes:
        chunks: Final ordered chunk list
        context: Context string for the model, in chunk order
        sources: Citations in chunk order
        category_ids: Categories that were searched
        cache_hit: Whether the knowledge-base part came from the cache
        warnings: Non-fatal degradation notices
        system_context: Memory and summary text for the system prompt
    """

    chunks: list[RetrievedChunk] = Field(default_factory=list)
    context: str
    sources: list[Source] = Field(default_factory=list)
    category_ids: list[str] = Field(default_factory=list)
    cache_hit: bool = False
    warnings: list[str] = Field(default_factory=list)
    system_context: str = ""
