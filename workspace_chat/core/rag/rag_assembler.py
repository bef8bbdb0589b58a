"""
RAG assembler.

Combines query expansion, category-scoped vector retrieval, the query
cache, and auxiliary conversation context into a bounded context string
plus an ordered source list.

Retrieval is deterministic: chunks are ordered by descending score with
ties broken by (document id, chunk index). A vector store or embedding
outage degrades to an empty context with a warning instead of failing
the request.

Dependencies: langchain_core.embeddings, workspace_chat.boundary
System role: Knowledge-base context assembly for each chat turn
"""

import asyncio
import hashlib
import json
import logging
import re
from typing import Iterable

from langchain_core.embeddings import Embeddings

from workspace_chat.boundary.cache.query_cache import QueryCache
from workspace_chat.boundary.vdb.faiss_retriever import VectorRetriever
from workspace_chat.core.exceptions import EmbeddingError, VectorStoreError
from workspace_chat.core.rag.context_formatter import (
    build_sources,
    format_knowledge_base_context,
    format_system_context,
    format_user_documents,
)
from workspace_chat.core.rag.query_expansion import expand_query
from workspace_chat.core.request_config import RAGConfig
from workspace_chat.models.retrieval import AuxiliaryContext, RetrievalResult, RetrievedChunk

logger = logging.getLogger(__name__)

CACHE_PREFIX = "rag:"

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    return _WHITESPACE.sub(" ", query.strip().lower())


def retrieval_cache_key(query: str, category_ids: Iterable[str], version: str) -> str:
    """
    Cache key for a knowledge-base retrieval.

    Args:
        query: Raw user query
        category_ids: Categories searched (order does not matter)
        version: Retrieval settings fingerprint

    Returns:
        str: ``rag:`` followed by a sha256 hex digest
    """
    payload = json.dumps(
        {
            "query": normalize_query(query),
            "categories": sorted(set(category_ids)),
            "version": version,
        },
        sort_keys=True,
    )
    return CACHE_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def rank_chunks(chunks: Iterable[RetrievedChunk], threshold: float, limit: int) -> list[RetrievedChunk]:
    """
    Filter, dedupe, order, and truncate retrieved chunks.

    Duplicates (same chunk seen through several query variants) keep their
    best score.

    Args:
        chunks: Raw retriever output from every category and variant
        threshold: Minimum similarity score, inclusive
        limit: Maximum chunks kept

    Returns:
        Final ordered chunk list
    """
    best: dict[tuple[str, ...], RetrievedChunk] = {}
    for chunk in chunks:
        if chunk.score < threshold:
            continue
        key = (chunk.chunk_id,) if chunk.chunk_id else (chunk.document_id, str(chunk.chunk_index))
        current = best.get(key)
        if current is None or chunk.score > current.score:
            best[key] = chunk
    ordered = sorted(
        best.values(),
        key=lambda c: (-c.score, c.document_id, c.chunk_index, c.chunk_id),
    )
    return ordered[:limit]


class RAGAssembler:
    """
    Retrieval-augmented context assembler.

    Stateless apart from its collaborators; one instance is shared by all
    requests and configuration arrives per call.
    """

    def __init__(
        self,
        retriever: VectorRetriever,
        embeddings: Embeddings,
        cache: QueryCache,
    ) -> None:
        """
        Initialize assembler.

        Args:
            retriever: Category-scoped vector retriever
            embeddings: Query embedding provider
            cache: Query cache
        """
        self._retriever = retriever
        self._embeddings = embeddings
        self._cache = cache

    async def assemble(
        self,
        query: str,
        category_ids: Iterable[str],
        config: RAGConfig,
        auxiliary: AuxiliaryContext | None = None,
    ) -> RetrievalResult:
        """
        Build the retrieval result for one chat turn.

        Args:
            query: User message
            category_ids: Categories to search
            config: Per-request retrieval configuration
            auxiliary: Request-specific context (never cached)

        Returns:
            RetrievalResult with context, ordered sources, and warnings
        """
        categories = sorted(set(category_ids))
        logger.info(
            f"{__name__}:assemble - START query_len={len(query)}, categories={len(categories)}"
        )

        result = await self._retrieve_knowledge_base(query, categories, config)
        if auxiliary is not None:
            result = self._apply_auxiliary(result, auxiliary)

        logger.info(
            f"{__name__}:assemble - END chunks={len(result.chunks)}, cache_hit={result.cache_hit}, "
            f"warnings={len(result.warnings)}"
        )
        return result

    async def invalidate(self) -> int:
        """
        Drop every cached retrieval.

        Returns:
            int: Number of entries removed (0 when the backend cannot tell)
        """
        deleted = await self._cache.invalidate(CACHE_PREFIX)
        logger.info(f"{__name__}:invalidate - Removed {deleted} cached retrievals")
        return deleted

    async def _retrieve_knowledge_base(
        self,
        query: str,
        categories: list[str],
        config: RAGConfig,
    ) -> RetrievalResult:
        if not categories:
            return RetrievalResult(
                context=format_knowledge_base_context([]),
                category_ids=categories,
            )

        cache_key = retrieval_cache_key(query, categories, config.version)
        if config.cache_enabled:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                logger.info(f"{__name__}:_retrieve_knowledge_base - Cache hit")
                return RetrievalResult.model_validate_json(cached).model_copy(
                    update={"cache_hit": True}
                )

        variants = (
            expand_query(query, config.acronym_mappings, config.max_query_expansions)
            if config.query_expansion_enabled
            else [query]
        )

        try:
            vectors = await self._embed(variants)
        except EmbeddingError as e:
            logger.warning(
                f"{__name__}:_retrieve_knowledge_base - Embedding unavailable, continuing without context",
                extra={"error": str(e)},
            )
            return RetrievalResult(
                context="",
                category_ids=categories,
                warnings=["Knowledge base search is temporarily unavailable."],
            )

        raw_chunks, failed = await self._search(categories, vectors, config.top_k)
        chunks = rank_chunks(raw_chunks, config.similarity_threshold, config.max_context_chunks)

        warnings: list[str] = []
        if failed:
            warnings.append(
                "Knowledge base search is temporarily unavailable."
                if len(failed) == len(categories)
                else "Some knowledge base categories could not be searched."
            )

        result = RetrievalResult(
            chunks=chunks,
            context="" if len(failed) == len(categories) else format_knowledge_base_context(chunks),
            sources=build_sources(chunks, config.chunk_preview_length),
            category_ids=categories,
            warnings=warnings,
        )

        if config.cache_enabled and not warnings:
            await self._cache.set(cache_key, result.model_dump_json(), config.cache_ttl_seconds)
        return result

    async def _embed(self, variants: list[str]) -> list[list[float]]:
        try:
            return list(
                await asyncio.gather(*(self._embeddings.aembed_query(v) for v in variants))
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Query embedding failed: {e}") from e

    async def _search(
        self,
        categories: list[str],
        vectors: list[list[float]],
        top_k: int,
    ) -> tuple[list[RetrievedChunk], set[str]]:
        """Query every (category, variant) pair; collect chunks and failed categories."""
        pairs = [(category, vector) for category in categories for vector in vectors]
        results = await asyncio.gather(
            *(self._retriever.query(category, vector, top_k) for category, vector in pairs),
            return_exceptions=True,
        )

        chunks: list[RetrievedChunk] = []
        failed: set[str] = set()
        for (category, _), outcome in zip(pairs, results):
            if isinstance(outcome, VectorStoreError):
                logger.warning(
                    f"{__name__}:_search - Vector store unavailable for category {category}",
                    extra={"category_id": category, "error": str(outcome)},
                )
                failed.add(category)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                chunks.extend(outcome)
        return chunks, failed

    @staticmethod
    def _apply_auxiliary(result: RetrievalResult, auxiliary: AuxiliaryContext) -> RetrievalResult:
        context = result.context
        if auxiliary.document_excerpts:
            documents = format_user_documents(auxiliary.document_excerpts)
            context = f"{context}\n\n{documents}" if context else documents
        return result.model_copy(
            update={
                "context": context,
                "system_context": format_system_context(auxiliary.memory, auxiliary.summary),
            }
        )
