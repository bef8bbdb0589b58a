"""
Category-scoped FAISS vector retriever.

Each knowledge-base category has its own FAISS index directory under the
configured persist root. Indexes are built by the ingestion pipeline and
loaded lazily here on first query.

Dependencies: langchain_community.vectorstores, langchain_core, fastapi.concurrency
System role: Vector retrieval backend for the RAG assembler
"""

import logging
import shutil
from pathlib import Path
from typing import Protocol

from fastapi.concurrency import run_in_threadpool
from langchain_community.vectorstores import FAISS
from langchain_community.vectorstores.utils import DistanceStrategy
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from workspace_chat.core.exceptions import VectorStoreError
from workspace_chat.models.retrieval import RetrievedChunk

logger = logging.getLogger(__name__)


class VectorRetriever(Protocol):
    """Nearest-neighbor lookup scoped to one category."""

    async def query(
        self,
        category_id: str,
        vector: list[float],
        top_k: int,
    ) -> list[RetrievedChunk]: ...

    async def delete_collection(self, category_id: str) -> None: ...


class FAISSCategoryRetriever:
    """
    Local FAISS retriever with one index per category.

    Categories without an index on disk return no chunks. Any FAISS or
    filesystem failure is raised as VectorStoreError so the assembler can
    degrade.
    """

    def __init__(self, persist_directory: str, embeddings: Embeddings) -> None:
        """
        Initialize retriever.

        Args:
            persist_directory: Root holding ``{category_id}/index.faiss``
            embeddings: Embeddings bound to loaded indexes (FAISS requires one)
        """
        self._root = Path(persist_directory)
        self._embeddings = embeddings
        self._indexes: dict[str, FAISS] = {}

    def _category_path(self, category_id: str) -> Path:
        path = (self._root / category_id).resolve()
        if self._root.resolve() not in path.parents:
            raise VectorStoreError(f"Invalid category id: {category_id}", operation="query")
        return path

    def _load(self, category_id: str) -> FAISS | None:
        if category_id in self._indexes:
            return self._indexes[category_id]
        path = self._category_path(category_id)
        if not (path / "index.faiss").exists():
            logger.debug(f"{__name__}:_load - No index for category {category_id}")
            return None
        index = FAISS.load_local(
            str(path),
            self._embeddings,
            allow_dangerous_deserialization=True,
        )
        self._indexes[category_id] = index
        return index

    def _search(self, category_id: str, vector: list[float], top_k: int) -> list[RetrievedChunk]:
        index = self._load(category_id)
        if index is None:
            return []
        results = index.similarity_search_with_score_by_vector(vector, k=top_k)
        return [self._to_chunk(doc, raw, index.distance_strategy) for doc, raw in results]

    @staticmethod
    def _to_chunk(doc: Document, raw: float, strategy: DistanceStrategy) -> RetrievedChunk:
        metadata = doc.metadata
        # Inner-product indexes return similarity; L2 indexes return distance.
        score = float(raw) if strategy == DistanceStrategy.MAX_INNER_PRODUCT else 1.0 - float(raw)
        document_name = metadata.get("document_name") or metadata.get("source") or "Unknown"
        return RetrievedChunk(
            chunk_id=str(metadata.get("chunk_id") or doc.id or ""),
            document_id=str(metadata.get("document_id") or metadata.get("doc_id") or document_name),
            chunk_index=int(metadata.get("chunk_index", 0) or 0),
            document_name=str(document_name),
            page_number=int(metadata.get("page_number", metadata.get("page", 0)) or 0),
            text=doc.page_content,
            score=score,
        )

    async def query(
        self,
        category_id: str,
        vector: list[float],
        top_k: int,
    ) -> list[RetrievedChunk]:
        """
        Search one category's index.

        Args:
            category_id: Category whose index is searched
            vector: Query embedding
            top_k: Maximum chunks to return

        Returns:
            Chunks with similarity scores, closest first

        Raises:
            VectorStoreError: If the index cannot be loaded or searched
        """
        try:
            return await run_in_threadpool(self._search, category_id, vector, top_k)
        except VectorStoreError:
            raise
        except Exception as e:
            logger.error(f"{__name__}:query - FAILED category={category_id}: {type(e).__name__}: {e}")
            raise VectorStoreError(str(e), operation="query", details={"category_id": category_id}) from e

    async def delete_collection(self, category_id: str) -> None:
        """
        Drop a category's index from memory and disk.

        Raises:
            VectorStoreError: If the directory cannot be removed
        """
        self._indexes.pop(category_id, None)
        path = self._category_path(category_id)
        try:
            await run_in_threadpool(shutil.rmtree, path, True)
        except Exception as e:
            raise VectorStoreError(str(e), operation="delete_collection") from e
        logger.info(f"{__name__}:delete_collection - Removed index for category {category_id}")
