"""
Vector database boundary.

Exports:
  - VectorRetriever: Protocol for category-scoped nearest-neighbor lookup
  - FAISSCategoryRetriever: One local FAISS index per category
"""

from workspace_chat.boundary.vdb.faiss_retriever import FAISSCategoryRetriever, VectorRetriever

__all__ = ["VectorRetriever", "FAISSCategoryRetriever"]
