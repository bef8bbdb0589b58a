"""
Retrieval-augmented context assembly.
"""

from workspace_chat.core.rag.rag_assembler import RAGAssembler

__all__ = ["RAGAssembler"]
