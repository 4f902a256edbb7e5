"""
Vault RAG - Local-first retrieval-augmented chat over a notes vault

A Retrieval-Augmented Generation (RAG) pipeline with:
- Secret/PII redaction before anything is chunked or embedded
- Recursive chunking with overlap
- Content-hash reuse of stored embeddings
- Hybrid search (vector similarity + keyword overlap)
- File, folder and tag scoped questions with [[Note]] citations

License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__license__ = "MIT"

from vaultrag.indexing.indexer import VaultIndexer
from vaultrag.chat.rag_engine import RAGEngine

__all__ = [
    "VaultIndexer",
    "RAGEngine",
]
