"""
Vault RAG Indexing Module

Handles redaction, chunking, embedding and vector storage.

Security Layers:
- Redactor: secret/PII scrubbing before chunking (nothing unredacted is embedded)
"""

from vaultrag.indexing.text_splitter import RecursiveTextSplitter
from vaultrag.indexing.redactor import Redactor, RedactionResult
from vaultrag.indexing.chunk_registry import Chunk, ChunkRegistry
from vaultrag.indexing.storage import JsonFileBlobStore, MemoryBlobStore
from vaultrag.indexing.vector_store import StoredVector, VectorStore, cosine_similarity
from vaultrag.indexing.embedding_manager import EmbeddingManager, EmbeddingResult, content_hash

__all__ = [
    "RecursiveTextSplitter",
    "Redactor",
    "RedactionResult",
    "Chunk",
    "ChunkRegistry",
    "JsonFileBlobStore",
    "MemoryBlobStore",
    "StoredVector",
    "VectorStore",
    "cosine_similarity",
    "EmbeddingManager",
    "EmbeddingResult",
    "content_hash",
]
