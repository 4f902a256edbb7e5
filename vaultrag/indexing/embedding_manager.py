"""
Embedding Manager - Coordinate chunks, stored vectors and the embedding service

Only chunks whose content changed since their vector was stored are sent to
the embedding service. Change detection uses a fast djb2 hash of the chunk
content; a stored vector with the same hash is reused as-is.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from vaultrag.indexing.chunk_registry import Chunk, ChunkRegistry, make_display_link
from vaultrag.indexing.vector_store import VectorStore
from vaultrag.llm.interface import EmbeddingService
from vaultrag.notifications import IndexingStage, NotifierInterface, NullNotifier, ProgressEvent
from vaultrag.retrieval.filters import NO_FILTER, SearchFilter
from vaultrag.retrieval.hybrid import hybrid_rerank
from vaultrag.retrieval.models import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_BATCH_DELAY = 0.1


def content_hash(text: str) -> str:
    """
    djb2 hash of text, as unpadded lowercase hex

    Computed over UTF-16 code units so hashes stored by earlier versions of
    the vector file stay valid.

    Examples:
        >>> content_hash("")
        '1505'
    """
    h = 5381
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h << 5) + h + unit) & 0xFFFFFFFF
    return format(h, "x")


@dataclass
class EmbeddingResult:
    """Counts of a bulk embedding run"""
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    def merge(self, other: "EmbeddingResult") -> "EmbeddingResult":
        return EmbeddingResult(
            processed=self.processed + other.processed,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            error=self.error or other.error,
        )

    def to_dict(self) -> Dict:
        return {
            'processed': self.processed,
            'skipped': self.skipped,
            'failed': self.failed,
            'error': self.error,
        }


class EmbeddingManager:
    """Embeds chunks in batches and answers similarity queries"""

    def __init__(
        self,
        chunk_registry: ChunkRegistry,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        notifier: Optional[NotifierInterface] = None,
    ):
        """
        Initialize embedding manager

        Args:
            chunk_registry: Source of current chunks
            vector_store: Stored vectors (reused when content is unchanged)
            embedding_service: Backend that turns text into vectors
            batch_size: Texts per embedding call
            batch_delay: Seconds to wait between batches (rate limiting)
            notifier: Progress notifier (default: silent)
        """
        self.chunk_registry = chunk_registry
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.notifier = notifier or NullNotifier()

    async def embed_chunks(self, chunks: Sequence[Chunk]) -> EmbeddingResult:
        """
        Embed every chunk whose stored vector is missing or stale

        Batches run strictly in order. A failing batch is counted as failed
        and the run moves on to the next batch. The store is saved once at
        the end.

        Returns:
            EmbeddingResult with processed/skipped/failed counts
        """
        result = EmbeddingResult()

        if not self.embedding_service.is_configured:
            result.error = "API key not set"
            return result

        if not chunks:
            return result

        pending: List[Tuple[Chunk, str]] = []
        for chunk in chunks:
            digest = content_hash(chunk.content)
            if self.vector_store.is_valid(chunk.id, digest):
                result.skipped += 1
            else:
                pending.append((chunk, digest))

        if not pending:
            logger.debug(f"All {result.skipped} chunks already embedded")
            return result

        total_batches = (len(pending) + self.batch_size - 1) // self.batch_size
        logger.info(f"Embedding {len(pending)} chunks in {total_batches} batches ({result.skipped} unchanged)")

        for batch_number, start in enumerate(range(0, len(pending), self.batch_size), 1):
            batch = pending[start:start + self.batch_size]
            self.notifier.notify(ProgressEvent(
                stage=IndexingStage.EMBEDDING,
                message="Embedding chunks",
                current=batch_number,
                total=total_batches,
            ))

            try:
                response = await self.embedding_service.embed_batch([chunk.content for chunk, _ in batch])
            except Exception as e:
                logger.error(f"Embedding batch {batch_number}/{total_batches} failed: {e}")
                result.failed += len(batch)
            else:
                if response.error:
                    logger.error(f"Embedding batch {batch_number}/{total_batches} error: {response.error}")
                    result.failed += len(batch)
                else:
                    for index, (chunk, digest) in enumerate(batch):
                        embedding = response.embeddings[index] if index < len(response.embeddings) else None
                        if not embedding:
                            result.failed += 1
                            continue
                        self.vector_store.upsert(
                            chunk.id,
                            embedding,
                            digest,
                            chunk.content,
                            chunk.document_path,
                            chunk.display_link,
                        )
                        result.processed += 1

            if start + self.batch_size < len(pending):
                await asyncio.sleep(self.batch_delay)

        self.notifier.notify(ProgressEvent(stage=IndexingStage.SAVING, message="Saving vectors"))
        self.vector_store.save()

        logger.info(f"Embedded {result.processed} chunks ({result.failed} failed, {result.skipped} skipped)")
        return result

    def _remove_stale(self, current_ids: set, stored_ids: Sequence[str]) -> int:
        stale = [chunk_id for chunk_id in stored_ids if chunk_id not in current_ids]
        return self.vector_store.delete_by_ids(stale)

    async def embed_document(self, path: str) -> EmbeddingResult:
        """
        Embed one document's current chunks

        Vectors of chunks that no longer exist (the document shrank) are
        removed first.
        """
        chunks = self.chunk_registry.get_chunks(path)
        removed = self._remove_stale({chunk.id for chunk in chunks}, self.vector_store.ids_for_document(path))
        if removed:
            logger.info(f"Removed {removed} stale vectors for {path}")

        result = await self.embed_chunks(chunks)
        if removed and self.vector_store.has_unsaved_changes():
            self.vector_store.save()
        return result

    async def embed_all(self) -> EmbeddingResult:
        """Remove vectors with no current chunk, then embed every outstanding chunk"""
        chunks = self.chunk_registry.get_all_chunks()
        removed = self._remove_stale({chunk.id for chunk in chunks}, self.vector_store.all_ids())
        if removed:
            logger.info(f"Removed {removed} stale vectors")

        result = await self.embed_chunks(chunks)
        if removed and self.vector_store.has_unsaved_changes():
            self.vector_store.save()
        return result

    async def delete_document_vectors(self, path: str) -> int:
        """Delete all vectors of a document; saves only if something was deleted"""
        deleted = self.vector_store.delete_by_document(path)
        if deleted:
            self.vector_store.save()
            logger.info(f"Deleted {deleted} vectors for {path}")
        return deleted

    async def rename_vectors(self, old_path: str, new_path: str) -> int:
        """
        Re-key a document's vectors under its new path

        Embeddings and content are kept; only ids, path and citation link
        change. No embedding call is made.

        Returns:
            Number of vectors moved
        """
        if old_path == new_path:
            return 0

        old_ids = self.vector_store.ids_for_document(old_path)
        if not old_ids:
            return 0

        display_link = make_display_link(new_path)
        prefix_length = len(old_path) + 2

        moved = 0
        for old_id in old_ids:
            stored = self.vector_store.get(old_id)
            if stored is None:
                continue
            ordinal = old_id[prefix_length:]
            self.vector_store.upsert(
                f"{new_path}::{ordinal}",
                stored.embedding,
                stored.content_hash,
                stored.content,
                new_path,
                display_link,
            )
            moved += 1

        self.vector_store.delete_by_ids(old_ids)
        self.vector_store.save()

        logger.info(f"Renamed {moved} vectors from {old_path} to {new_path}")
        return moved

    async def get_query_embedding(self, text: str) -> Optional[List[float]]:
        """Embed a query; None when the service is unavailable or fails"""
        if not self.embedding_service.is_configured:
            logger.error("Cannot embed query: API key not set")
            return None

        try:
            response = await self.embedding_service.embed_batch([text])
        except Exception as e:
            logger.error(f"Failed to get query embedding: {e}")
            return None

        if response.error or not response.embeddings:
            logger.error(f"Failed to get query embedding: {response.error}")
            return None
        return response.embeddings[0]

    async def vector_search(
        self,
        query: str,
        limit: int = 5,
        search_filter: SearchFilter = NO_FILTER,
    ) -> List[SearchResult]:
        """Pure cosine-similarity search (no rerank)"""
        query_embedding = await self.get_query_embedding(query)
        if query_embedding is None:
            return []
        return self.vector_store.search(query_embedding, limit, search_filter)

    async def search(
        self,
        query: str,
        limit: int = 15,
        pool_size: int = 50,
        search_filter: SearchFilter = NO_FILTER,
    ) -> List[SearchResult]:
        """
        Hybrid search: vector candidates reranked with keyword overlap

        Args:
            query: Search text
            limit: Results to return
            pool_size: Vector candidates to rerank (raised to limit if smaller)
            search_filter: NO_FILTER or a ScopeFilter

        Returns:
            Up to `limit` results ordered by blended score
        """
        candidates = await self.vector_search(query, max(pool_size, limit), search_filter)
        return hybrid_rerank(query, candidates, limit)

    def find_chunk(self, chunk_id: str) -> Optional[Chunk]:
        """Map a result back to the live chunk it came from"""
        path = chunk_id.rpartition("::")[0]
        for chunk in self.chunk_registry.get_chunks(path):
            if chunk.id == chunk_id:
                return chunk
        return None

    def get_stats(self) -> Dict:
        """Get embedding statistics"""
        return {
            'vector_count': self.vector_store.count(),
            'chunk_count': self.chunk_registry.total_chunk_count(),
            'batch_size': self.batch_size,
            'batch_delay': self.batch_delay,
        }
