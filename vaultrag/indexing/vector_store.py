"""
Vector Store - Persistent chunk embeddings with cosine-similarity search

Keyed by chunk id ("<documentPath>::<ordinal>"). Each record carries the
content hash it was embedded from, plus the chunk's content, path and
citation link so that search results are self-contained.

Persisted container (version 1):
    {"version": 1, "vectors": {chunkId: {"vector": [...], "contentHash": "...",
     "content": "...", "filePath": "...", "fileLink": "..."}}}

Any other version, or an unreadable file, loads as an empty store.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from vaultrag.indexing.storage import BlobStore
from vaultrag.retrieval.filters import NO_FILTER, FilterMatcher, SearchFilter, path_in_folder
from vaultrag.retrieval.models import SearchResult
from vaultrag.vault.interface import MetadataSource

logger = logging.getLogger(__name__)

VECTOR_STORE_VERSION = 1


@dataclass
class StoredVector:
    """Persisted embedding record"""
    embedding: List[float]
    content_hash: str
    content: Optional[str] = None
    document_path: Optional[str] = None
    display_link: Optional[str] = None

    @property
    def is_legacy(self) -> bool:
        """Records written without content metadata cannot be searched"""
        return self.content is None or self.document_path is None

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "vector": self.embedding,
            "contentHash": self.content_hash,
        }
        if self.content is not None:
            record["content"] = self.content
        if self.document_path is not None:
            record["filePath"] = self.document_path
        if self.display_link is not None:
            record["fileLink"] = self.display_link
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> Optional["StoredVector"]:
        """Parse a persisted record; None if it lacks a vector or hash"""
        if not isinstance(record, dict):
            return None
        vector = record.get("vector")
        content_hash = record.get("contentHash")
        if not isinstance(vector, list) or not isinstance(content_hash, str):
            return None
        return cls(
            embedding=vector,
            content_hash=content_hash,
            content=record.get("content"),
            document_path=record.get("filePath"),
            display_link=record.get("fileLink"),
        )


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors

    Returns 0.0 (never raises) when lengths differ or either norm is zero.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    vec1 = np.asarray(a, dtype=float)
    vec2 = np.asarray(b, dtype=float)
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.dot(vec1, vec2) / (norm1 * norm2))


class VectorStore:
    """Manage stored embeddings and similarity search"""

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_source: Optional[MetadataSource] = None,
        excluded_folders: Iterable[str] = (),
    ):
        """
        Initialize vector store

        Args:
            blob_store: Persistence backend (load/save of the versioned container)
            metadata_source: Tag lookups for tag filters (optional)
            excluded_folders: Folders whose documents are never returned by search
        """
        self.blob_store = blob_store
        self.metadata_source = metadata_source
        self.excluded_folders = list(excluded_folders)
        self._vectors: Dict[str, StoredVector] = {}
        self._dirty = False

    # Persistence

    def load(self) -> int:
        """
        Load vectors from the blob store

        Returns:
            Number of vectors loaded (0 on absent, corrupt or mismatched data)
        """
        self._vectors = {}
        self._dirty = False

        try:
            data = self.blob_store.load()
        except Exception as e:
            logger.warning(f"Failed to load vector store, starting empty: {e}")
            return 0

        if data is None:
            logger.info("No stored vectors found, starting empty")
            return 0

        version = data.get("version") if isinstance(data, dict) else None
        # bool is an int subclass and 1.0 == 1; only the integer itself is accepted
        if type(version) is not int or version != VECTOR_STORE_VERSION:
            logger.warning(f"Ignoring vector store with unsupported version {version!r}")
            return 0

        raw_vectors = data.get("vectors")
        if not isinstance(raw_vectors, dict):
            logger.warning("Ignoring vector store without a 'vectors' mapping")
            return 0

        dropped = 0
        for chunk_id, record in raw_vectors.items():
            stored = StoredVector.from_dict(record)
            if stored is None:
                dropped += 1
                continue
            self._vectors[chunk_id] = stored

        if dropped:
            logger.warning(f"Dropped {dropped} malformed vector records")
        logger.info(f"Loaded {len(self._vectors)} vectors from storage")
        return len(self._vectors)

    def save(self) -> bool:
        """
        Persist the store if it has unsaved changes

        Returns:
            True if a write happened
        """
        if not self._dirty:
            return False

        container = {
            "version": VECTOR_STORE_VERSION,
            "vectors": {chunk_id: stored.to_dict() for chunk_id, stored in self._vectors.items()},
        }

        try:
            self.blob_store.save(container)
        except Exception as e:
            logger.error(f"Failed to save vector store: {e}")
            return False

        self._dirty = False
        logger.info(f"Saved {len(self._vectors)} vectors to storage")
        return True

    def has_unsaved_changes(self) -> bool:
        return self._dirty

    # Records

    def get(self, chunk_id: str) -> Optional[StoredVector]:
        return self._vectors.get(chunk_id)

    def is_valid(self, chunk_id: str, content_hash: str) -> bool:
        """True if a vector exists for chunk_id and was embedded from the same content"""
        stored = self._vectors.get(chunk_id)
        return stored is not None and stored.content_hash == content_hash

    def upsert(
        self,
        chunk_id: str,
        embedding: Sequence[float],
        content_hash: str,
        content: str,
        document_path: str,
        display_link: str,
    ) -> None:
        self._vectors[chunk_id] = StoredVector(
            embedding=list(embedding),
            content_hash=content_hash,
            content=content,
            document_path=document_path,
            display_link=display_link,
        )
        self._dirty = True

    def ids_for_document(self, path: str) -> List[str]:
        prefix = f"{path}::"
        return [chunk_id for chunk_id in self._vectors if chunk_id.startswith(prefix)]

    def delete_by_document(self, path: str) -> int:
        """Delete all vectors of a document; returns the number deleted"""
        return self.delete_by_ids(self.ids_for_document(path))

    def delete_by_ids(self, chunk_ids: Iterable[str]) -> int:
        deleted = 0
        for chunk_id in list(chunk_ids):
            if self._vectors.pop(chunk_id, None) is not None:
                deleted += 1
        if deleted:
            self._dirty = True
        return deleted

    def all_ids(self) -> List[str]:
        return list(self._vectors)

    def count(self) -> int:
        return len(self._vectors)

    def clear(self) -> None:
        self._vectors.clear()
        self._dirty = True

    def legacy_count(self) -> int:
        return sum(1 for stored in self._vectors.values() if stored.is_legacy)

    def has_legacy_vectors(self) -> bool:
        return any(stored.is_legacy for stored in self._vectors.values())

    # Exclusion

    def set_excluded_folders(self, folders: Iterable[str]) -> None:
        self.excluded_folders = list(folders)

    def is_excluded(self, path: str, excluded_folders: Optional[Iterable[str]] = None) -> bool:
        folders = self.excluded_folders if excluded_folders is None else excluded_folders
        return any(path_in_folder(path, folder) for folder in folders)

    def purge_excluded(self, excluded_folders: Optional[Iterable[str]] = None) -> int:
        """
        Delete every vector whose document lies in an excluded folder

        Args:
            excluded_folders: Folders to purge (default: the configured list)

        Returns:
            Number of vectors deleted
        """
        folders = list(self.excluded_folders if excluded_folders is None else excluded_folders)
        if not folders:
            return 0

        doomed = [
            chunk_id for chunk_id, stored in self._vectors.items()
            if self.is_excluded(stored.document_path or chunk_id.rsplit("::", 1)[0], folders)
        ]
        deleted = self.delete_by_ids(doomed)
        if deleted:
            logger.info(f"Purged {deleted} vectors from excluded folders")
        return deleted

    # Search

    def search(
        self,
        query_embedding: Sequence[float],
        limit: int,
        search_filter: SearchFilter = NO_FILTER,
    ) -> List[SearchResult]:
        """
        Rank stored chunks by cosine similarity to the query embedding

        Legacy records (no content metadata), excluded documents and documents
        outside the filter are skipped, never scored.

        Args:
            query_embedding: Query vector
            limit: Maximum number of results
            search_filter: NO_FILTER or a ScopeFilter

        Returns:
            Results ordered by descending similarity
        """
        if limit <= 0 or not self._vectors:
            return []

        matcher = FilterMatcher(search_filter, self.metadata_source)
        scored = []

        for chunk_id, stored in self._vectors.items():
            if stored.is_legacy:
                continue
            if self.is_excluded(stored.document_path):
                continue
            if not matcher.matches(stored.document_path):
                continue

            scored.append(SearchResult(
                chunk_id=chunk_id,
                content=stored.content,
                document_path=stored.document_path,
                display_link=stored.display_link or "",
                score=cosine_similarity(query_embedding, stored.embedding),
            ))

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:limit]

    def get_stats(self) -> Dict:
        """Get vector store statistics"""
        return {
            'total_vectors': len(self._vectors),
            'legacy_vectors': self.legacy_count(),
            'unsaved_changes': self._dirty,
            'excluded_folders': list(self.excluded_folders),
        }
