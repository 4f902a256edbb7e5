"""
Vault Indexer - Wires the pipeline together and keeps it in sync with the vault

    vault -> redact -> split -> chunk registry -> embed -> vector store

On startup the vector store is loaded, vectors of excluded folders are
purged and the chunk registry is rebuilt from the vault. Vault events then
keep chunks and vectors current: modifications are debounced per document,
deletes and renames apply immediately (renames reuse the stored vectors).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from vaultrag.chat.rag_engine import RAGEngine
from vaultrag.config import RAGConfig
from vaultrag.indexing.chunk_registry import Chunk, ChunkRegistry
from vaultrag.indexing.embedding_manager import EmbeddingManager, EmbeddingResult
from vaultrag.indexing.redactor import Redactor
from vaultrag.indexing.storage import JsonFileBlobStore
from vaultrag.indexing.text_splitter import RecursiveTextSplitter
from vaultrag.indexing.vector_store import VectorStore
from vaultrag.llm.factory import create_chat_service, create_embedding_service
from vaultrag.notifications import (
    IndexingStage,
    NotifierInterface,
    NullNotifier,
    ProgressEvent,
    create_notifier_from_config,
)
from vaultrag.retrieval.filters import NO_FILTER, SearchFilter, path_in_folder
from vaultrag.retrieval.models import SearchResult
from vaultrag.vault.debouncer import PathDebouncer
from vaultrag.vault.filesystem import FileSystemVault
from vaultrag.vault.interface import DocumentInfo, DocumentSource
from vaultrag.vault.metadata import MetadataCache
from vaultrag.vault.watcher import VaultEvent, VaultEventType

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    """Snapshot of the index"""
    documents: int = 0
    chunks: int = 0
    vectors: int = 0
    legacy_vectors: int = 0
    purged_vectors: int = 0
    needs_rebuild: bool = False
    last_indexed: Optional[datetime] = None
    embedding: Optional[EmbeddingResult] = field(default=None)

    def to_dict(self) -> Dict:
        return {
            'documents': self.documents,
            'chunks': self.chunks,
            'vectors': self.vectors,
            'legacy_vectors': self.legacy_vectors,
            'purged_vectors': self.purged_vectors,
            'needs_rebuild': self.needs_rebuild,
            'last_indexed': self.last_indexed.isoformat() if self.last_indexed else None,
            'embedding': self.embedding.to_dict() if self.embedding else None,
        }


class VaultIndexer:
    """Owns the indexing pipeline for one vault"""

    def __init__(
        self,
        source: DocumentSource,
        chunk_registry: ChunkRegistry,
        vector_store: VectorStore,
        embedding_manager: EmbeddingManager,
        rag_engine: RAGEngine,
        metadata_cache: Optional[MetadataCache] = None,
        excluded_folders: Iterable[str] = (),
        debounce_seconds: float = 2.0,
        pool_size: int = 50,
        notifier: Optional[NotifierInterface] = None,
    ):
        """
        Initialize indexer

        Args:
            source: Where documents are listed and read from
            chunk_registry: In-memory chunks per document
            vector_store: Persistent embeddings
            embedding_manager: Embedding and search coordinator
            rag_engine: Question answering on top of search
            metadata_cache: Tag/folder cache (invalidated on vault events)
            excluded_folders: Folders never indexed nor searched
            debounce_seconds: Quiet period before a modified document is reindexed
            pool_size: Vector candidates reranked per search
            notifier: Progress notifier (default: silent)
        """
        self.source = source
        self.chunk_registry = chunk_registry
        self.vector_store = vector_store
        self.embedding_manager = embedding_manager
        self.rag_engine = rag_engine
        self.metadata_cache = metadata_cache
        self.excluded_folders = list(excluded_folders)
        self.pool_size = pool_size
        self.notifier = notifier or NullNotifier()
        self.debouncer = PathDebouncer(debounce_seconds)
        self.last_indexed: Optional[datetime] = None
        self._purged_at_startup = 0

        self.vector_store.set_excluded_folders(self.excluded_folders)

    @classmethod
    def from_config(cls, config: RAGConfig, notifier: Optional[NotifierInterface] = None) -> "VaultIndexer":
        """Build the full pipeline described by a configuration"""
        vault = FileSystemVault(config.vault_root, markdown_only=config.vault.markdown_only)
        metadata_cache = MetadataCache(vault)

        redactor = Redactor(
            enabled=config.indexing.enable_redaction,
            custom_patterns=config.indexing.custom_redaction_patterns,
        )
        splitter = RecursiveTextSplitter(
            chunk_size=config.indexing.chunk_size,
            chunk_overlap=config.indexing.chunk_overlap,
        )
        chunk_registry = ChunkRegistry(redactor, splitter)

        vector_store = VectorStore(
            JsonFileBlobStore(config.storage_path),
            metadata_source=metadata_cache,
            excluded_folders=config.vault.excluded_folders,
        )

        if notifier is None:
            notifier = create_notifier_from_config(config.notifications)

        embedding_manager = EmbeddingManager(
            chunk_registry,
            vector_store,
            create_embedding_service(config),
            batch_size=config.embedding.batch_size,
            batch_delay=config.embedding.batch_delay,
            notifier=notifier,
        )
        rag_engine = RAGEngine(
            embedding_manager,
            create_chat_service(config),
            model=config.chat.model,
            pool_size=config.retrieval.pool_size,
            max_context_chunks=config.retrieval.max_context_chunks,
            history_window=config.chat.history_window,
        )

        return cls(
            source=vault,
            chunk_registry=chunk_registry,
            vector_store=vector_store,
            embedding_manager=embedding_manager,
            rag_engine=rag_engine,
            metadata_cache=metadata_cache,
            excluded_folders=config.vault.excluded_folders,
            debounce_seconds=config.sync.debounce_seconds,
            pool_size=config.retrieval.pool_size,
            notifier=notifier,
        )

    @property
    def embeddings_enabled(self) -> bool:
        return self.embedding_manager.embedding_service.is_configured

    def is_excluded(self, path: str) -> bool:
        return any(path_in_folder(path, folder) for folder in self.excluded_folders)

    def list_documents(self) -> List[DocumentInfo]:
        """Documents that would be indexed (excluded folders removed)"""
        return [doc for doc in self.source.list_documents() if not self.is_excluded(doc.path)]

    # Lifecycle

    async def startup(self) -> IndexStats:
        """
        Load stored vectors, purge excluded folders and rebuild the chunk index

        Stored vectors without content metadata cannot be searched; their
        presence is reported through IndexStats.needs_rebuild.
        """
        self.notifier.notify(ProgressEvent(stage=IndexingStage.LOADING, message="Loading stored vectors"))
        self.vector_store.load()

        legacy = self.vector_store.legacy_count()
        if legacy:
            logger.warning(
                f"{legacy} stored vectors lack content metadata; "
                "run a rebuild to re-embed them"
            )

        self._purged_at_startup = self.vector_store.purge_excluded()
        if self._purged_at_startup:
            self.vector_store.save()

        await self.rebuild_chunk_index()
        return self.get_stats()

    async def shutdown(self) -> None:
        """Run pending debounced work and persist unsaved vectors"""
        flushed = await self.debouncer.flush()
        if flushed:
            logger.info(f"Flushed {flushed} pending document updates")
        if self.vector_store.has_unsaved_changes():
            self.vector_store.save()

    # Bulk operations

    async def rebuild_chunk_index(self) -> int:
        """
        Re-read every document and rebuild all chunks

        Unreadable documents are logged and skipped.

        Returns:
            Total number of chunks
        """
        self.chunk_registry.clear()
        if self.metadata_cache is not None:
            self.metadata_cache.clear()

        documents = self.list_documents()
        total = len(documents)
        logger.info(f"Chunking {total} documents")
        if self.chunk_registry.redactor.enabled and total:
            self.notifier.notify(ProgressEvent(
                stage=IndexingStage.REDACTING,
                message=f"Redacting secrets from {total} documents before chunking",
            ))

        for position, doc in enumerate(documents, 1):
            self.notifier.notify(ProgressEvent(
                stage=IndexingStage.CHUNKING,
                message="Chunking documents",
                current=position,
                total=total,
                file_path=doc.path,
            ))
            try:
                text = self.source.read_document(doc.path)
            except Exception as e:
                logger.warning(f"Skipping unreadable document {doc.path}: {e}")
                continue
            self.chunk_registry.process_document(doc.path, text)

        chunk_count = self.chunk_registry.total_chunk_count()
        self.last_indexed = datetime.now()
        logger.info(f"Created {chunk_count} chunks from {self.chunk_registry.document_count()} documents")
        return chunk_count

    async def rebuild_embeddings(self) -> EmbeddingResult:
        """Embed every chunk whose vector is missing or stale"""
        if not self.embeddings_enabled:
            logger.warning("API key not set. Skipping embeddings.")
            return EmbeddingResult(error="API key not set")

        result = await self.embedding_manager.embed_all()
        if result.error:
            logger.error(f"Embedding error: {result.error}")
        else:
            logger.info(f"Embeddings: {result.processed} new, {result.skipped} cached, {result.failed} failed")
        return result

    async def rebuild_index(self, rechunk: bool = True) -> IndexStats:
        """
        Rebuild chunks, then embeddings

        Args:
            rechunk: Re-read and re-chunk the vault first; pass False when
                startup() has just built the chunk index
        """
        self.notifier.start("Rebuilding index")
        try:
            if rechunk:
                await self.rebuild_chunk_index()
            result = await self.rebuild_embeddings()
        except Exception as e:
            self.notifier.notify(ProgressEvent(stage=IndexingStage.ERROR, message="Rebuild failed", error=str(e)))
            self.notifier.finish(success=False, message=str(e))
            raise

        stats = self.get_stats()
        stats.embedding = result
        self.notifier.notify(ProgressEvent(stage=IndexingStage.COMPLETE, message="Index rebuilt"))
        self.notifier.finish(
            success=result.error is None and result.failed == 0,
            message=f"{stats.chunks} chunks, {result.processed} embedded, {result.skipped} cached, {result.failed} failed",
        )
        return stats

    async def force_rebuild(self, rechunk: bool = True) -> IndexStats:
        """Drop every stored vector, then rebuild chunks and embeddings from scratch"""
        logger.info("Clearing vector cache")
        self.vector_store.clear()
        self.vector_store.save()
        return await self.rebuild_index(rechunk=rechunk)

    # Single documents

    async def index_document(self, path: str) -> EmbeddingResult:
        """
        Re-chunk one document and embed its changed chunks

        A document in an excluded folder, or one that cannot be read, has its
        chunks and vectors removed instead.
        """
        if self.is_excluded(path):
            logger.debug(f"Ignoring excluded document {path}")
            return EmbeddingResult()

        try:
            text = self.source.read_document(path)
        except Exception as e:
            logger.warning(f"Cannot read {path}, dropping it from the index: {e}")
            await self.remove_document(path)
            return EmbeddingResult(error=str(e))

        chunks = self.chunk_registry.process_document(path, text)
        logger.info(f"Rechunked {path} ({len(chunks)} chunks)")

        if not self.embeddings_enabled:
            return EmbeddingResult(error="API key not set")
        return await self.embedding_manager.embed_document(path)

    async def remove_document(self, path: str) -> int:
        """Forget a document's chunks and vectors; returns vectors deleted"""
        self.chunk_registry.delete_document(path)
        return await self.embedding_manager.delete_document_vectors(path)

    # Vault events

    async def handle_created(self, path: str) -> None:
        if self.metadata_cache is not None:
            self.metadata_cache.on_created(path)
        await self.index_document(path)

    def handle_modified(self, path: str) -> None:
        """Reindex after the document has been quiet for the debounce period"""
        if self.metadata_cache is not None:
            self.metadata_cache.on_modified(path)
        if self.is_excluded(path):
            return
        self.debouncer.schedule(path, lambda: self._reindex(path))

    async def _reindex(self, path: str) -> None:
        await self.index_document(path)

    async def handle_deleted(self, path: str) -> None:
        self.debouncer.cancel(path)
        if self.metadata_cache is not None:
            self.metadata_cache.on_deleted(path)
        deleted = await self.remove_document(path)
        logger.info(f"Deleted chunks and {deleted} vectors for {path}")

    async def handle_renamed(self, old_path: str, new_path: str) -> None:
        """
        Move chunks and vectors to the new path without re-embedding

        Moves into an excluded folder drop the document; moves out of one
        (or of a document that was never indexed) index it fresh.
        """
        pending = self.debouncer.cancel(old_path)
        if self.metadata_cache is not None:
            self.metadata_cache.on_renamed(old_path, new_path)

        if self.is_excluded(new_path):
            await self.remove_document(old_path)
            return

        if not self.chunk_registry.rename_document(old_path, new_path):
            await self.index_document(new_path)
            return

        await self.embedding_manager.rename_vectors(old_path, new_path)
        logger.info(f"Renamed chunks and vectors: {old_path} -> {new_path}")

        if pending:
            self.handle_modified(new_path)

    async def handle_event(self, event: VaultEvent) -> None:
        """Dispatch a watcher event to the matching handler"""
        if event.type is VaultEventType.CREATED:
            await self.handle_created(event.path)
        elif event.type is VaultEventType.MODIFIED:
            self.handle_modified(event.path)
        elif event.type is VaultEventType.DELETED:
            await self.handle_deleted(event.path)
        elif event.type is VaultEventType.RENAMED:
            await self.handle_renamed(event.old_path, event.path)

    # Queries

    async def search(
        self,
        query: str,
        limit: int = 15,
        search_filter: SearchFilter = NO_FILTER,
        pool_size: Optional[int] = None,
    ) -> List[SearchResult]:
        return await self.embedding_manager.search(
            query,
            limit=limit,
            pool_size=pool_size or self.pool_size,
            search_filter=search_filter,
        )

    async def ask(self, query: str, conversation_history=(), search_filter: SearchFilter = NO_FILTER) -> str:
        return await self.rag_engine.ask(query, conversation_history, search_filter)

    def inspect_document(self, path: str) -> List[Chunk]:
        """Current chunks of one document (debugging aid)"""
        return self.chunk_registry.get_chunks(path)

    def list_tags(self) -> List[str]:
        return self.metadata_cache.all_tags() if self.metadata_cache is not None else []

    def list_folders(self) -> List[str]:
        return self.metadata_cache.all_folders() if self.metadata_cache is not None else []

    def get_stats(self) -> IndexStats:
        legacy = self.vector_store.legacy_count()
        return IndexStats(
            documents=self.chunk_registry.document_count(),
            chunks=self.chunk_registry.total_chunk_count(),
            vectors=self.vector_store.count(),
            legacy_vectors=legacy,
            purged_vectors=self._purged_at_startup,
            needs_rebuild=legacy > 0,
            last_indexed=self.last_indexed,
        )
