"""
Shared fixtures: in-memory fakes for the embedding/chat services and the vault.
"""

import time
from typing import Dict, Iterable, List, Optional, Sequence, Set

import pytest

from vaultrag.indexing.chunk_registry import ChunkRegistry
from vaultrag.indexing.embedding_manager import EmbeddingManager
from vaultrag.indexing.redactor import Redactor
from vaultrag.indexing.storage import MemoryBlobStore
from vaultrag.indexing.text_splitter import RecursiveTextSplitter
from vaultrag.indexing.vector_store import VectorStore
from vaultrag.llm.models import ChatMessage, ChatResponse, EmbeddingResponse
from vaultrag.vault.interface import DocumentInfo
from vaultrag.vault.metadata import extract_tags


class FakeEmbeddingService:
    """
    Deterministic embeddings: a bag-of-words vector, or an explicit vector
    from `vectors` when the text is listed there.
    """

    def __init__(
        self,
        configured: bool = True,
        dimensions: int = 16,
        vectors: Optional[Dict[str, List[float]]] = None,
        error_batches: Iterable[int] = (),
        raise_batches: Iterable[int] = (),
        drop_last: bool = False,
    ):
        self.configured = configured
        self.dimensions = dimensions
        self.vectors = dict(vectors or {})
        self.error_batches = set(error_batches)
        self.raise_batches = set(raise_batches)
        self.drop_last = drop_last
        self.calls: List[List[str]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def vector_for(self, text: str) -> List[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        vector = [0.0] * self.dimensions
        for token in text.lower().split():
            vector[sum(map(ord, token)) % self.dimensions] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    async def embed_batch(self, texts: Sequence[str]) -> EmbeddingResponse:
        self.calls.append(list(texts))
        batch_number = len(self.calls)
        if batch_number in self.raise_batches:
            raise ConnectionError("connection reset")
        if batch_number in self.error_batches:
            return EmbeddingResponse(error="rate limited")
        embeddings = [self.vector_for(text) for text in texts]
        if self.drop_last:
            embeddings = embeddings[:-1]
        return EmbeddingResponse(embeddings=embeddings)


class FakeChatService:
    """Records every request and answers with a fixed reply or error"""

    def __init__(self, configured: bool = True, reply: str = "See [[Note]].", error: Optional[str] = None,
                 exception: Optional[Exception] = None):
        self.configured = configured
        self.reply = reply
        self.error = error
        self.exception = exception
        self.requests: List[dict] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, messages: Sequence[ChatMessage], model: str) -> ChatResponse:
        self.requests.append({"messages": list(messages), "model": model})
        if self.exception is not None:
            raise self.exception
        if self.error:
            return ChatResponse(error=self.error)
        return ChatResponse(content=self.reply)


class MemoryVault:
    """DocumentSource + MetadataSource over a dict of path -> text"""

    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents = dict(documents or {})
        self.reads: List[str] = []

    def list_documents(self) -> List[DocumentInfo]:
        now = time.time()
        return [
            DocumentInfo(
                path=path,
                name=path.rsplit("/", 1)[-1].rsplit(".", 1)[0],
                extension=path.rsplit(".", 1)[-1],
                size=len(text),
                created=now,
                modified=now,
            )
            for path, text in sorted(self.documents.items())
        ]

    def read_document(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.documents:
            raise FileNotFoundError(path)
        return self.documents[path]

    def get_tags(self, path: str) -> Set[str]:
        return extract_tags(self.documents.get(path, ""))


@pytest.fixture
def redactor():
    return Redactor()


@pytest.fixture
def registry(redactor):
    return ChunkRegistry(redactor, RecursiveTextSplitter(chunk_size=100, chunk_overlap=20))


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def store(blob_store):
    return VectorStore(blob_store)


@pytest.fixture
def embedding_service():
    return FakeEmbeddingService()


@pytest.fixture
def chat_service():
    return FakeChatService()


@pytest.fixture
def manager(registry, store, embedding_service):
    return EmbeddingManager(registry, store, embedding_service, batch_size=20, batch_delay=0)
