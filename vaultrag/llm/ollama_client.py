"""
Ollama Services - Local embeddings and chat via Ollama

Default backend: everything stays on the machine.
- Embeddings: nomic-embed-text (768 dimensions)
- Chat: any pulled model (e.g. llama3.1:8b)

No credential is needed, so both services always report is_configured.
"""

import logging
from typing import List, Optional, Sequence

import ollama

from .models import ChatMessage, ChatResponse, EmbeddingResponse

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"


class OllamaEmbeddingService:
    """Generate embeddings using an Ollama embedding model"""

    def __init__(self, model: str = DEFAULT_EMBEDDING_MODEL, host: Optional[str] = None):
        """
        Initialize embedding service

        Args:
            model: Ollama embedding model (must be pulled: ollama pull <model>)
            host: Ollama server URL (default: OLLAMA_HOST or localhost)
        """
        self.model = model
        self.host = host
        self.embedding_count = 0
        self._client = ollama.AsyncClient(host=host)

    @property
    def is_configured(self) -> bool:
        return True

    async def embed_batch(self, texts: Sequence[str]) -> EmbeddingResponse:
        if not texts:
            return EmbeddingResponse()

        try:
            response = await self._client.embed(model=self.model, input=list(texts))
            embeddings: List[List[float]] = [list(e) for e in response['embeddings']]
        except Exception as e:
            logger.error(f"Embedding generation failed: {e}")
            return EmbeddingResponse(error=str(e))

        if len(embeddings) != len(texts):
            error = f"Expected {len(texts)} embeddings, got {len(embeddings)}"
            logger.error(error)
            return EmbeddingResponse(error=error)

        self.embedding_count += len(embeddings)
        return EmbeddingResponse(embeddings=embeddings)

    def get_stats(self):
        return {
            'provider': 'ollama',
            'model': self.model,
            'total_embeddings': self.embedding_count,
        }


class OllamaChatService:
    """Chat completions from a local Ollama model"""

    def __init__(self, host: Optional[str] = None):
        self.host = host
        self._client = ollama.AsyncClient(host=host)

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, messages: Sequence[ChatMessage], model: str) -> ChatResponse:
        try:
            response = await self._client.chat(
                model=model,
                messages=[m.to_dict() for m in messages],
            )
            content = response['message']['content']
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            return ChatResponse(error=str(e))

        if not content:
            return ChatResponse(error="No response from model")
        return ChatResponse(content=content)
