"""
OpenRouter Services - Remote embeddings and chat over the OpenAI-compatible API

Only redacted text is ever sent here. Requires an API key; without one the
services report is_configured = False and callers must not call them.
"""

import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI

from .models import ChatMessage, ChatResponse, EmbeddingResponse

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_CHAT_MODEL = "google/gemini-2.5-flash"
DEFAULT_EMBEDDING_MODEL = "openai/text-embedding-3-small"


class _OpenRouterClient:
    """Lazily constructed AsyncOpenAI client bound to the OpenRouter base URL"""

    def __init__(self, api_key: str, base_url: str = OPENROUTER_BASE_URL):
        self.api_key = api_key
        self.base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(base_url=self.base_url, api_key=self.api_key)
        return self._client


class OpenRouterEmbeddingService(_OpenRouterClient):
    """Batch embeddings from an OpenRouter embedding model"""

    def __init__(self, api_key: str, model: str = DEFAULT_EMBEDDING_MODEL, base_url: str = OPENROUTER_BASE_URL):
        super().__init__(api_key, base_url)
        self.model = model
        self.embedding_count = 0

    async def embed_batch(self, texts: Sequence[str]) -> EmbeddingResponse:
        if not self.is_configured:
            return EmbeddingResponse(error="API key not set")
        if not texts:
            return EmbeddingResponse()

        try:
            response = await self._get_client().embeddings.create(model=self.model, input=list(texts))
        except Exception as e:
            logger.error(f"Embedding error: {e}")
            return EmbeddingResponse(error=str(e) or "Unknown error occurred")

        # The API does not promise input order; restore it from the index field
        data = sorted(response.data, key=lambda item: item.index)
        embeddings = [list(item.embedding) for item in data]

        if len(embeddings) != len(texts):
            return EmbeddingResponse(error=f"Expected {len(texts)} embeddings, got {len(embeddings)}")

        self.embedding_count += len(embeddings)
        return EmbeddingResponse(embeddings=embeddings)

    def get_stats(self):
        return {
            'provider': 'openrouter',
            'model': self.model,
            'total_embeddings': self.embedding_count,
        }


class OpenRouterChatService(_OpenRouterClient):
    """Chat completions from any OpenRouter model"""

    async def complete(self, messages: Sequence[ChatMessage], model: str) -> ChatResponse:
        if not self.is_configured:
            return ChatResponse(error="API key not set")

        try:
            completion = await self._get_client().chat.completions.create(
                model=model,
                messages=[m.to_dict() for m in messages],
            )
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            return ChatResponse(error=str(e) or "Unknown error occurred")

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            return ChatResponse(error="No response from model")
        return ChatResponse(content=content)
