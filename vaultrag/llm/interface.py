"""
Service Interfaces - Protocols for the embedding and chat services

Implementations never raise for service failures: errors come back in the
response's ``error`` field.
"""

from typing import Protocol, Sequence, runtime_checkable

from .models import ChatMessage, ChatResponse, EmbeddingResponse


@runtime_checkable
class EmbeddingService(Protocol):
    """Protocol for batch text embedding."""

    @property
    def is_configured(self) -> bool:
        """True if the service has the credentials it needs."""
        ...

    async def embed_batch(self, texts: Sequence[str]) -> EmbeddingResponse:
        """Embed texts; output order matches input order."""
        ...


@runtime_checkable
class ChatService(Protocol):
    """Protocol for chat completion."""

    @property
    def is_configured(self) -> bool:
        """True if the service has the credentials it needs."""
        ...

    async def complete(self, messages: Sequence[ChatMessage], model: str) -> ChatResponse:
        """Send the message sequence and return the completion."""
        ...
