"""Service Factory - Create embedding and chat services from configuration"""

import logging

from vaultrag.config import ConfigurationError, RAGConfig

from .interface import ChatService, EmbeddingService
from .ollama_client import OllamaChatService, OllamaEmbeddingService
from .openrouter import OpenRouterChatService, OpenRouterEmbeddingService

logger = logging.getLogger(__name__)


def create_embedding_service(config: RAGConfig) -> EmbeddingService:
    """Create the embedding service named by embedding.provider"""
    settings = config.embedding
    if settings.provider == "ollama":
        return OllamaEmbeddingService(model=settings.model, host=settings.host)
    if settings.provider == "openrouter":
        if not settings.api_key:
            logger.warning("embedding.api_key is empty; embedding calls will be skipped")
        return OpenRouterEmbeddingService(api_key=settings.api_key, model=settings.model)
    raise ConfigurationError(f"Unknown embedding provider: {settings.provider}")


def create_chat_service(config: RAGConfig) -> ChatService:
    """Create the chat service named by chat.provider"""
    settings = config.chat
    if settings.provider == "ollama":
        return OllamaChatService(host=settings.host)
    if settings.provider == "openrouter":
        return OpenRouterChatService(api_key=settings.api_key)
    raise ConfigurationError(f"Unknown chat provider: {settings.provider}")
