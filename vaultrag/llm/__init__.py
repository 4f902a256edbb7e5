"""
Vault RAG LLM Module

Embedding and chat services: local Ollama (default) or OpenRouter.
"""

from vaultrag.llm.models import ChatMessage, ChatResponse, EmbeddingResponse
from vaultrag.llm.interface import ChatService, EmbeddingService
from vaultrag.llm.ollama_client import OllamaChatService, OllamaEmbeddingService
from vaultrag.llm.openrouter import OpenRouterChatService, OpenRouterEmbeddingService
from vaultrag.llm.factory import create_chat_service, create_embedding_service

__all__ = [
    "ChatMessage",
    "ChatResponse",
    "EmbeddingResponse",
    "ChatService",
    "EmbeddingService",
    "OllamaChatService",
    "OllamaEmbeddingService",
    "OpenRouterChatService",
    "OpenRouterEmbeddingService",
    "create_chat_service",
    "create_embedding_service",
]
