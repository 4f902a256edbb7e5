"""
RAG Engine - Answer questions from vault content

Retrieves the most relevant chunks with hybrid search, wraps them into a
system prompt that demands [[Note]] citations, and asks the chat model.
ask() never raises: every failure comes back as an "Error: ..." answer.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from vaultrag.indexing.embedding_manager import EmbeddingManager
from vaultrag.llm.interface import ChatService
from vaultrag.llm.models import ChatMessage
from vaultrag.retrieval.filters import NO_FILTER, ScopeFilter, SearchFilter
from vaultrag.retrieval.models import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "google/gemini-2.5-flash"

MISSING_KEY_ANSWER = "Error: API key not set. Add chat.api_key to your .vault-rag.yml (or set the referenced environment variable)."

BASE_PROMPT = """You are a knowledge-base assistant. Answer the user's question based on the context provided from their notes.

CRITICAL INSTRUCTIONS:
1. You MUST cite your sources using the exact link format provided (e.g., [[Note Name]]).
2. Do NOT use Markdown links like [Title](path).
3. When referencing information, always mention where it came from using the link.
4. If the context doesn't contain relevant information, say so honestly.
5. Be concise but thorough in your answers."""

NO_RESULTS_NOTE = (
    "Note: No relevant context was found in the notes for this query. Answer based on your "
    "general knowledge, but inform the user that no specific notes were found."
)

HistoryTurn = Union[ChatMessage, Dict[str, str]]


class RAGEngine:
    """Retrieval-augmented question answering over the indexed vault"""

    def __init__(
        self,
        embedding_manager: EmbeddingManager,
        chat_service: ChatService,
        model: str = DEFAULT_CHAT_MODEL,
        pool_size: int = 50,
        max_context_chunks: int = 15,
        history_window: int = 10,
    ):
        """
        Initialize RAG engine

        Args:
            embedding_manager: Hybrid search over stored vectors
            chat_service: Chat completion backend
            model: Chat model name passed to the service
            pool_size: Vector candidates to rerank
            max_context_chunks: Chunks placed in the prompt
            history_window: Prior conversation turns kept
        """
        self.embedding_manager = embedding_manager
        self.chat_service = chat_service
        self.model = model
        self.pool_size = pool_size
        self.max_context_chunks = max_context_chunks
        self.history_window = history_window

    def set_model(self, model: str) -> None:
        self.model = model

    async def ask(
        self,
        query: str,
        conversation_history: Sequence[HistoryTurn] = (),
        search_filter: SearchFilter = NO_FILTER,
    ) -> str:
        """
        Answer a question using retrieved vault context

        Args:
            query: The user's question
            conversation_history: Prior turns, oldest first
            search_filter: Restrict retrieval to files, folders or tags

        Returns:
            The model's answer, or a string starting with "Error:"
        """
        if not self.chat_service.is_configured:
            return MISSING_KEY_ANSWER

        try:
            results = await self.embedding_manager.search(
                query,
                limit=self.max_context_chunks,
                pool_size=self.pool_size,
                search_filter=search_filter,
            )

            messages = [ChatMessage(role="system", content=self.build_system_prompt(results, search_filter))]
            messages.extend(self._history_messages(conversation_history))
            messages.append(ChatMessage(role="user", content=query))

            logger.info(f"Asking {self.model} with {len(results)} context chunks")
            response = await self.chat_service.complete(messages, self.model)
        except Exception as e:
            logger.error(f"RAG query failed: {e}")
            return f"Error: {e}"

        if response.error:
            return f"Error: {response.error}"
        if not response.content:
            return "Error: No response from model"
        return response.content

    def _history_messages(self, history: Sequence[HistoryTurn]) -> List[ChatMessage]:
        if self.history_window <= 0:
            return []
        messages = []
        for turn in list(history)[-self.history_window:]:
            if isinstance(turn, ChatMessage):
                messages.append(turn)
            else:
                messages.append(ChatMessage(role=turn["role"], content=turn["content"]))
        return messages

    def build_system_prompt(
        self,
        results: Sequence[SearchResult],
        search_filter: SearchFilter = NO_FILTER,
    ) -> str:
        """Base instructions, scope note, then one context block per result"""
        prompt = BASE_PROMPT

        if isinstance(search_filter, ScopeFilter):
            prompt += (
                f"\n\nThe user explicitly limited this question to: {search_filter.describe()}. "
                "Prioritize information from this scope."
            )

        if not results:
            return f"{prompt}\n\n{NO_RESULTS_NOTE}"

        context = "\n\n--- CONTEXT FROM YOUR NOTES ---\n"
        for result in results:
            context += f"\nSource: {result.display_link} (relevance: {result.score * 100:.1f}%)\n"
            context += f"{result.content}\n"
            context += "---\n"

        return prompt + context

    async def get_context(
        self,
        query: str,
        limit: Optional[int] = None,
        search_filter: SearchFilter = NO_FILTER,
    ) -> List[SearchResult]:
        """Retrieve the context ask() would use, without calling the chat model"""
        return await self.embedding_manager.search(
            query,
            limit=limit or self.max_context_chunks,
            pool_size=self.pool_size,
            search_filter=search_filter,
        )
