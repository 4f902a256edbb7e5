"""Tests for RAGEngine prompt assembly and error handling"""

import pytest

from tests.conftest import FakeChatService
from vaultrag.chat.rag_engine import NO_RESULTS_NOTE, RAGEngine
from vaultrag.llm.models import ChatMessage
from vaultrag.retrieval.filters import NO_FILTER, make_filter
from vaultrag.retrieval.models import SearchResult


class StubSearch:
    """Stands in for EmbeddingManager.search"""

    def __init__(self, results=()):
        self.results = list(results)
        self.calls = []

    async def search(self, query, limit=15, pool_size=50, search_filter=NO_FILTER):
        self.calls.append({"query": query, "limit": limit, "pool_size": pool_size, "filter": search_filter})
        return self.results[:limit]


RESULTS = [
    SearchResult("Plan.md::0", "Launch is on May 3.", "Plan.md", "[[Plan]]", 0.912),
    SearchResult("Notes/Risks.md::2", "Vendor delay risk.", "Notes/Risks.md", "[[Risks]]", 0.5),
]


def engine_with(results=(), chat=None, **kwargs):
    search = StubSearch(results)
    chat = chat or FakeChatService()
    return RAGEngine(search, chat, model="test-model", **kwargs), search, chat


class TestAsk:

    @pytest.mark.asyncio
    async def test_missing_key_short_circuits(self):
        engine, search, chat = engine_with(RESULTS, chat=FakeChatService(configured=False))

        answer = await engine.ask("When is launch?")

        assert answer.startswith("Error: API key not set")
        assert search.calls == []
        assert chat.requests == []

    @pytest.mark.asyncio
    async def test_message_sequence(self):
        engine, search, chat = engine_with(RESULTS)

        answer = await engine.ask("When is launch?")

        assert answer == "See [[Note]]."
        request = chat.requests[0]
        assert request["model"] == "test-model"
        messages = request["messages"]
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[-1].content == "When is launch?"
        assert search.calls[0]["limit"] == 15
        assert search.calls[0]["pool_size"] == 50

    @pytest.mark.asyncio
    async def test_history_window(self):
        engine, _, chat = engine_with(RESULTS, history_window=10)
        history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"} for i in range(12)]

        await engine.ask("latest", history)

        messages = chat.requests[0]["messages"]
        assert len(messages) == 1 + 10 + 1
        assert messages[1].content == "turn 2"
        assert messages[-2].content == "turn 11"
        assert all(isinstance(m, ChatMessage) for m in messages)

    @pytest.mark.asyncio
    async def test_filter_passed_to_search(self):
        engine, search, _ = engine_with(RESULTS)
        scope = make_filter(folders=["Notes"])

        await engine.ask("risks?", search_filter=scope)

        assert search.calls[0]["filter"] == scope

    @pytest.mark.asyncio
    async def test_service_error_becomes_answer(self):
        engine, _, _ = engine_with(RESULTS, chat=FakeChatService(error="rate limited"))
        assert await engine.ask("q") == "Error: rate limited"

    @pytest.mark.asyncio
    async def test_exception_becomes_answer(self):
        engine, _, _ = engine_with(RESULTS, chat=FakeChatService(exception=RuntimeError("boom")))
        assert await engine.ask("q") == "Error: boom"

    @pytest.mark.asyncio
    async def test_empty_completion_becomes_error(self):
        engine, _, _ = engine_with(RESULTS, chat=FakeChatService(reply=""))
        assert await engine.ask("q") == "Error: No response from model"

    @pytest.mark.asyncio
    async def test_set_model(self):
        engine, _, chat = engine_with(RESULTS)
        engine.set_model("llama3.1:8b")
        await engine.ask("q")
        assert chat.requests[0]["model"] == "llama3.1:8b"


class TestSystemPrompt:

    def test_citation_rules(self):
        engine, _, _ = engine_with()
        prompt = engine.build_system_prompt(RESULTS)

        assert "[[Note Name]]" in prompt
        assert "Do NOT use Markdown links" in prompt

    def test_context_blocks_in_score_order(self):
        engine, _, _ = engine_with()
        prompt = engine.build_system_prompt(RESULTS)

        first = prompt.index("Source: [[Plan]] (relevance: 91.2%)")
        second = prompt.index("Source: [[Risks]] (relevance: 50.0%)")
        assert first < second
        assert "Launch is on May 3." in prompt
        assert NO_RESULTS_NOTE not in prompt

    def test_no_results_note(self):
        engine, _, _ = engine_with()
        prompt = engine.build_system_prompt([])

        assert NO_RESULTS_NOTE in prompt
        assert "CONTEXT FROM YOUR NOTES" not in prompt

    def test_scope_note_only_with_filter(self):
        engine, _, _ = engine_with()

        scoped = engine.build_system_prompt(RESULTS, make_filter(tags=["work"]))
        unscoped = engine.build_system_prompt(RESULTS, NO_FILTER)

        assert "explicitly limited this question to: tags: #work" in scoped
        assert "explicitly limited" not in unscoped

    @pytest.mark.asyncio
    async def test_get_context(self):
        engine, search, _ = engine_with(RESULTS)
        context = await engine.get_context("launch", limit=1)

        assert context == RESULTS[:1]
        assert search.calls[0]["limit"] == 1
