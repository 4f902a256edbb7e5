"""Tests for the keyword score and hybrid rerank"""

import pytest

from vaultrag.retrieval.hybrid import get_rerank_stats, hybrid_rerank, keyword_score, query_keywords
from vaultrag.retrieval.models import SearchResult


def result(chunk_id, content, score):
    return SearchResult(chunk_id=chunk_id, content=content, document_path=chunk_id, display_link="", score=score)


class TestKeywordScore:

    def test_short_tokens_dropped(self):
        assert query_keywords("How do I use the VPN") == ["how", "use", "the", "vpn"]

    def test_fraction_of_keywords(self):
        assert keyword_score("deploy staging server", "How to DEPLOY the server") == pytest.approx(2 / 3)

    def test_substring_match(self):
        assert keyword_score("deploy", "redeployment checklist") == 1.0

    def test_no_usable_keywords(self):
        assert keyword_score("a an of", "a an of") == 0.0
        assert keyword_score("", "anything") == 0.0


class TestHybridRerank:

    def test_keyword_match_breaks_vector_tie(self):
        candidates = [
            result("none", "nothing relevant here", 0.8),
            result("all", "the kubernetes cluster upgrade", 0.8),
        ]
        ranked = hybrid_rerank("kubernetes upgrade", candidates, 2)

        assert [r.chunk_id for r in ranked] == ["all", "none"]
        assert ranked[0].score > ranked[1].score

    def test_blend_weights(self):
        ranked = hybrid_rerank("kubernetes upgrade", [result("a", "kubernetes", 0.5)], 1)

        assert ranked[0].score == pytest.approx(0.7 * 0.5 + 0.3 * 0.5)
        assert ranked[0].vector_score == 0.5
        assert ranked[0].keyword_score == 0.5

    def test_vector_score_still_dominates(self):
        candidates = [
            result("semantic", "closely related paraphrase", 0.95),
            result("lexical", "kubernetes upgrade", 0.40),
        ]
        ranked = hybrid_rerank("kubernetes upgrade", candidates, 2)
        assert ranked[0].chunk_id == "semantic"

    def test_limit_and_empty(self):
        candidates = [result(str(i), "text", 0.1 * i) for i in range(5)]
        assert len(hybrid_rerank("text", candidates, 3)) == 3
        assert hybrid_rerank("text", [], 3) == []
        assert hybrid_rerank("text", candidates, 0) == []

    def test_input_untouched(self):
        candidates = [result("a", "kubernetes", 0.5)]
        hybrid_rerank("kubernetes", candidates, 1)
        assert candidates[0].score == 0.5
        assert candidates[0].keyword_score is None

    def test_stats(self):
        ranked = hybrid_rerank("kubernetes upgrade", [
            result("a", "kubernetes upgrade", 0.5),
            result("b", "kubernetes", 0.5),
            result("c", "other", 0.5),
        ], 3)
        stats = get_rerank_stats(ranked)
        assert stats['total_results'] == 3
        assert stats['keyword_hits'] == 2
        assert stats['full_keyword_matches'] == 1
        assert get_rerank_stats([])['total_results'] == 0
