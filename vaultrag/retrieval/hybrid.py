"""
Hybrid Rerank - Blend vector similarity with keyword overlap

Embeddings blur exact terminology (names, identifiers). A cheap keyword term
recovers precision for such queries while vector similarity still dominates:

    hybrid_score = 0.7 * vector_score + 0.3 * keyword_score

keyword_score is the fraction of query tokens (lowercased, whitespace split,
tokens shorter than 3 characters dropped) that occur as substrings of the
candidate. Only a bounded candidate pool is reranked.
"""

from dataclasses import replace
from typing import Dict, List, Sequence

from vaultrag.retrieval.models import SearchResult

VECTOR_WEIGHT = 0.7
KEYWORD_WEIGHT = 0.3
MIN_TOKEN_LENGTH = 3


def query_keywords(query: str) -> List[str]:
    """Lowercased query tokens of at least MIN_TOKEN_LENGTH characters"""
    return [token for token in query.lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def keyword_score(query: str, content: str) -> float:
    """
    Fraction of query keywords present in content

    Returns:
        0.0 - 1.0 (0.0 when the query has no usable keywords)
    """
    keywords = query_keywords(query)
    if not keywords:
        return 0.0

    haystack = content.lower()
    hits = sum(1 for keyword in keywords if keyword in haystack)
    return hits / len(keywords)


def hybrid_rerank(
    query: str,
    candidates: Sequence[SearchResult],
    limit: int,
    vector_weight: float = VECTOR_WEIGHT,
    keyword_weight: float = KEYWORD_WEIGHT,
) -> List[SearchResult]:
    """
    Rerank vector-search candidates by blended score

    Args:
        query: Original query text
        candidates: Vector-stage results (score = cosine similarity)
        limit: Number of results to return
        vector_weight: Weight of the vector score
        keyword_weight: Weight of the keyword score

    Returns:
        Top `limit` candidates, score replaced by the blended score
    """
    if limit <= 0 or not candidates:
        return []

    reranked = []
    for candidate in candidates:
        kw = keyword_score(query, candidate.content)
        reranked.append(replace(
            candidate,
            score=vector_weight * candidate.score + keyword_weight * kw,
            vector_score=candidate.score,
            keyword_score=kw,
        ))

    # sorted() is stable: equal blends keep vector-stage order
    reranked.sort(key=lambda r: r.score, reverse=True)
    return reranked[:limit]


def get_rerank_stats(results: Sequence[SearchResult]) -> Dict:
    """
    Summarize how much the keyword stage contributed

    Args:
        results: Output of hybrid_rerank

    Returns:
        Dictionary with rerank statistics
    """
    if not results:
        return {
            'total_results': 0,
            'keyword_hits': 0,
            'full_keyword_matches': 0,
        }

    return {
        'total_results': len(results),
        'keyword_hits': sum(1 for r in results if r.keyword_score),
        'full_keyword_matches': sum(1 for r in results if r.keyword_score == 1.0),
        'fusion_algorithm': f'weighted ({VECTOR_WEIGHT} vector + {KEYWORD_WEIGHT} keyword)'
    }
