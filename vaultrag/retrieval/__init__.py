"""
Vault RAG Retrieval Module

Search filters and the hybrid (vector + keyword) rerank.
"""

from vaultrag.retrieval.models import SearchResult
from vaultrag.retrieval.filters import NO_FILTER, ScopeFilter, SearchFilter, make_filter, path_in_folder
from vaultrag.retrieval.hybrid import hybrid_rerank, keyword_score, get_rerank_stats

__all__ = [
    "SearchResult",
    "NO_FILTER",
    "ScopeFilter",
    "SearchFilter",
    "make_filter",
    "path_in_folder",
    "hybrid_rerank",
    "keyword_score",
    "get_rerank_stats",
]
