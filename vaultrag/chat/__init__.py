"""Question answering over the indexed vault"""

from .rag_engine import RAGEngine

__all__ = ["RAGEngine"]
