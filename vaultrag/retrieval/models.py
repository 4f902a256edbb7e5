"""
Retrieval Models - Search result records
"""

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class SearchResult:
    """
    A retrieved chunk (ephemeral, never persisted).

    Attributes:
        chunk_id: "<documentPath>::<ordinal>"
        content: Redacted chunk text
        document_path: Owning document
        display_link: Citation token, e.g. [[My Note]]
        score: Cosine similarity (vector stage) or blended score (hybrid stage)
        vector_score: Similarity before blending (hybrid stage only)
        keyword_score: Fraction of query keywords found (hybrid stage only)
    """
    chunk_id: str
    content: str
    document_path: str
    display_link: str
    score: float
    vector_score: Optional[float] = None
    keyword_score: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)
