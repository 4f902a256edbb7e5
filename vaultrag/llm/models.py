"""
LLM Models - Request/response records for the embedding and chat services
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ChatMessage:
    """One turn of a chat conversation"""
    role: str      # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class EmbeddingResponse:
    """Embeddings in input order, or an error"""
    embeddings: List[List[float]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ChatResponse:
    """Completion text, or an error"""
    content: str = ""
    error: Optional[str] = None
