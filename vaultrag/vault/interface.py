"""
Vault Interfaces - Protocols for the document and metadata sources
"""

from dataclasses import dataclass
from typing import List, Protocol, Set, runtime_checkable


@dataclass
class DocumentInfo:
    """A document known to the vault"""
    path: str          # vault-relative, "/"-separated
    name: str          # basename without extension
    extension: str     # without the leading dot
    size: int
    created: float
    modified: float


@runtime_checkable
class DocumentSource(Protocol):
    """Enumerates documents and reads their text."""

    def list_documents(self) -> List[DocumentInfo]:
        """Return every indexable document."""
        ...

    def read_document(self, path: str) -> str:
        """Return the full text of a document."""
        ...


@runtime_checkable
class MetadataSource(Protocol):
    """Looks up live tag metadata for a document."""

    def get_tags(self, path: str) -> Set[str]:
        """Return the document's tags (inline and frontmatter)."""
        ...
