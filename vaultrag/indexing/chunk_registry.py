"""
Chunk Registry - In-memory map of document path to its ordered chunks

Documents are redacted, split and wrapped into Chunk records. A modified
document replaces its whole chunk set; a renamed document is relabeled
without re-reading its content. Nothing here touches the network or disk;
the registry is rebuilt from the vault on startup.
"""

import logging
import posixpath
from dataclasses import dataclass, replace
from typing import Dict, List

from vaultrag.indexing.redactor import Redactor
from vaultrag.indexing.text_splitter import RecursiveTextSplitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's (redacted) text"""
    id: str
    content: str
    document_path: str
    display_link: str
    ordinal_index: int


def make_chunk_id(document_path: str, ordinal_index: int) -> str:
    return f"{document_path}::{ordinal_index}"


def make_display_link(document_path: str) -> str:
    """
    Citation token for a document path

    Examples:
        >>> make_display_link("folder/My Note.md")
        '[[My Note]]'
    """
    name, _ext = posixpath.splitext(posixpath.basename(document_path))
    return f"[[{name or document_path}]]"


class ChunkRegistry:
    """Owns the chunk sets of every indexed document"""

    def __init__(self, redactor: Redactor, splitter: RecursiveTextSplitter):
        self.redactor = redactor
        self.splitter = splitter
        self._chunks_by_path: Dict[str, List[Chunk]] = {}

    def process_document(self, path: str, raw_text: str) -> List[Chunk]:
        """
        Redact, split and register a document, replacing any previous chunk set

        Args:
            path: Logical document path (vault-relative, "/"-separated)
            raw_text: Full document text as read from the source

        Returns:
            The new chunk list (possibly empty)
        """
        # Redaction must happen before splitting: chunk content is what gets embedded
        text = self.redactor.redact(raw_text)
        display_link = make_display_link(path)

        chunks = [
            Chunk(
                id=make_chunk_id(path, index),
                content=piece,
                document_path=path,
                display_link=display_link,
                ordinal_index=index,
            )
            for index, piece in enumerate(self.splitter.split_text(text))
        ]

        self._chunks_by_path[path] = chunks
        logger.debug(f"Chunked {path} into {len(chunks)} chunks")
        return chunks

    def delete_document(self, path: str) -> bool:
        """Drop a document's chunk set; returns True if it existed"""
        return self._chunks_by_path.pop(path, None) is not None

    def rename_document(self, old_path: str, new_path: str) -> List[Chunk]:
        """
        Relabel a document's chunks under a new path (content untouched)

        Returns:
            The relabeled chunks, or an empty list if old_path was unknown
        """
        chunks = self._chunks_by_path.pop(old_path, None)
        if chunks is None:
            return []

        display_link = make_display_link(new_path)
        renamed = [
            replace(
                chunk,
                id=make_chunk_id(new_path, chunk.ordinal_index),
                document_path=new_path,
                display_link=display_link,
            )
            for chunk in chunks
        ]
        self._chunks_by_path[new_path] = renamed
        return renamed

    def get_chunks(self, path: str) -> List[Chunk]:
        return list(self._chunks_by_path.get(path, []))

    def get_all_chunks(self) -> List[Chunk]:
        return [chunk for chunks in self._chunks_by_path.values() for chunk in chunks]

    def document_paths(self) -> List[str]:
        return list(self._chunks_by_path)

    def total_chunk_count(self) -> int:
        return sum(len(chunks) for chunks in self._chunks_by_path.values())

    def document_count(self) -> int:
        return len(self._chunks_by_path)

    def clear(self) -> None:
        self._chunks_by_path.clear()

    def search_chunks(self, query: str) -> List[Chunk]:
        """Case-insensitive substring scan over all chunks (debugging aid)"""
        needle = query.lower()
        return [chunk for chunk in self.get_all_chunks() if needle in chunk.content.lower()]

    def splitter_config(self) -> Dict[str, int]:
        return self.splitter.get_config()
