"""
Text Splitter - Recursive separator-cascade chunking

Splits text into bounded, overlapping chunks while preserving structure:
- Paragraphs first, then lines, sentences, words
- Raw character windows only when no separator fits

Chunks are emitted in document order. Each new chunk is seeded with the
tail of the previous one so context survives across the boundary.
"""

from typing import Dict, List, Tuple

from vaultrag.config import ConfigurationError

# Priority order; "" is the character-window base case
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


class RecursiveTextSplitter:
    """Split text recursively using a hierarchy of separators"""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, chunk_overlap: int = DEFAULT_CHUNK_OVERLAP):
        """
        Initialize splitter

        Args:
            chunk_size: Maximum characters per chunk
            chunk_overlap: Characters carried over from the previous chunk

        Raises:
            ConfigurationError: If chunk_overlap >= chunk_size or sizes are invalid
        """
        if chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ConfigurationError(f"chunk_overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ConfigurationError(
                f"chunk_overlap ({chunk_overlap}) must be less than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split_text(self, text: str) -> List[str]:
        """
        Split text into chunks

        Args:
            text: Raw (already redacted) document text

        Returns:
            Chunks in document order; empty list for empty/whitespace input
        """
        if not text or not text.strip():
            return []
        return self._split(text, SEPARATORS)

    def _split(self, text: str, separators: List[str]) -> List[str]:
        if len(text) <= self.chunk_size:
            stripped = text.strip()
            return [stripped] if stripped else []

        separator, lower_separators = self._pick_separator(text, separators)
        if separator == "":
            return self._split_windows(text)

        chunks: List[str] = []
        current = ""

        segments = text.split(separator)
        for index, segment in enumerate(segments):
            # The separator belongs between segments; the last one has none after it
            piece = segment + separator if index < len(segments) - 1 else segment
            if not piece:
                continue

            if len(current) + len(piece) <= self.chunk_size:
                current += piece
                continue

            self._close(current, chunks)

            if len(piece) > self.chunk_size:
                # Oversized segment: descend to the next separators instead of force-splitting
                chunks.extend(self._split(piece, lower_separators))
                current = ""
            else:
                current = self._overlap_tail(current, len(piece)) + piece

        self._close(current, chunks)
        return chunks

    @staticmethod
    def _pick_separator(text: str, separators: List[str]) -> Tuple[str, List[str]]:
        """First separator present in text, plus the lower-priority remainder"""
        for i, sep in enumerate(separators):
            if sep == "" or sep in text:
                return sep, separators[i + 1:]
        return "", []

    def _split_windows(self, text: str) -> List[str]:
        """Raw character windows of chunk_size advancing by chunk_size - chunk_overlap"""
        step = self.chunk_size - self.chunk_overlap
        chunks = []
        for start in range(0, len(text), step):
            window = text[start:start + self.chunk_size].strip()
            if window:
                chunks.append(window)
        return chunks

    def _overlap_tail(self, previous: str, incoming: int) -> str:
        """Tail of the closed chunk used to seed the next one, shortened to respect chunk_size"""
        budget = min(self.chunk_overlap, self.chunk_size - incoming, len(previous))
        if budget <= 0:
            return ""
        return previous[-budget:]

    @staticmethod
    def _close(chunk: str, chunks: List[str]) -> None:
        stripped = chunk.strip()
        if stripped:
            chunks.append(stripped)

    def get_config(self) -> Dict[str, int]:
        """Get the current configuration"""
        return {
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
        }

    def get_stats(self, chunks: List[str]) -> Dict:
        """Get chunking statistics"""
        if not chunks:
            return {}

        lengths = [len(c) for c in chunks]

        return {
            'total_chunks': len(chunks),
            'avg_chars': sum(lengths) / len(lengths),
            'min_chars': min(lengths),
            'max_chars': max(lengths)
        }
