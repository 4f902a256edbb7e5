"""
Filesystem Vault - Documents read from a directory tree

Document paths are vault-relative and "/"-separated ("Projects/Plan.md").
Every read resolves the path against the vault root and refuses anything
that lands outside it (.. components, absolute paths, symlinks out).
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from vaultrag.vault.interface import DocumentInfo

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = {'.md'}

TEXT_EXTENSIONS = {
    '.md', '.txt', '.py', '.ts', '.js', '.json', '.sh', '.yml', '.yaml',
}

IGNORED_DIRECTORIES = {
    '.git',
    '.obsidian',
    '.trash',
    '.vault-rag',
    '.venv',
    'node_modules',
    '__pycache__',
}


class SecurityError(Exception):
    """Custom exception for security violations"""
    pass


class FileSystemVault:
    """DocumentSource over a local directory"""

    def __init__(
        self,
        root: Union[str, Path],
        markdown_only: bool = True,
        ignored_directories: Optional[Iterable[str]] = None,
    ):
        """
        Initialize vault

        Args:
            root: Vault directory
            markdown_only: Index only .md files (otherwise all text files)
            ignored_directories: Directory names never descended into
        """
        self.root = Path(root).expanduser().resolve()
        self.markdown_only = markdown_only
        self.ignored_directories = set(IGNORED_DIRECTORIES if ignored_directories is None else ignored_directories)

        if not self.root.is_dir():
            logger.warning(f"Vault directory not found: {self.root}")

    @property
    def extensions(self) -> set:
        return MARKDOWN_EXTENSIONS if self.markdown_only else TEXT_EXTENSIONS

    def resolve(self, path: str) -> Path:
        """
        Map a vault-relative path to an absolute path inside the vault

        Raises:
            SecurityError: If the path resolves outside the vault root

        Examples:
            >>> vault.resolve("../../etc/passwd")
            SecurityError: Path traversal attempt detected
        """
        if not isinstance(path, str):
            raise TypeError(f"Expected string path, got {type(path).__name__}")

        try:
            resolved = (self.root / path).resolve()
        except (ValueError, OSError) as e:
            raise SecurityError(f"Invalid path: {path} ({e})")

        try:
            resolved.relative_to(self.root)
        except ValueError:
            raise SecurityError(
                f"Path traversal attempt: {path} resolves to {resolved}, "
                f"which is outside the vault {self.root}"
            )
        return resolved

    def relative_path(self, absolute: Path) -> str:
        return absolute.relative_to(self.root).as_posix()

    def is_indexable(self, path: str) -> bool:
        """True if the path has an indexed extension and no ignored directory"""
        parts = path.split("/")
        if any(part in self.ignored_directories for part in parts[:-1]):
            return False
        return Path(path).suffix.lower() in self.extensions

    def _info(self, file_path: Path) -> DocumentInfo:
        stat = file_path.stat()
        return DocumentInfo(
            path=self.relative_path(file_path),
            name=file_path.stem,
            extension=file_path.suffix.lstrip('.'),
            size=stat.st_size,
            created=getattr(stat, 'st_birthtime', stat.st_ctime),
            modified=stat.st_mtime,
        )

    def list_documents(self) -> List[DocumentInfo]:
        """All indexable documents, sorted by path"""
        documents = []
        if not self.root.is_dir():
            return documents

        for file_path in self.root.rglob('*'):
            if not file_path.is_file():
                continue
            relative = self.relative_path(file_path)
            if not self.is_indexable(relative):
                continue
            try:
                documents.append(self._info(file_path))
            except OSError as e:
                logger.warning(f"Cannot stat {relative}: {e}")

        documents.sort(key=lambda d: d.path)
        logger.debug(f"Found {len(documents)} documents in {self.root}")
        return documents

    def get_document(self, path: str) -> Optional[DocumentInfo]:
        file_path = self.resolve(path)
        if not file_path.is_file():
            return None
        return self._info(file_path)

    def read_document(self, path: str) -> str:
        """
        Read a document's full text

        Raises:
            SecurityError: If the path escapes the vault
            OSError: If the file cannot be read
        """
        file_path = self.resolve(path)
        with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
            return f.read()
