"""
Vault access - document source, tag metadata and change detection
"""

from .interface import DocumentInfo, DocumentSource, MetadataSource
from .filesystem import FileSystemVault, SecurityError
from .metadata import MetadataCache, extract_tags
from .debouncer import PathDebouncer
from .watcher import VaultEvent, VaultEventType, VaultWatcher

__all__ = [
    "DocumentInfo",
    "DocumentSource",
    "MetadataSource",
    "FileSystemVault",
    "SecurityError",
    "MetadataCache",
    "extract_tags",
    "PathDebouncer",
    "VaultEvent",
    "VaultEventType",
    "VaultWatcher",
]
