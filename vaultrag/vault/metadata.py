"""
Metadata Cache - Tags and folders of vault documents

Tags come from YAML frontmatter (``tags:`` or ``tag:``, list or
comma/space separated string) and from inline ``#tags`` in the body.

The cache is an explicit object owned by the indexer. Entries are dropped
through the on_created / on_modified / on_deleted / on_renamed hooks, which
the indexer calls for every vault event; nothing expires on a timer.
"""

import logging
import posixpath
import re
from typing import Dict, List, Optional, Set, Tuple

import yaml

from vaultrag.vault.interface import DocumentSource

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r'\A---\s*\n(.*?)\n---\s*(?:\n|\Z)', re.DOTALL)
CODE_FENCE_PATTERN = re.compile(r'```.*?```', re.DOTALL)
INLINE_TAG_PATTERN = re.compile(r'(?<![\w/#&])#([\w\-/]*[A-Za-z_\-][\w\-/]*)')


def split_frontmatter(text: str) -> Tuple[Optional[dict], str]:
    """
    Separate YAML frontmatter from the body

    Returns:
        (frontmatter dict or None, body text)
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return None, text

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring malformed frontmatter: {e}")
        return None, text[match.end():]

    return (data if isinstance(data, dict) else None), text[match.end():]


def _frontmatter_tags(frontmatter: dict) -> Set[str]:
    tags: Set[str] = set()
    for key in ('tags', 'tag'):
        value = frontmatter.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            items = re.split(r'[,\s]+', value)
        elif isinstance(value, (list, tuple)):
            items = [str(item) for item in value if item is not None]
        else:
            items = [str(value)]
        tags.update(item.strip().lstrip('#') for item in items if item.strip().lstrip('#'))
    return tags


def extract_tags(text: str) -> Set[str]:
    """
    All tags of a document, without the leading '#'

    Examples:
        >>> sorted(extract_tags("---\\ntags: [work]\\n---\\nSee #project/alpha"))
        ['project/alpha', 'work']
    """
    frontmatter, body = split_frontmatter(text)
    tags = _frontmatter_tags(frontmatter) if frontmatter else set()

    body = CODE_FENCE_PATTERN.sub('', body)
    tags.update(match.rstrip('/') for match in INLINE_TAG_PATTERN.findall(body))
    return tags


class MetadataCache:
    """Per-document tag cache plus vault-wide tag and folder listings"""

    def __init__(self, source: DocumentSource):
        self.source = source
        self._tags: Dict[str, Set[str]] = {}
        self._all_tags: Optional[List[str]] = None
        self._all_folders: Optional[List[str]] = None
        self.hits = 0
        self.misses = 0

    def get_tags(self, path: str) -> Set[str]:
        """Tags of one document (empty set if it cannot be read)"""
        if path in self._tags:
            self.hits += 1
            return self._tags[path]

        self.misses += 1
        try:
            tags = extract_tags(self.source.read_document(path))
        except Exception as e:
            logger.warning(f"Cannot read tags of {path}: {e}")
            tags = set()

        self._tags[path] = tags
        return tags

    def all_tags(self) -> List[str]:
        """Sorted, de-duplicated tags across the vault"""
        if self._all_tags is None:
            tags: Set[str] = set()
            for document in self.source.list_documents():
                tags.update(self.get_tags(document.path))
            self._all_tags = sorted(tags, key=str.lower)
        return list(self._all_tags)

    def all_folders(self) -> List[str]:
        """Sorted folders (and their ancestors) that contain documents"""
        if self._all_folders is None:
            folders: Set[str] = set()
            for document in self.source.list_documents():
                folder = posixpath.dirname(document.path)
                while folder:
                    folders.add(folder)
                    folder = posixpath.dirname(folder)
            self._all_folders = sorted(folders)
        return list(self._all_folders)

    # Invalidation hooks

    def on_created(self, path: str) -> None:
        self._tags.pop(path, None)
        self._all_tags = None
        self._all_folders = None

    def on_modified(self, path: str) -> None:
        self._tags.pop(path, None)
        self._all_tags = None

    def on_deleted(self, path: str) -> None:
        self._tags.pop(path, None)
        self._all_tags = None
        self._all_folders = None

    def on_renamed(self, old_path: str, new_path: str) -> None:
        tags = self._tags.pop(old_path, None)
        if tags is not None:
            self._tags[new_path] = tags
        self._all_folders = None

    def clear(self) -> None:
        self._tags.clear()
        self._all_tags = None
        self._all_folders = None

    def get_stats(self) -> Dict:
        return {
            'cached_documents': len(self._tags),
            'hits': self.hits,
            'misses': self.misses,
        }
