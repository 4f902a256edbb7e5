"""
Search Filters - Scope retrieval to files, folders or tags

A filter is either NO_FILTER (match everything) or a ScopeFilter. A document
matches a ScopeFilter if ANY of these hold:
- its path is one of ``files``
- it lives in (or is) one of ``folders``
- it carries a tag equal to, or nested under, one of ``tags``

Folder filtering and folder exclusion share ``path_in_folder`` so both use
the same normalization.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple, Union

from vaultrag.vault.interface import MetadataSource


def normalize_folder(folder: str) -> str:
    """Strip whitespace, backslashes and surrounding slashes: ' /Projects/ ' -> 'Projects'"""
    return folder.strip().replace("\\", "/").strip("/")


def path_in_folder(path: str, folder: str) -> bool:
    """
    True if path is the folder itself or lives beneath it

    Examples:
        >>> path_in_folder("Projects/x.md", "Projects")
        True
        >>> path_in_folder("ProjectsArchive/x.md", "Projects")
        False
    """
    normalized = normalize_folder(folder)
    if not normalized:
        return False
    return path == normalized or path.startswith(normalized + "/")


def normalize_tag(tag: str) -> str:
    """Lowercase and drop a leading '#': '#Work/Meetings' -> 'work/meetings'"""
    return tag.strip().lstrip("#").lower()


def tag_matches(document_tag: str, wanted: str) -> bool:
    """True if document_tag equals wanted or is nested under it (wanted/...)"""
    doc = normalize_tag(document_tag)
    want = normalize_tag(wanted)
    if not want:
        return False
    return doc == want or doc.startswith(want + "/")


class NoFilter:
    """The 'no filter' variant: every document matches"""

    _instance: Optional["NoFilter"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_FILTER"

    def __bool__(self) -> bool:
        return False


NO_FILTER = NoFilter()


@dataclass(frozen=True)
class ScopeFilter:
    """Explicit retrieval scope; at least one member is non-empty"""
    files: FrozenSet[str] = frozenset()
    folders: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    def describe(self) -> str:
        """Human-readable scope for prompts and logs"""
        parts = []
        if self.files:
            parts.append("files: " + ", ".join(sorted(self.files)))
        if self.folders:
            parts.append("folders: " + ", ".join(self.folders))
        if self.tags:
            parts.append("tags: " + ", ".join("#" + normalize_tag(t) for t in self.tags))
        return "; ".join(parts)


SearchFilter = Union[NoFilter, ScopeFilter]


def make_filter(
    files: Optional[Iterable[str]] = None,
    folders: Optional[Iterable[str]] = None,
    tags: Optional[Iterable[str]] = None,
) -> SearchFilter:
    """Build a filter, collapsing an all-empty selection to NO_FILTER"""
    file_set = frozenset(f for f in (files or ()) if f)
    folder_tuple = tuple(normalize_folder(f) for f in (folders or ()) if normalize_folder(f))
    tag_tuple = tuple(normalize_tag(t) for t in (tags or ()) if normalize_tag(t))

    if not file_set and not folder_tuple and not tag_tuple:
        return NO_FILTER
    return ScopeFilter(files=file_set, folders=folder_tuple, tags=tag_tuple)


class FilterMatcher:
    """
    Evaluates a filter against document paths

    Tag lookups are memoized per matcher, so build one per search: many
    chunks share a document and tags are read from the live metadata source.
    """

    def __init__(self, search_filter: SearchFilter, metadata_source: Optional[MetadataSource] = None):
        self.search_filter = search_filter
        self.metadata_source = metadata_source
        self._decisions: Dict[str, bool] = {}

    def matches(self, path: str) -> bool:
        if not isinstance(self.search_filter, ScopeFilter):
            return True
        if path not in self._decisions:
            self._decisions[path] = self._evaluate(path)
        return self._decisions[path]

    def _evaluate(self, path: str) -> bool:
        scope = self.search_filter

        if path in scope.files:
            return True
        if any(path_in_folder(path, folder) for folder in scope.folders):
            return True
        if scope.tags and self.metadata_source is not None:
            document_tags: Set[str] = self.metadata_source.get_tags(path)
            return any(tag_matches(doc_tag, wanted) for doc_tag in document_tags for wanted in scope.tags)
        return False
