"""
Blob Storage - Whole-file JSON persistence for the vector store

The vector store is the only structured payload written here. Saves are
whole-file overwrites (temp file + atomic replace); concurrent saves must be
serialized by the caller.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for opaque persistent storage."""

    def load(self) -> Optional[Any]:
        """Return the stored payload, or None if nothing usable is stored."""
        ...

    def save(self, data: Any) -> None:
        """Persist the payload, replacing whatever was stored."""
        ...


class JsonFileBlobStore:
    """Store a JSON document in a single local file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the file

        Returns:
            Parsed JSON, or None when the file is absent or unreadable
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return None

    def save(self, data: Dict[str, Any]) -> None:
        """Write the file atomically (raises OSError on failure)"""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class MemoryBlobStore:
    """In-process blob store (no persistence); useful for dry runs and tests"""

    def __init__(self, data: Optional[Any] = None):
        self.data = data
        self.save_count = 0

    def load(self) -> Optional[Any]:
        return self.data

    def save(self, data: Any) -> None:
        # Round-trip through JSON so callers see exactly what a file would hold
        self.data = json.loads(json.dumps(data))
        self.save_count += 1
