"""
Vault Watcher - Polling change detection for a FileSystemVault

Every poll takes a snapshot {path: (size, mtime)} of indexable documents and
diffs it against the previous one. A document that disappears while another
appears with the same size and mtime in the same poll is reported as a single
rename (moves keep both on most filesystems).
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from vaultrag.vault.filesystem import FileSystemVault

logger = logging.getLogger(__name__)

Signature = Tuple[int, float]
Snapshot = Dict[str, Signature]


class VaultEventType(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class VaultEvent:
    """A change to one document"""
    type: VaultEventType
    path: str
    old_path: Optional[str] = None    # RENAMED only

    def __str__(self) -> str:
        if self.type is VaultEventType.RENAMED:
            return f"{self.type.value}: {self.old_path} -> {self.path}"
        return f"{self.type.value}: {self.path}"


def diff_snapshots(previous: Snapshot, current: Snapshot) -> List[VaultEvent]:
    """
    Events that turn `previous` into `current`

    Renames are paired first; the remaining removals and additions become
    DELETED and CREATED events. Output order: renames, deletes, creates,
    modifications, each sorted by path.
    """
    removed = sorted(path for path in previous if path not in current)
    added = sorted(path for path in current if path not in previous)
    modified = sorted(path for path in current if path in previous and current[path] != previous[path])

    events: List[VaultEvent] = []
    unmatched_added = list(added)
    unmatched_removed = []

    for old_path in removed:
        match = next((p for p in unmatched_added if current[p] == previous[old_path]), None)
        if match is None:
            unmatched_removed.append(old_path)
            continue
        unmatched_added.remove(match)
        events.append(VaultEvent(VaultEventType.RENAMED, match, old_path=old_path))

    events.extend(VaultEvent(VaultEventType.DELETED, path) for path in unmatched_removed)
    events.extend(VaultEvent(VaultEventType.CREATED, path) for path in unmatched_added)
    events.extend(VaultEvent(VaultEventType.MODIFIED, path) for path in modified)
    return events


class VaultWatcher:
    """Polls a vault and reports document changes"""

    def __init__(self, vault: FileSystemVault, poll_interval: float = 5.0):
        self.vault = vault
        self.poll_interval = poll_interval
        self._snapshot: Snapshot = {}
        self.poll_count = 0

    def take_snapshot(self) -> Snapshot:
        return {doc.path: (doc.size, doc.modified) for doc in self.vault.list_documents()}

    def prime(self) -> None:
        """Record the current state without emitting events"""
        self._snapshot = self.take_snapshot()

    def poll(self) -> List[VaultEvent]:
        """Compare the vault against the last snapshot and advance it"""
        current = self.take_snapshot()
        events = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        self.poll_count += 1
        if events:
            logger.debug(f"Detected {len(events)} changes")
        return events

    async def watch(
        self,
        handler: Callable[[VaultEvent], Awaitable[None]],
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Poll until `stop` is set, awaiting handler(event) for each change

        Handler errors are logged and do not stop the watcher.
        """
        stop = stop or asyncio.Event()
        logger.info(f"Watching {self.vault.root} (every {self.poll_interval}s)")

        while not stop.is_set():
            for event in self.poll():
                try:
                    await handler(event)
                except Exception as e:
                    logger.error(f"Failed to handle {event}: {e}")

            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
