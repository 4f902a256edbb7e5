"""
Path Debouncer - Coalesce bursts of changes to the same document

Each path has at most one pending action. Scheduling again for the same path
cancels the pending timer and starts a new one, so only the last change of a
burst runs, `delay` seconds after the burst ends. Once an action has started
it is no longer pending and always runs to completion.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set, Tuple

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class PathDebouncer:
    """Trailing-edge debouncer keyed by document path"""

    def __init__(self, delay: float = 2.0):
        self.delay = delay
        self._pending: Dict[str, Tuple[asyncio.Task, Action]] = {}
        self._running: Set[asyncio.Task] = set()

    def schedule(self, path: str, action: Action) -> None:
        """Run `action` after `delay` seconds unless rescheduled first (needs a running loop)"""
        self.cancel(path)
        task = asyncio.ensure_future(self._fire(path, action))
        self._pending[path] = (task, action)

    def cancel(self, path: str) -> bool:
        """Drop the pending action for path; True if there was one"""
        entry = self._pending.pop(path, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def cancel_all(self) -> int:
        count = len(self._pending)
        for task, _action in self._pending.values():
            task.cancel()
        self._pending.clear()
        return count

    async def _fire(self, path: str, action: Action) -> None:
        await asyncio.sleep(self.delay)

        entry = self._pending.get(path)
        if entry is not None and entry[0] is asyncio.current_task():
            del self._pending[path]

        task = asyncio.current_task()
        self._running.add(task)
        try:
            await self._run(path, action)
        finally:
            self._running.discard(task)

    async def _run(self, path: str, action: Action) -> None:
        try:
            await action()
        except Exception as e:
            logger.error(f"Debounced action for {path} failed: {e}")

    async def flush(self) -> int:
        """
        Run every pending action now (in scheduling order) and wait for
        actions already in progress

        Returns:
            Number of pending actions that were run
        """
        pending = list(self._pending.items())
        self._pending.clear()

        for path, (task, action) in pending:
            task.cancel()
            await self._run(path, action)

        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        return len(pending)

    def is_pending(self, path: str) -> bool:
        return path in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)
