"""
Notifiers - Silent, terminal and fan-out progress reporting

Which notifiers run is decided by the ``notifications`` config section:

    notifications:
      console:
        enabled: true
        show_progress_bar: true
"""

import logging
import sys
import time
from typing import Any, Dict, List, Optional, TextIO

from .events import NotifierInterface, ProgressEvent

logger = logging.getLogger(__name__)

BAR_WIDTH = 20


class NullNotifier:
    """Discards everything (library default, --json output)"""

    def start(self, label: str) -> None:
        pass

    def notify(self, event: ProgressEvent) -> None:
        pass

    def finish(self, success: bool, message: str = "") -> None:
        pass


class ConsoleNotifier:
    """
    Human-readable progress on a terminal stream

    Counted events of the same stage redraw one line in place until the
    stage's last item, so a 500-document run prints one CHUNKING line.
    """

    def __init__(
        self,
        output: TextIO = sys.stderr,
        show_progress_bar: bool = True,
        use_colors: Optional[bool] = None,
    ):
        self.output = output
        self.show_progress_bar = show_progress_bar
        if use_colors is None:
            use_colors = bool(getattr(output, "isatty", lambda: False)())
        self.use_colors = use_colors
        self._started_at: Optional[float] = None
        self._line_open = False

    def _paint(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        codes = {"green": "32", "red": "31", "cyan": "36", "dim": "90"}
        return f"\033[{codes[color]}m{text}\033[0m"

    def _bar(self, event: ProgressEvent) -> str:
        filled = BAR_WIDTH * event.current // event.total
        return f"[{'█' * filled}{'░' * (BAR_WIDTH - filled)}] {event.current}/{event.total}"

    def _close_line(self) -> None:
        if self._line_open:
            self.output.write("\n")
            self._line_open = False

    def start(self, label: str) -> None:
        self._close_line()
        self._started_at = time.monotonic()
        self.output.write(f"\n📚 {self._paint(label, 'cyan')}\n")

    def notify(self, event: ProgressEvent) -> None:
        if event.is_complete:
            return
        if event.is_error:
            self._close_line()
            self.output.write(f"   {self._paint('❌ ' + (event.error or event.message), 'red')}\n")
            return

        line = f"   {event.emoji} {event.message}"
        if event.counted and self.show_progress_bar:
            line += " " + self._paint(self._bar(event), "dim")

        if event.counted and event.total > 1:
            # Redraw in place until the last item of the stage
            self.output.write(f"\r{line}")
            self._line_open = event.current < event.total
            if not self._line_open:
                self.output.write("\n")
        else:
            self._close_line()
            self.output.write(line + "\n")
        self.output.flush()

    def finish(self, success: bool, message: str = "") -> None:
        self._close_line()
        elapsed = time.monotonic() - self._started_at if self._started_at is not None else 0.0
        self._started_at = None

        if success:
            status = self._paint(f"✅ {message or 'Complete'}", "green")
        else:
            status = self._paint(f"❌ {message or 'Failed'}", "red")
        self.output.write(f"   {status} {self._paint(f'({elapsed:.1f}s)', 'dim')}\n")
        self.output.flush()


class CompositeNotifier:
    """Forwards every call to several notifiers; one failing never affects the others or the run"""

    def __init__(self, notifiers: List[NotifierInterface]):
        self.notifiers = notifiers

    def _each(self, method: str, *args) -> None:
        for notifier in list(self.notifiers):
            try:
                getattr(notifier, method)(*args)
            except Exception as e:
                logger.debug(f"{type(notifier).__name__}.{method} failed: {e}")

    def start(self, label: str) -> None:
        self._each("start", label)

    def notify(self, event: ProgressEvent) -> None:
        self._each("notify", event)

    def finish(self, success: bool, message: str = "") -> None:
        self._each("finish", success, message)

    def add(self, notifier: NotifierInterface) -> None:
        self.notifiers.append(notifier)

    def remove(self, notifier: NotifierInterface) -> bool:
        if notifier not in self.notifiers:
            return False
        self.notifiers.remove(notifier)
        return True

    def __len__(self) -> int:
        return len(self.notifiers)


def create_notifier_from_config(notifications_config: Dict[str, Any]) -> NotifierInterface:
    """Build the notifier described by the 'notifications' section (empty => silent)"""
    notifiers: List[NotifierInterface] = []

    for kind, options in (notifications_config or {}).items():
        options = options or {}
        if kind != "console":
            logger.warning(f"Ignoring unknown notifier type '{kind}'")
            continue
        if options.get("enabled", True):
            notifiers.append(ConsoleNotifier(show_progress_bar=options.get("show_progress_bar", True)))

    if not notifiers:
        return NullNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
