"""
Progress notifications for indexing runs

Usage:
    from vaultrag.notifications import ConsoleNotifier, IndexingStage, ProgressEvent

    notifier = ConsoleNotifier()
    notifier.start("Rebuilding index")
    notifier.notify(ProgressEvent(IndexingStage.EMBEDDING, "Embedding chunks", current=1, total=4))
    notifier.finish(success=True, message="Embedded 80 chunks")
"""

from .events import STAGE_INFO, IndexingStage, NotifierInterface, ProgressEvent
from .notifiers import CompositeNotifier, ConsoleNotifier, NullNotifier, create_notifier_from_config

__all__ = [
    "IndexingStage",
    "ProgressEvent",
    "STAGE_INFO",
    "NotifierInterface",
    "NullNotifier",
    "ConsoleNotifier",
    "CompositeNotifier",
    "create_notifier_from_config",
]
