"""
Progress Events - What the indexing pipeline reports while it runs

A run is bracketed by start(label) / finish(success, message); in between the
pipeline emits one ProgressEvent per unit of work (document chunked, batch
embedded, store saved).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional, Protocol, runtime_checkable


class IndexingStage(Enum):
    LOADING = auto()
    REDACTING = auto()
    CHUNKING = auto()
    EMBEDDING = auto()
    SAVING = auto()
    COMPLETE = auto()
    ERROR = auto()


# (emoji, label) per stage
STAGE_INFO = {
    IndexingStage.LOADING: ("📄", "Loading documents"),
    IndexingStage.REDACTING: ("🔒", "Redacting"),
    IndexingStage.CHUNKING: ("✂️", "Chunking"),
    IndexingStage.EMBEDDING: ("🔢", "Embedding"),
    IndexingStage.SAVING: ("💾", "Saving"),
    IndexingStage.COMPLETE: ("✅", "Complete"),
    IndexingStage.ERROR: ("❌", "Error"),
}

_UNKNOWN_STAGE = ("•", "Working")


@dataclass
class ProgressEvent:
    """
    One progress report

    `current` / `total` count work items within the stage (documents for
    CHUNKING, batches for EMBEDDING); total == 0 means "not counted".
    """
    stage: IndexingStage
    message: str
    current: int = 0
    total: int = 0
    timestamp: datetime = field(default_factory=datetime.now)
    file_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def counted(self) -> bool:
        return self.total > 0

    @property
    def percentage(self) -> float:
        return 100.0 * self.current / self.total if self.counted else 0.0

    @property
    def is_complete(self) -> bool:
        return self.stage is IndexingStage.COMPLETE

    @property
    def is_error(self) -> bool:
        return self.stage is IndexingStage.ERROR

    @property
    def emoji(self) -> str:
        return STAGE_INFO.get(self.stage, _UNKNOWN_STAGE)[0]

    @property
    def stage_description(self) -> str:
        return STAGE_INFO.get(self.stage, _UNKNOWN_STAGE)[1]

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.name,
            "message": self.message,
            "current": self.current,
            "total": self.total,
            "percentage": round(self.percentage, 1),
            "timestamp": self.timestamp.isoformat(),
            "file_path": self.file_path,
            "error": self.error,
        }

    def __str__(self) -> str:
        text = f"{self.emoji} {self.message}"
        if self.counted:
            text += f" [{self.current}/{self.total}] ({self.percentage:.0f}%)"
        return text


@runtime_checkable
class NotifierInterface(Protocol):
    """Receives the progress of indexing runs."""

    def start(self, label: str) -> None:
        ...

    def notify(self, event: ProgressEvent) -> None:
        ...

    def finish(self, success: bool, message: str = "") -> None:
        ...
