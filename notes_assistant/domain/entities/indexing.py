"""Domain entity for indexing runs: status and progress reporting."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IndexingStatus(str, Enum):
    """Lifecycle states of an owner's knowledge index."""

    IDLE = "idle"
    DOWNLOADING_MODEL = "downloading_model"
    INDEXING = "indexing"
    READY = "ready"
    ERROR = "error"


@dataclass
class IndexingProgress:
    """Progress snapshot for UI polling or subscription.

    ``stage`` is one of ``"idle"``, ``"download"`` or ``"index"``.
    """

    stage: str = "idle"
    download_ratio: float | None = None
    indexed_count: int | None = None
    total_count: int | None = None
    message: str | None = None
    failed_sources: list[str] = field(default_factory=list)

    def mark_downloading(self, ratio: float = 0.0) -> None:
        """Transition to the model download stage."""
        self.stage = "download"
        self.download_ratio = max(0.0, min(1.0, ratio))
        self.indexed_count = None
        self.total_count = None
        self.message = "Downloading embedding model"

    def mark_indexing(self, total: int) -> None:
        """Transition to the indexing stage with ``total`` sources queued."""
        self.stage = "index"
        self.download_ratio = None
        self.indexed_count = 0
        self.total_count = total
        self.message = f"Indexing {total} sources"
        self.failed_sources = []

    def mark_indexed(self, indexed: int) -> None:
        self.indexed_count = indexed
        self.message = f"Indexed {indexed}/{self.total_count or 0} sources"

    def mark_ready(self) -> None:
        """Run finished; counts are kept so the UI can show the last result."""
        self.stage = "idle"
        self.download_ratio = None
        failed = len(self.failed_sources)
        indexed = self.indexed_count or 0
        self.message = (
            f"Indexed {indexed - failed} sources, {failed} failed"
            if failed
            else f"Indexed {indexed} sources"
        )

    def mark_failed(self, message: str) -> None:
        self.stage = "idle"
        self.download_ratio = None
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "download_ratio": self.download_ratio,
            "indexed_count": self.indexed_count,
            "total_count": self.total_count,
            "message": self.message,
            "failed_sources": list(self.failed_sources),
        }
