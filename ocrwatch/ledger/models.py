from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class ProcessingStatus(str, Enum):
    """Lifecycle of one detected image."""

    PROCESSING = "processing"
    OCR_COMPLETED = "ocr_completed"
    OCR_FAILED = "ocr_failed"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "ProcessingStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    # processing -> completed is the "no text found" short-circuit
    ProcessingStatus.PROCESSING: frozenset(
        {
            ProcessingStatus.OCR_COMPLETED,
            ProcessingStatus.OCR_FAILED,
            ProcessingStatus.COMPLETED,
        }
    ),
    ProcessingStatus.OCR_COMPLETED: frozenset(
        {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.OCR_FAILED: frozenset(),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED, ProcessingStatus.OCR_FAILED}
)
FAILURE_STATUSES = frozenset({ProcessingStatus.FAILED, ProcessingStatus.OCR_FAILED})


@dataclass(frozen=True)
class ProcessingRecord:
    """Snapshot of one image's trip through the pipeline."""

    id: str
    image_path: str
    created_at: datetime
    updated_at: datetime
    status: ProcessingStatus = ProcessingStatus.PROCESSING
    ocr_text: str | None = None
    llm_result: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """JSON-ready representation."""
        data = asdict(self)
        data["status"] = self.status.value
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data


@dataclass(frozen=True)
class RecentStats:
    """Counts restricted to the recent window."""

    total: int = 0
    completed: int = 0
    failed: int = 0


@dataclass(frozen=True)
class LedgerStats:
    """Statistics derived from the ledger contents."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    processing: int = 0
    success_rate: str = "0%"
    recent: RecentStats = field(default_factory=RecentStats)
