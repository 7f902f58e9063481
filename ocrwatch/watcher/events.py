from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ocrwatch.exceptions import OcrWatchError
from ocrwatch.watcher.dedup import Admission


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DetectedEvent:
    """A new, stable image ready for the pipeline.

    The admission stays held until the consumer exits it.
    """

    path: Path
    admission: Admission
    detected_at: datetime = field(default_factory=_utcnow)

    @property
    def file_name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class FileRemovedEvent:
    path: Path
    removed_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class WatcherErrorEvent:
    error: OcrWatchError
    occurred_at: datetime = field(default_factory=_utcnow)


WatchEvent = DetectedEvent | FileRemovedEvent | WatcherErrorEvent


@dataclass(frozen=True)
class WatcherStatus:
    is_running: bool
    watch_folder: str
    in_flight_count: int
