from __future__ import annotations

import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ocrwatch.ledger.exceptions import StatusTransitionError
from ocrwatch.ledger.models import (
    FAILURE_STATUSES,
    LedgerStats,
    ProcessingRecord,
    ProcessingStatus,
    RecentStats,
)
from ocrwatch.logging.logger import Log

RECENT_WINDOW = timedelta(hours=1)
DEFAULT_CAPACITY = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    """Naive cutoffs are taken to be UTC, like every stored timestamp."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class ResultLedger:
    """Bounded, insertion-ordered, in-memory store of processing records.

    The oldest record is evicted once capacity is exceeded. Records are
    frozen snapshots; the only way to change one is ``update``.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be greater than zero")
        self._capacity = capacity
        self._clock = clock
        self._records: OrderedDict[str, ProcessingRecord] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._records)

    def add(
        self,
        image_path: str | Path,
        status: ProcessingStatus = ProcessingStatus.PROCESSING,
    ) -> ProcessingRecord:
        """Create a record, evicting the oldest one if the ledger is full."""
        now = self._clock()
        record = ProcessingRecord(
            id=uuid.uuid4().hex,
            image_path=str(image_path),
            created_at=now,
            updated_at=now,
            status=status,
        )
        self._records[record.id] = record
        if len(self._records) > self._capacity:
            evicted_id, _ = self._records.popitem(last=False)
            Log.debug("Evicted oldest result", id=evicted_id)
        Log.debug("Result added", id=record.id, status=record.status.value, image=record.image_path)
        return record

    def update(
        self,
        record_id: str,
        *,
        status: ProcessingStatus | None = None,
        ocr_text: str | None = None,
        llm_result: str | None = None,
        error: str | None = None,
    ) -> ProcessingRecord | None:
        """Apply changes to a record. Returns None if the id is unknown.

        Raises:
            StatusTransitionError: if the status would regress or a set-once
                field would be overwritten.
        """
        current = self._records.get(record_id)
        if current is None:
            Log.warning("Result to update not found", id=record_id)
            return None

        target = current.status if status is None else ProcessingStatus(status)
        if status is not None and not current.status.can_transition_to(target):
            raise StatusTransitionError(
                f"Record {record_id}: {current.status.value} -> {target.value} is not allowed"
            )
        if ocr_text is not None and current.ocr_text is not None:
            raise StatusTransitionError(f"Record {record_id}: ocr_text is already set")
        if llm_result is not None and current.llm_result is not None:
            raise StatusTransitionError(f"Record {record_id}: llm_result is already set")
        if llm_result is not None and target is not ProcessingStatus.COMPLETED:
            raise StatusTransitionError(
                f"Record {record_id}: llm_result requires status completed"
            )
        if error is not None and target not in FAILURE_STATUSES:
            raise StatusTransitionError(
                f"Record {record_id}: error requires a failure status, got {target.value}"
            )

        updated = replace(
            current,
            status=target,
            ocr_text=current.ocr_text if ocr_text is None else ocr_text,
            llm_result=current.llm_result if llm_result is None else llm_result,
            error=current.error if error is None else error,
            updated_at=self._clock(),
        )
        self._records[record_id] = updated
        Log.debug("Result updated", id=record_id, status=updated.status.value)
        return updated

    def get(self, record_id: str) -> ProcessingRecord | None:
        return self._records.get(record_id)

    def list(
        self,
        status: ProcessingStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ProcessingRecord]:
        """Return matching records oldest-first; ``limit`` keeps the newest matches."""
        results = list(self._records.values())
        if status is not None:
            wanted = ProcessingStatus(status)
            results = [r for r in results if r.status is wanted]
        if since is not None:
            cutoff = _as_utc(since)
            results = [r for r in results if r.created_at >= cutoff]
        if limit is not None:
            results = results[-limit:] if limit > 0 else []
        return results

    def stats(self) -> LedgerStats:
        """Derive totals, success rate and the last-hour window."""
        records = list(self._records.values())
        total = len(records)
        completed = sum(1 for r in records if r.status is ProcessingStatus.COMPLETED)
        failed = sum(1 for r in records if r.status in FAILURE_STATUSES)
        processing = sum(1 for r in records if not r.status.is_terminal)
        success_rate = f"{completed / total * 100:.2f}%" if total else "0%"

        cutoff = self._clock() - RECENT_WINDOW
        recent = [r for r in records if r.created_at >= cutoff]
        return LedgerStats(
            total=total,
            completed=completed,
            failed=failed,
            processing=processing,
            success_rate=success_rate,
            recent=RecentStats(
                total=len(recent),
                completed=sum(1 for r in recent if r.status is ProcessingStatus.COMPLETED),
                failed=sum(1 for r in recent if r.status in FAILURE_STATUSES),
            ),
        )

    def clear(self, older_than: datetime | None = None) -> int:
        """Remove all records, or only those created before ``older_than``."""
        before = len(self._records)
        if older_than is None:
            self._records.clear()
        else:
            older_than = _as_utc(older_than)
            self._records = OrderedDict(
                (record_id, record)
                for record_id, record in self._records.items()
                if record.created_at >= older_than
            )
        cleared = before - len(self._records)
        Log.info("Results cleared", cleared=cleared, remaining=len(self._records))
        return cleared

    def recent(self, count: int = 10) -> list[ProcessingRecord]:
        """Newest ``count`` records, newest first."""
        if count <= 0:
            return []
        return list(self._records.values())[-count:][::-1]

    def failed_records(self) -> list[ProcessingRecord]:
        return [r for r in self._records.values() if r.status in FAILURE_STATUSES]

    def completed_records(self) -> list[ProcessingRecord]:
        return self.list(status=ProcessingStatus.COMPLETED)

    def export(
        self,
        status: ProcessingStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> dict[str, object]:
        """JSON-ready dump of the matching records."""
        results = self.list(status=status, since=since, limit=limit)
        return {
            "export_time": self._clock().isoformat(),
            "count": len(results),
            "results": [r.to_dict() for r in results],
        }
