"""Filesystem watcher for the image pipeline.

A watchdog observer thread reports raw changes; they are handed to the event
loop with ``call_soon_threadsafe`` and all filtering, deduplication and
stability waiting happens on the loop thread. Consumers read typed events from
``FileWatcher.events()``.
"""

import asyncio
import os
from collections.abc import AsyncIterator, Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import FileError, ServiceError
from ocrwatch.logging.logger import Log
from ocrwatch.watcher.dedup import Admission, WatchDeduplicator
from ocrwatch.watcher.events import (
    DetectedEvent,
    FileRemovedEvent,
    WatcherErrorEvent,
    WatcherStatus,
    WatchEvent,
)
from ocrwatch.watcher.stability import StabilityGate, StabilityResult

CREATED = "created"
MODIFIED = "modified"
DELETED = "deleted"
DIR_DELETED = "dir_deleted"


class ImageEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards file events to the event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        sink: Callable[[str, Path], None],
    ) -> None:
        super().__init__()
        self._loop = loop
        self._sink = sink

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(DIR_DELETED if event.is_directory else DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Atomic saves write a temp file then rename it into place."""
        if event.is_directory:
            self._forward(DIR_DELETED, event.src_path)
            return
        self._forward(DELETED, event.src_path)
        self._forward(CREATED, event.dest_path)

    def _forward(self, kind: str, raw_path: str | bytes) -> None:
        if self._loop.is_closed():
            return
        path = Path(os.fsdecode(raw_path))
        try:
            self._loop.call_soon_threadsafe(self._sink, kind, path)
        except RuntimeError:
            # loop closed between the check and the call
            Log.debug("Event loop closed, dropping file event", kind=kind, path=path)


class FileWatcher:
    """Emits one DetectedEvent per new, stable, supported image under the watch folder."""

    def __init__(
        self,
        settings: Settings,
        gate: StabilityGate | None = None,
        deduplicator: WatchDeduplicator | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self._settings = settings
        self._root = settings.watch_folder
        self._gate = gate or StabilityGate(
            poll_interval_seconds=settings.stability_poll_interval_seconds,
            threshold=settings.stability_threshold,
            max_wait_seconds=settings.stability_max_wait_seconds,
        )
        self._deduplicator = deduplicator or WatchDeduplicator()
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[WatchEvent | None] = asyncio.Queue()
        self._pending: set[asyncio.Task[None]] = set()
        self._monitor: asyncio.Task[None] | None = None
        self._health_interval = settings.watch_health_interval_seconds
        self._subscription_lost = False
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def deduplicator(self) -> WatchDeduplicator:
        return self._deduplicator

    async def start(self) -> None:
        """Subscribe to changes under the watch folder.

        Raises:
            FileError: if the folder is missing or cannot be watched.
        """
        if self._running:
            return
        root = self._root.expanduser()
        if not root.is_dir():
            raise FileError(f"Watch folder does not exist: {root}")
        self._root = root.resolve()
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        Log.info("Starting file watcher", folder=self._root)
        observer = self._observer_factory()
        try:
            observer.schedule(
                ImageEventHandler(self._loop, self._on_raw_event),
                str(self._root),
                recursive=True,
            )
            observer.start()
        except OSError as exc:
            raise FileError(f"Failed to watch {self._root}: {exc}", cause=exc) from exc

        self._observer = observer
        self._subscription_lost = False
        self._running = True
        self._monitor = self._loop.create_task(self._monitor_subscription())
        Log.info("File watcher ready", folder=self._root)

    def stop(self) -> None:
        """Tear down the subscription. Safe to call more than once."""
        if not self._running and self._observer is None:
            return
        self._running = False

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

        if self._monitor is not None:
            self._monitor.cancel()
            self._monitor = None

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        self._deduplicator.clear()
        self._queue.put_nowait(None)
        Log.info("File watcher stopped")

    async def events(self) -> AsyncIterator[WatchEvent]:
        """Yield watcher events until ``stop`` is called."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def status(self) -> WatcherStatus:
        return WatcherStatus(
            is_running=self._running,
            watch_folder=str(self._root),
            in_flight_count=len(self._deduplicator),
        )

    def is_eligible(self, path: Path) -> bool:
        """Supported image extension and no hidden component below the root."""
        try:
            relative = path.relative_to(self._root)
        except ValueError:
            relative = Path(path.name)
        if any(part.startswith(".") for part in relative.parts):
            return False
        return self._settings.is_image_file(path)

    def _on_raw_event(self, kind: str, path: Path) -> None:
        if not self._running:
            return
        try:
            if kind == DIR_DELETED:
                if path == self._root:
                    self._report_subscription_lost(f"Watch folder was removed: {path}")
                return
            if not self.is_eligible(path):
                Log.debug("Ignoring non-image file", file=path.name, kind=kind)
                return
            if kind == CREATED:
                self._on_created(path)
            elif kind == MODIFIED:
                Log.debug("Image file changed", file=path.name)
            elif kind == DELETED:
                self._on_deleted(path)
        except Exception as exc:
            Log.exception("File watcher error", kind=kind, path=path)
            self._emit(
                WatcherErrorEvent(
                    ServiceError(f"File watcher error on {path}: {exc}", cause=exc)
                )
            )

    def _on_created(self, path: Path) -> None:
        admission = self._deduplicator.try_admit(path)
        if admission is None:
            Log.debug("Image already in flight, skipping", file=path.name)
            return
        Log.info("New image detected", file=path.name)
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._await_stability(path, admission))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_deleted(self, path: Path) -> None:
        # The stability check releases a file that vanishes mid-wait; after
        # hand-off only the pipeline releases the admission.
        Log.debug("Image file removed", file=path.name)
        self._emit(FileRemovedEvent(path=path))

    async def _await_stability(self, path: Path, admission: Admission) -> None:
        handed_off = False
        try:
            result = await self._gate.await_stable(path)
            if result is StabilityResult.VANISHED:
                Log.warning("Image vanished before it was fully written", file=path.name)
                return
            if result is StabilityResult.TIMED_OUT:
                Log.debug("Stability wait timed out, processing anyway", file=path.name)
            if not self._running:
                return
            self._emit(DetectedEvent(path=path, admission=admission))
            handed_off = True
        except OSError as exc:
            Log.error(f"Cannot inspect image {path.name}: {exc}")
            self._emit(
                WatcherErrorEvent(FileError(f"Cannot inspect {path}: {exc}", cause=exc))
            )
        finally:
            if not handed_off:
                admission.release()

    async def _monitor_subscription(self) -> None:
        while True:
            await asyncio.sleep(self._health_interval)
            self.check_subscription()

    def check_subscription(self) -> bool:
        """Return False, and report once, when the watch can no longer deliver events."""
        if self._subscription_lost:
            return False
        if not self._root.is_dir():
            self._report_subscription_lost(f"Watch folder is no longer available: {self._root}")
            return False
        if self._observer is not None and not self._observer.is_alive():
            self._report_subscription_lost("File system observer stopped unexpectedly")
            return False
        return True

    def _report_subscription_lost(self, message: str) -> None:
        if self._subscription_lost:
            return
        self._subscription_lost = True
        Log.error(message, folder=self._root)
        self._emit(WatcherErrorEvent(FileError(message)))

    def _emit(self, event: WatchEvent) -> None:
        self._queue.put_nowait(event)
