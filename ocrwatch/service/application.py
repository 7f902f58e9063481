import asyncio

from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import OcrWatchError
from ocrwatch.ledger.result_ledger import ResultLedger
from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.factory import LlmClientFactory
from ocrwatch.logging.logger import Log
from ocrwatch.notification.factory import NotifierFactory
from ocrwatch.notification.service import NotificationService
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.factory import OcrClientFactory
from ocrwatch.pipeline.orchestrator import PipelineOrchestrator, build_orchestrator
from ocrwatch.watcher.events import DetectedEvent, FileRemovedEvent, WatcherErrorEvent
from ocrwatch.watcher.file_watcher import FileWatcher


class Application:
    """Dispatch loop: watcher events -> one orchestrator task per detected image."""

    def __init__(
        self,
        settings: Settings,
        ledger: ResultLedger,
        watcher: FileWatcher,
        orchestrator: PipelineOrchestrator,
        ocr_client: BaseOcrClient,
        llm_client: BaseLlmClient,
        notifications: NotificationService,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._watcher = watcher
        self._orchestrator = orchestrator
        self._ocr_client = ocr_client
        self._llm_client = llm_client
        self._notifications = notifications
        self._tasks: set[asyncio.Task[object]] = set()
        self._dispatcher: asyncio.Task[None] | None = None
        self._stats_reporter: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def ledger(self) -> ResultLedger:
        return self._ledger

    async def run(self, stop_event: asyncio.Event) -> None:
        """Start, wait for ``stop_event``, then shut down gracefully."""
        try:
            await self.start()
        except OcrWatchError as exc:
            Log.error(f"Startup failed: {exc}")
            await self._notifications.show_error(exc, "Startup failed")
            await self.stop()
            raise
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def start(self) -> None:
        Log.info("ocrwatch starting")
        await self._check_services_health()
        await self._watcher.start()
        self._dispatcher = asyncio.create_task(self._dispatch())
        self._stats_reporter = asyncio.create_task(self._report_stats())
        self._running = True
        await self._notifications.show_welcome()
        Log.info("ocrwatch started, watching for images", folder=self._settings.watch_folder)

    async def stop(self) -> None:
        """Stop watching, let in-flight images finish within the grace period, flush stats."""
        if self._dispatcher is None and not self._running:
            return
        Log.info("ocrwatch shutting down")
        self._running = False

        if self._stats_reporter is not None:
            self._stats_reporter.cancel()
            await asyncio.gather(self._stats_reporter, return_exceptions=True)
            self._stats_reporter = None

        self._watcher.stop()
        if self._dispatcher is not None:
            await asyncio.gather(self._dispatcher, return_exceptions=True)
            self._dispatcher = None

        await self._drain_tasks()

        stats = self._ledger.stats()
        Log.info(
            "Final statistics",
            total=stats.total,
            completed=stats.completed,
            failed=stats.failed,
            success_rate=stats.success_rate,
        )
        await self._notifications.show_stats(stats)
        Log.info("ocrwatch stopped")

    def get_status(self) -> dict[str, object]:
        return {
            "is_running": self._running,
            "watcher": self._watcher.status(),
            "in_flight_tasks": len(self._tasks),
            "results": self._ledger.stats(),
        }

    async def _check_services_health(self) -> None:
        if not await self._ocr_client.check_health():
            Log.warning("OCR service is unavailable, make sure it is running")
        if not await self._llm_client.check_health():
            Log.warning("LLM service is unavailable, make sure it is running")
        if self._settings.notifications_enabled and not await self._notifications.check_availability():
            Log.warning("System notifications are unavailable")

    async def _dispatch(self) -> None:
        async for event in self._watcher.events():
            if isinstance(event, DetectedEvent):
                task = asyncio.create_task(self._orchestrator.on_detected(event))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            elif isinstance(event, FileRemovedEvent):
                Log.debug("Image removed from watch folder", file=event.path.name)
            elif isinstance(event, WatcherErrorEvent):
                Log.error(f"File watcher error: {event.error}")

    async def _drain_tasks(self) -> None:
        if not self._tasks:
            return
        Log.info("Waiting for in-flight images", count=len(self._tasks))
        _, pending = await asyncio.wait(
            set(self._tasks), timeout=self._settings.shutdown_grace_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            Log.warning("Abandoned in-flight images", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

    async def _report_stats(self) -> None:
        while True:
            await asyncio.sleep(self._settings.stats_report_interval_seconds)
            stats = self._ledger.stats()
            if stats.total > 0:
                Log.debug(
                    "Processing statistics",
                    total=stats.total,
                    completed=stats.completed,
                    failed=stats.failed,
                    processing=stats.processing,
                    success_rate=stats.success_rate,
                )


def build_application(
    settings: Settings,
    ocr_client: BaseOcrClient | None = None,
    llm_client: BaseLlmClient | None = None,
) -> Application:
    """Build an Application with all required services."""
    ocr_client = ocr_client or OcrClientFactory.create(settings)
    llm_client = llm_client or LlmClientFactory.create(settings)
    ledger = ResultLedger(capacity=settings.ledger_capacity)
    notifications = NotificationService(NotifierFactory.create(settings))
    orchestrator = build_orchestrator(
        settings,
        ledger,
        notifications,
        ocr_client=ocr_client,
        llm_client=llm_client,
    )
    return Application(
        settings=settings,
        ledger=ledger,
        watcher=FileWatcher(settings),
        orchestrator=orchestrator,
        ocr_client=ocr_client,
        llm_client=llm_client,
        notifications=notifications,
    )
