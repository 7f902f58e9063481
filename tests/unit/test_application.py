import asyncio
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import FileError
from ocrwatch.ledger.models import ProcessingStatus
from ocrwatch.ledger.result_ledger import ResultLedger
from ocrwatch.llm.example_client import ExampleLlmClient
from ocrwatch.notification.service import NotificationService
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.example_client import ExampleOcrClient
from ocrwatch.pipeline.orchestrator import build_orchestrator
from ocrwatch.service.application import Application, build_application
from ocrwatch.watcher.file_watcher import CREATED, FileWatcher


def _make_app(
    settings: Settings,
    ocr_client: BaseOcrClient | None = None,
) -> tuple[Application, MagicMock, MagicMock]:
    ledger = ResultLedger(capacity=settings.ledger_capacity)
    notifications = MagicMock(spec=NotificationService)
    for name in ("show_result", "show_error", "show_welcome", "show_stats", "check_availability"):
        setattr(notifications, name, AsyncMock(return_value=True))
    ocr_client = ocr_client or ExampleOcrClient()
    llm_client = ExampleLlmClient()
    observer = MagicMock()
    app = Application(
        settings=settings,
        ledger=ledger,
        watcher=FileWatcher(settings, observer_factory=lambda: observer),
        orchestrator=build_orchestrator(
            settings, ledger, notifications, ocr_client=ocr_client, llm_client=llm_client
        ),
        ocr_client=ocr_client,
        llm_client=llm_client,
        notifications=notifications,
    )
    return app, notifications, observer


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


class TestLifecycle:
    def test_run_until_stop_event(self, make_settings: Callable[..., Settings]) -> None:
        app, notifications, observer = _make_app(make_settings())

        async def scenario() -> None:
            stop_event = asyncio.Event()
            runner = asyncio.create_task(app.run(stop_event))
            await _wait_for(lambda: app.is_running)
            stop_event.set()
            await runner

        asyncio.run(scenario())

        assert not app.is_running
        notifications.show_welcome.assert_awaited_once()
        notifications.show_stats.assert_awaited_once()
        observer.start.assert_called_once()
        observer.stop.assert_called_once()

    def test_startup_failure_is_reported_and_raised(
        self, make_settings: Callable[..., Settings], tmp_path: Path
    ) -> None:
        app, notifications, _ = _make_app(make_settings(watch_folder=tmp_path / "missing"))

        with pytest.raises(FileError):
            asyncio.run(app.run(asyncio.Event()))

        notifications.show_error.assert_awaited_once()
        assert notifications.show_error.await_args.args[1] == "Startup failed"
        notifications.show_welcome.assert_not_awaited()

    def test_stop_is_idempotent(self, make_settings: Callable[..., Settings]) -> None:
        app, notifications, _ = _make_app(make_settings())

        async def scenario() -> None:
            await app.start()
            await app.stop()
            await app.stop()

        asyncio.run(scenario())
        notifications.show_stats.assert_awaited_once()

    def test_unhealthy_services_do_not_block_startup(
        self, make_settings: Callable[..., Settings]
    ) -> None:
        ocr_client = MagicMock(spec=BaseOcrClient)
        ocr_client.check_health = AsyncMock(return_value=False)
        app, _, _ = _make_app(make_settings(), ocr_client=ocr_client)

        async def scenario() -> None:
            await app.start()
            assert app.is_running
            await app.stop()

        asyncio.run(scenario())
        ocr_client.check_health.assert_awaited_once()


class TestDispatch:
    def test_detected_image_is_processed(
        self,
        make_settings: Callable[..., Settings],
        watch_folder: Path,
        png_bytes: bytes,
    ) -> None:
        app, notifications, _ = _make_app(make_settings())
        image = watch_folder.resolve() / "shot.png"
        image.write_bytes(png_bytes)

        async def scenario() -> None:
            await app.start()
            app._watcher._on_raw_event(CREATED, image)
            await _wait_for(lambda: app.ledger.stats().completed == 1)
            await app.stop()

        asyncio.run(scenario())

        [record] = app.ledger.list()
        assert record.status is ProcessingStatus.COMPLETED
        assert record.ocr_text == ExampleOcrClient.DEFAULT_TEXT
        assert record.llm_result == ExampleLlmClient.DEFAULT_ANSWER
        notifications.show_result.assert_awaited_once_with(record)

    def test_shutdown_abandons_images_past_grace_period(
        self,
        make_settings: Callable[..., Settings],
        watch_folder: Path,
        png_bytes: bytes,
    ) -> None:
        ocr_client = MagicMock(spec=BaseOcrClient)
        ocr_client.check_health = AsyncMock(return_value=True)
        started = asyncio.Event()

        async def slow(path: Path) -> str:
            started.set()
            await asyncio.sleep(10)
            return "late"

        ocr_client.recognize = AsyncMock(side_effect=slow)
        app, _, _ = _make_app(make_settings(shutdown_grace_seconds=0.05), ocr_client=ocr_client)
        image = watch_folder.resolve() / "shot.png"
        image.write_bytes(png_bytes)

        async def scenario() -> None:
            await app.start()
            app._watcher._on_raw_event(CREATED, image)
            await asyncio.wait_for(started.wait(), 2.0)
            await app.stop()
            assert app.get_status()["in_flight_tasks"] == 0

        asyncio.run(scenario())

        [record] = app.ledger.list()
        assert record.status is ProcessingStatus.PROCESSING


class TestStatus:
    def test_get_status(self, make_settings: Callable[..., Settings]) -> None:
        app, _, _ = _make_app(make_settings())

        async def scenario() -> dict[str, object]:
            await app.start()
            status = app.get_status()
            await app.stop()
            return status

        status = asyncio.run(scenario())
        assert status["is_running"] is True
        assert status["in_flight_tasks"] == 0


class TestBuildApplication:
    def test_builds_with_configured_adapters(
        self, make_settings: Callable[..., Settings]
    ) -> None:
        settings = make_settings(ocr_provider="example", llm_provider="example")
        app = build_application(settings)
        assert isinstance(app, Application)
        assert app.ledger.capacity == settings.ledger_capacity
