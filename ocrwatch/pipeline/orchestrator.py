from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import FileError, ServiceError
from ocrwatch.ledger.models import ProcessingRecord, ProcessingStatus
from ocrwatch.ledger.result_ledger import ResultLedger
from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.factory import LlmClientFactory
from ocrwatch.logging.logger import Log
from ocrwatch.notification.service import NotificationService
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.factory import OcrClientFactory
from ocrwatch.pipeline.context import PipelineContext, PipelineStep
from ocrwatch.pipeline.steps import (
    CreateRecordStep,
    LlmStep,
    OcrStep,
    VerifyReadableStep,
    apply_update,
)
from ocrwatch.watcher.events import DetectedEvent

SEPARATOR = "=" * 60


class PipelineOrchestrator:
    """Carries one detected image through OCR and the LLM to a terminal status.

    Pipeline: verify readable -> create record -> OCR -> LLM -> notify.
    Per-file failures end up on the record; nothing propagates to the watcher.
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        ledger: ResultLedger,
        notifications: NotificationService,
    ) -> None:
        self._steps = steps
        self._ledger = ledger
        self._notifications = notifications

    async def on_detected(self, event: DetectedEvent) -> ProcessingRecord | None:
        """Process one detected image. The admission is released on every exit path."""
        with event.admission:
            Log.info("Processing detected image", file=event.file_name)
            context = PipelineContext(image_path=event.path)
            try:
                for step in self._steps:
                    context = await step.run(context)
                    if context.finished:
                        break
            except (FileError, ServiceError) as exc:
                if context.record is None:
                    Log.warning(f"Skipping {event.file_name}: {exc}")
                    return None
                self._fail_record(context, str(exc))
            except Exception as exc:
                Log.exception(f"Unexpected error while processing {event.file_name}")
                if context.record is None:
                    await self._notifications.show_error(exc, event.file_name)
                    return None
                self._fail_record(context, f"Unexpected error: {exc}")

            if context.record is None:
                return None
            record = self._ledger.get(context.record.id)
            if record is None:
                Log.warning(
                    "Record was evicted before processing finished",
                    id=context.record.id,
                    file=event.file_name,
                )
                return None
            await self._notifications.show_result(record)
            self._log_summary(record)
            return record

    def _fail_record(self, context: PipelineContext, message: str) -> None:
        record = context.record
        if record is None or record.status.is_terminal:
            return
        status = (
            ProcessingStatus.OCR_FAILED
            if record.status is ProcessingStatus.PROCESSING
            else ProcessingStatus.FAILED
        )
        apply_update(self._ledger, context, status=status, error=message)

    @staticmethod
    def _log_summary(record: ProcessingRecord) -> None:
        lines = [
            SEPARATOR,
            "Processing result",
            SEPARATOR,
            f"Id: {record.id}",
            f"Created: {record.created_at.isoformat()}",
            f"Image: {record.image_path}",
            f"OCR text: {record.ocr_text or '-'}",
            f"LLM result: {record.llm_result or '-'}",
            f"Status: {record.status.value}",
        ]
        if record.error:
            lines.append(f"Error: {record.error}")
        lines.append(SEPARATOR)
        Log.info("\n" + "\n".join(lines))


def build_orchestrator(
    settings: Settings,
    ledger: ResultLedger,
    notifications: NotificationService,
    ocr_client: BaseOcrClient | None = None,
    llm_client: BaseLlmClient | None = None,
) -> PipelineOrchestrator:
    """Build a PipelineOrchestrator with the configured adapters."""
    ocr_client = ocr_client or OcrClientFactory.create(settings)
    llm_client = llm_client or LlmClientFactory.create(settings)
    steps: list[PipelineStep] = [
        VerifyReadableStep(),
        CreateRecordStep(ledger),
        OcrStep(ocr_client, ledger, timeout_seconds=settings.ocr_timeout_seconds),
        LlmStep(llm_client, ledger, timeout_seconds=settings.llm_timeout_seconds),
    ]
    return PipelineOrchestrator(steps=steps, ledger=ledger, notifications=notifications)
