import asyncio
import os

from ocrwatch.exceptions import FileError, ServiceError
from ocrwatch.ledger.models import ProcessingStatus
from ocrwatch.ledger.result_ledger import ResultLedger
from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.exceptions import LlmServiceError
from ocrwatch.logging.logger import Log
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.exceptions import OcrServiceError
from ocrwatch.pipeline.context import PipelineContext, PipelineStep


def apply_update(
    ledger: ResultLedger,
    context: PipelineContext,
    **changes: object,
) -> PipelineContext:
    """Commit changes to the context's record before the next stage starts."""
    if context.record is None:
        raise ValueError("PipelineContext.record must be set before it is updated")
    updated = ledger.update(context.record.id, **changes)
    if updated is not None:
        context.record = updated
    return context


class VerifyReadableStep(PipelineStep):
    async def run(self, context: PipelineContext) -> PipelineContext:
        path = context.image_path
        if not path.is_file() or not os.access(path, os.R_OK):
            raise FileError(f"Image is no longer readable: {path}")
        return context


class CreateRecordStep(PipelineStep):
    def __init__(self, ledger: ResultLedger) -> None:
        self._ledger = ledger

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.record = self._ledger.add(context.image_path)
        Log.info("Record created", id=context.record.id, file=context.file_name)
        return context


class OcrStep(PipelineStep):
    def __init__(
        self,
        ocr_client: BaseOcrClient,
        ledger: ResultLedger,
        timeout_seconds: float,
    ) -> None:
        self._ocr_client = ocr_client
        self._ledger = ledger
        self._timeout_seconds = timeout_seconds

    async def run(self, context: PipelineContext) -> PipelineContext:
        Log.info("Starting OCR", file=context.file_name)
        try:
            text = await asyncio.wait_for(
                self._ocr_client.recognize(context.image_path),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            error = OcrServiceError(f"OCR timed out after {self._timeout_seconds}s", cause=exc)
            return self._fail(context, error)
        except (ServiceError, FileError) as exc:
            return self._fail(context, exc)

        if not text:
            Log.warning("No text recognized, skipping LLM", file=context.file_name)
            context.finished = True
            return apply_update(self._ledger, context, status=ProcessingStatus.COMPLETED)

        context.ocr_text = text
        return apply_update(
            self._ledger,
            context,
            status=ProcessingStatus.OCR_COMPLETED,
            ocr_text=text,
        )

    def _fail(self, context: PipelineContext, exc: Exception) -> PipelineContext:
        Log.error(f"OCR failed for {context.file_name}: {exc}")
        context.finished = True
        return apply_update(
            self._ledger,
            context,
            status=ProcessingStatus.OCR_FAILED,
            error=str(exc),
        )


class LlmStep(PipelineStep):
    def __init__(
        self,
        llm_client: BaseLlmClient,
        ledger: ResultLedger,
        timeout_seconds: float,
    ) -> None:
        self._llm_client = llm_client
        self._ledger = ledger
        self._timeout_seconds = timeout_seconds

    async def run(self, context: PipelineContext) -> PipelineContext:
        if not context.ocr_text:
            raise ValueError("PipelineContext.ocr_text must be set before the LLM stage")
        Log.info("Starting LLM processing", file=context.file_name)
        context.finished = True
        try:
            result = await asyncio.wait_for(
                self._llm_client.process_text(context.ocr_text),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            error = LlmServiceError(f"LLM timed out after {self._timeout_seconds}s", cause=exc)
            return self._fail(context, error)
        except ServiceError as exc:
            return self._fail(context, exc)

        context.llm_result = result
        Log.info("Processing complete", file=context.file_name)
        return apply_update(
            self._ledger,
            context,
            status=ProcessingStatus.COMPLETED,
            llm_result=result,
        )

    def _fail(self, context: PipelineContext, exc: Exception) -> PipelineContext:
        Log.error(f"LLM processing failed for {context.file_name}: {exc}")
        return apply_update(
            self._ledger,
            context,
            status=ProcessingStatus.FAILED,
            error=str(exc),
        )
