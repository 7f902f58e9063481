from pathlib import Path

from ocrwatch.ledger.models import LedgerStats, ProcessingRecord, ProcessingStatus
from ocrwatch.logging.logger import Log
from ocrwatch.notification.base import BaseNotifier

MAX_MESSAGE_LENGTH = 200
SUCCESS_SOUND = "Glass"
FAILURE_SOUND = "Basso"
INFO_SOUND = "Ping"


def truncate(text: str | None, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class NotificationService:
    """Renders pipeline outcomes as user notifications.

    Every method is best-effort: failures are logged and reported as False.
    """

    def __init__(self, notifier: BaseNotifier) -> None:
        self._notifier = notifier

    async def show_result(self, record: ProcessingRecord) -> bool:
        file_name = Path(record.image_path).name
        if record.status is ProcessingStatus.COMPLETED and record.llm_result:
            title, message = f"Done - {file_name}", record.llm_result
        elif record.status is ProcessingStatus.COMPLETED and record.ocr_text:
            title, message = f"OCR done - {file_name}", record.ocr_text
        elif record.status is ProcessingStatus.COMPLETED:
            title, message = f"No text found - {file_name}", "No text was recognized in the image"
        elif record.status in (ProcessingStatus.FAILED, ProcessingStatus.OCR_FAILED):
            title, message = f"Failed - {file_name}", record.error or "Unknown error"
        else:
            title, message = f"Processing - {file_name}", "Processing image..."

        sound = SUCCESS_SOUND if record.status is ProcessingStatus.COMPLETED else FAILURE_SOUND
        return await self._send(title, truncate(message), sound)

    async def show_error(self, error: BaseException | str, context: str = "") -> bool:
        title = f"Error - {context}" if context else "Error"
        message = str(error) or "Unknown error"
        return await self._send(title, truncate(message), FAILURE_SOUND)

    async def show_welcome(self) -> bool:
        return await self._send(
            "ocrwatch started",
            "Watching the folder for new images...",
            SUCCESS_SOUND,
        )

    async def show_stats(self, stats: LedgerStats) -> bool:
        message = (
            f"Total: {stats.total} | Completed: {stats.completed} | "
            f"Failed: {stats.failed} | Success rate: {stats.success_rate}"
        )
        return await self._send("Processing summary", message, INFO_SOUND)

    async def check_availability(self) -> bool:
        try:
            return await self._notifier.check_availability()
        except Exception as exc:
            Log.warning(f"Notification availability check failed: {exc}")
            return False

    async def _send(self, title: str, message: str, sound: str | None) -> bool:
        try:
            shown = await self._notifier.notify(title, message, sound)
        except Exception as exc:
            Log.warning(f"Failed to show notification: {exc}", title=title)
            return False
        if not shown:
            Log.warning("No notification method succeeded", title=title)
        return shown
