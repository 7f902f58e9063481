from ocrwatch.logging.logger import Log
from ocrwatch.notification.base import BaseNotifier

SEPARATOR = "=" * 60


class ConsoleNotifier(BaseNotifier):
    """Writes notifications to the log. Used when native notifications are off."""

    async def notify(self, title: str, message: str, sound: str | None = None) -> bool:
        _ = sound
        Log.info(f"\n{SEPARATOR}\n{title}: {message}\n{SEPARATOR}")
        return True

    async def check_availability(self) -> bool:
        return False
