from ocrwatch.config.settings import Settings
from ocrwatch.notification.base import BaseNotifier
from ocrwatch.notification.command_notifier import CommandNotifier
from ocrwatch.notification.console_notifier import ConsoleNotifier


class NotifierFactory:
    """Creates the notifier for the current settings."""

    @classmethod
    def create(cls, settings: Settings) -> BaseNotifier:
        if not settings.notifications_enabled:
            return ConsoleNotifier()
        return CommandNotifier()
