from abc import ABC, abstractmethod


class BaseNotifier(ABC):
    """Contract for notification sinks."""

    @abstractmethod
    async def notify(self, title: str, message: str, sound: str | None = None) -> bool:
        """Show a notification. Returns True if some mechanism displayed it."""

    @abstractmethod
    async def check_availability(self) -> bool:
        """Return True when a native notification mechanism exists."""
