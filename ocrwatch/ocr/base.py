from abc import ABC, abstractmethod
from pathlib import Path


class BaseOcrClient(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    async def recognize(self, image_path: Path) -> str | None:
        """Extract text from an image file.

        Args:
            image_path: Absolute path of the image on disk.

        Returns:
            Recognized text, or None when the image contains no text.

        Raises:
            OcrServiceError: if the OCR call fails.
            FileError: if the image cannot be read.
        """

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when the OCR service answers its health check."""
