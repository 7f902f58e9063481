"""Example OCR adapter.

Use this module as a reference when implementing new OCR adapters.
Implement BaseOcrClient and register the provider in OcrClientFactory.
"""

from pathlib import Path
from typing import ClassVar

from ocrwatch.ocr.base import BaseOcrClient


class ExampleOcrClient(BaseOcrClient):
    """Example adapter that returns fixed text without any network calls."""

    DEFAULT_TEXT: ClassVar[str] = "Example recognized text"

    async def recognize(self, image_path: Path) -> str | None:
        _ = image_path
        return self.DEFAULT_TEXT

    async def check_health(self) -> bool:
        return True
