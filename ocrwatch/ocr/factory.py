from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import ConfigError
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.example_client import ExampleOcrClient
from ocrwatch.ocr.http_ocr_client import HttpOcrClient

SUPPORTED_PROVIDERS = ("http", "example")


class OcrClientFactory:
    """Creates the configured OCR adapter."""

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrClient:
        provider = settings.ocr_provider.lower()
        if provider == "example":
            return ExampleOcrClient()
        if provider == "http":
            return HttpOcrClient(
                api_url=settings.ocr_api_url,
                health_check_url=settings.health_check_url,
                language=settings.language,
                timeout_seconds=settings.ocr_timeout_seconds,
                health_timeout_seconds=settings.health_check_timeout_seconds,
            )
        raise ConfigError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(SUPPORTED_PROVIDERS)}"
        )
