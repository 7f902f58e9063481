class OcrWatchError(Exception):
    """Base exception for all ocrwatch errors.

    Carries a human-readable message and, optionally, the lower-level
    exception that caused it.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigError(OcrWatchError):
    """Raised when configuration is missing or cannot be loaded. Fatal at startup."""


class ValidationError(OcrWatchError):
    """Raised when a configuration value is malformed. Fatal at startup."""


class ServiceError(OcrWatchError):
    """Raised when an OCR, LLM or notification call fails. Local to one record."""


class FileError(OcrWatchError):
    """Raised when a watched path is inaccessible or vanished. Local to one detection."""
